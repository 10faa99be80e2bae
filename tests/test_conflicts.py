from datetime import datetime

from app.domain.scheduling.conflicts import (
    find_conflicts,
    intervals_overlap,
    is_busy_at,
    serialize_conflicts,
)

DAY = datetime(2030, 3, 11)


def at(hour, minute=0):
    return DAY.replace(hour=hour, minute=minute)


def test_overlap_is_half_open():
    assert intervals_overlap(at(10), at(11), at(10, 30), at(11, 30))
    assert intervals_overlap(at(10), at(11), at(9), at(12))
    assert not intervals_overlap(at(10), at(11), at(11), at(12))
    assert not intervals_overlap(at(10), at(11), at(9), at(10))


def test_finds_overlapping_active_appointment(db, doctor, make_appointment):
    existing = make_appointment(doctor, at(10), at(11))

    result = find_conflicts(db, doctor.id, at(10, 30), at(11, 30))

    assert result.conflict is True
    assert [a.id for a in result.overlapping] == [existing.id]
    assert serialize_conflicts(result.overlapping) == [
        {
            "id": existing.id,
            "start": "10:00",
            "end": "11:00",
            "procedure": "Artroscopia de joelho",
            "status": "PENDING",
        }
    ]


def test_touching_interval_is_not_a_conflict(db, doctor, make_appointment):
    make_appointment(doctor, at(10), at(11))

    assert find_conflicts(db, doctor.id, at(11), at(12)).conflict is False


def test_cancelled_and_rejected_appointments_free_the_slot(db, doctor, make_appointment):
    make_appointment(doctor, at(10), at(11), status="CANCELADO")
    make_appointment(doctor, at(10), at(11), status="REJEITADO")

    assert find_conflicts(db, doctor.id, at(10), at(11)).conflict is False


def test_confirmed_and_completed_appointments_hold_the_slot(db, doctor, make_appointment):
    make_appointment(doctor, at(8), at(9), status="CONFIRMADO")
    make_appointment(doctor, at(12), at(13), status="CONCLUIDO")

    assert find_conflicts(db, doctor.id, at(8, 30), at(9, 30)).conflict is True
    assert find_conflicts(db, doctor.id, at(12), at(12, 30)).conflict is True


def test_other_doctors_and_excluded_id_are_ignored(db, doctor, other_doctor, make_appointment):
    own = make_appointment(doctor, at(10), at(11))
    make_appointment(other_doctor, at(10), at(11))

    assert find_conflicts(db, doctor.id, at(10), at(11), exclude_appointment_id=own.id).conflict is False


def test_is_busy_at_uses_slot_start(db, doctor, make_appointment):
    appointment = make_appointment(doctor, at(9), at(10))

    assert is_busy_at([appointment], at(9))
    assert is_busy_at([appointment], at(9, 30))
    assert not is_busy_at([appointment], at(10))
    assert not is_busy_at([appointment], at(8, 30))
