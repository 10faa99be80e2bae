import logging
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

from app.domain.patients.repository import PatientRepository
from app.domain.scheduling import lifecycle
from app.domain.scheduling.exceptions import (
    Forbidden,
    InvalidStatus,
    InvalidTimeRange,
    InvalidTransition,
    NotEditable,
    PastStartTime,
    PatientIdentityConflict,
    SchedulingConflict,
)
from app.domain.scheduling.lifecycle import ensure_transition_allowed, record_history
from app.domain.scheduling.repository import HistoryRepository
from app.domain.scheduling.schemas import AppointmentRequest
from app.models import Appointment, AppointmentHistory, AppointmentStatus, HistoryAction, Patient

from conftest import request_payload


def build_request(**overrides) -> AppointmentRequest:
    return AppointmentRequest(**request_payload(**overrides))


def test_create_starts_pending_and_records_history(db, service, doctor):
    appointment = service.create_appointment(build_request(), doctor)

    assert appointment.status == "PENDING"
    assert appointment.start_date_time == datetime(2030, 3, 11, 10)
    assert appointment.end_date_time == datetime(2030, 3, 11, 11)
    assert appointment.patient.name == "Maria da Silva"

    history = service.get_history(appointment.id)
    assert [h.action for h in history] == ["CREATED"]
    assert history[0].new_status == "PENDING"
    assert history[0].changed_by == doctor.id


def test_missing_end_time_defaults_to_two_hours(service, doctor):
    appointment = service.create_appointment(build_request(estimatedEndTime=None), doctor)

    assert appointment.end_date_time == datetime(2030, 3, 11, 12)


def test_overlapping_request_is_rejected_with_conflicts(service, doctor):
    first = service.create_appointment(build_request(), doctor)

    with pytest.raises(SchedulingConflict) as exc_info:
        service.create_appointment(
            build_request(selectedTime="10:30", estimatedEndTime="11:30"), doctor
        )

    assert exc_info.value.status_code == 409
    assert [c["id"] for c in exc_info.value.extra["conflicts"]] == [first.id]


def test_adjacent_request_is_accepted(service, doctor):
    service.create_appointment(build_request(), doctor)

    second = service.create_appointment(
        build_request(selectedTime="11:00", estimatedEndTime="12:00"), doctor
    )

    assert second.status == "PENDING"


def test_short_duration_is_rejected(service, doctor):
    with pytest.raises(InvalidTimeRange):
        service.create_appointment(build_request(estimatedEndTime="10:20"), doctor)


def test_end_before_start_is_rejected(service, doctor):
    with pytest.raises(InvalidTimeRange):
        service.create_appointment(build_request(estimatedEndTime="09:00"), doctor)


def test_past_start_is_rejected(service, doctor):
    with pytest.raises(PastStartTime):
        service.create_appointment(
            build_request(selectedDate="2030-03-10", selectedTime="08:00", estimatedEndTime="09:00"),
            doctor,
        )


def test_two_requests_with_same_phone_share_the_first_patient(db, service, doctor):
    first = service.create_appointment(build_request(), doctor)
    second = service.create_appointment(
        build_request(
            selectedTime="12:00",
            estimatedEndTime="13:00",
            patientName="Maria S. Souza",
            birthDate="01/01/1981",
        ),
        doctor,
    )

    assert first.patient_id == second.patient_id
    assert db.query(Patient).count() == 1
    assert second.patient.name == "Maria da Silva"


def test_phone_taken_during_update_reports_patient_conflict(
    db, service, doctor, make_patient, monkeypatch
):
    appointment = service.create_appointment(build_request(), doctor)
    taken = make_patient(phone="(51) 91111-2222", name="Joana Pereira")
    real_lookup = PatientRepository.get_by_phone
    lookups = []

    def lookup_missing_first(session, phone):
        lookups.append(phone)
        if len(lookups) == 1:
            return None
        return real_lookup(session, phone)

    monkeypatch.setattr(PatientRepository, "get_by_phone", staticmethod(lookup_missing_first))

    with pytest.raises(PatientIdentityConflict) as exc_info:
        service.update_appointment(
            appointment.id, build_request(patientPhone="(51) 91111-2222"), doctor
        )
    monkeypatch.undo()

    assert exc_info.value.status_code == 409
    assert exc_info.value.extra["patient"]["id"] == taken.id
    assert len(lookups) == 2
    db.expire_all()
    assert service.get_appointment(appointment.id).patient.phone == "(51) 99999-8888"


def test_other_doctor_cannot_update_or_delete(service, doctor, other_doctor):
    appointment = service.create_appointment(build_request(), doctor)

    with pytest.raises(Forbidden):
        service.update_appointment(appointment.id, build_request(procedure="Outro procedimento"), other_doctor)
    with pytest.raises(Forbidden):
        service.delete_appointment(appointment.id, other_doctor)


def test_update_changes_time_and_patient(service, doctor):
    appointment = service.create_appointment(build_request(), doctor)

    updated = service.update_appointment(
        appointment.id,
        build_request(
            selectedTime="12:00",
            estimatedEndTime="13:30",
            patientName="Maria da Silva Santos",
        ),
        doctor,
    )

    assert updated.start_date_time == datetime(2030, 3, 11, 12)
    assert updated.end_date_time == datetime(2030, 3, 11, 13, 30)
    assert updated.patient.name == "Maria da Silva Santos"
    assert [h.action for h in service.get_history(appointment.id)] == ["CREATED", "UPDATED"]


def test_update_does_not_conflict_with_itself(service, doctor):
    appointment = service.create_appointment(build_request(), doctor)

    updated = service.update_appointment(
        appointment.id, build_request(estimatedEndTime="11:30"), doctor
    )

    assert updated.end_date_time == datetime(2030, 3, 11, 11, 30)


def test_only_pending_appointments_are_editable(service, doctor, admin):
    appointment = service.create_appointment(build_request(), doctor)
    service.transition_status(appointment.id, admin, "CONFIRMADO")

    with pytest.raises(NotEditable) as exc_info:
        service.delete_appointment(appointment.id, doctor)
    assert exc_info.value.extra["status"] == "CONFIRMADO"


def test_delete_removes_appointment_and_history(db, service, doctor):
    appointment = service.create_appointment(build_request(), doctor)
    appointment_id = appointment.id

    service.delete_appointment(appointment_id, doctor)

    db.expire_all()
    assert db.query(Appointment).filter(Appointment.id == appointment_id).first() is None
    assert (
        db.query(AppointmentHistory)
        .filter(AppointmentHistory.appointment_id == appointment_id)
        .count()
        == 0
    )


def test_confirm_stamps_approver(service, doctor, admin):
    appointment = service.create_appointment(build_request(), doctor)

    confirmed = service.transition_status(appointment.id, admin, "CONFIRMADO", "Sala 2")

    assert confirmed.status == "CONFIRMADO"
    assert confirmed.approved_by == admin.id
    assert confirmed.approved_at is not None
    last = service.get_history(appointment.id)[-1]
    assert last.action == "STATUS_CHANGED"
    assert (last.old_status, last.new_status) == ("PENDING", "CONFIRMADO")
    assert last.notes == "Sala 2"


def test_reject_without_notes_uses_default_reason(service, doctor, admin):
    appointment = service.create_appointment(build_request(), doctor)

    rejected = service.transition_status(appointment.id, admin, "REJEITADO")

    assert rejected.rejection_reason == lifecycle.DEFAULT_REJECTION_REASON
    last = service.get_history(appointment.id)[-1]
    assert last.notes == "Status alterado para REJEITADO pelo administrador"


def test_cancelled_appointment_cannot_be_confirmed(service, doctor, admin):
    appointment = service.create_appointment(build_request(), doctor)
    service.transition_status(appointment.id, admin, "CANCELADO")

    with pytest.raises(InvalidTransition) as exc_info:
        service.transition_status(appointment.id, admin, "CONFIRMADO")

    assert exc_info.value.status_code == 409
    assert exc_info.value.extra["status"] == "CANCELADO"
    assert exc_info.value.extra["allowed"] == []


def test_cancelling_frees_the_slot(service, doctor, admin):
    appointment = service.create_appointment(build_request(), doctor)
    service.transition_status(appointment.id, admin, "CANCELADO")

    again = service.create_appointment(build_request(patientPhone="(51) 98888-7777"), doctor)

    assert again.status == "PENDING"


def test_unknown_or_pending_target_status_is_invalid(service, doctor, admin):
    appointment = service.create_appointment(build_request(), doctor)

    with pytest.raises(InvalidStatus):
        service.transition_status(appointment.id, admin, "APROVADO")
    with pytest.raises(InvalidStatus):
        service.transition_status(appointment.id, admin, "PENDING")


@pytest.mark.parametrize(
    "current,target,allowed",
    [
        ("PENDING", "CONFIRMADO", True),
        ("PENDING", "REJEITADO", True),
        ("PENDING", "CANCELADO", True),
        ("PENDING", "CONCLUIDO", False),
        ("CONFIRMADO", "CONCLUIDO", True),
        ("CONFIRMADO", "CANCELADO", True),
        ("CONFIRMADO", "REJEITADO", False),
        ("REJEITADO", "CONFIRMADO", False),
        ("CONCLUIDO", "CANCELADO", False),
    ],
)
def test_transition_table(current, target, allowed):
    if allowed:
        ensure_transition_allowed(current, AppointmentStatus(target))
    else:
        with pytest.raises(InvalidTransition):
            ensure_transition_allowed(current, AppointmentStatus(target))


def test_history_failure_goes_to_dead_letter(db, doctor, make_appointment, monkeypatch, caplog):
    appointment = make_appointment(doctor, datetime(2030, 3, 11, 10), datetime(2030, 3, 11, 11))
    calls = []

    def failing_append(session, **entry):
        calls.append(entry)
        raise OperationalError("INSERT", {}, Exception("database is locked"))

    monkeypatch.setattr(HistoryRepository, "append", staticmethod(failing_append))

    with caplog.at_level(logging.WARNING):
        written = record_history(
            db, appointment.id, doctor.id, HistoryAction.UPDATED, "PENDING", "PENDING"
        )

    assert written is False
    assert len(calls) == lifecycle.HISTORY_WRITE_ATTEMPTS
    assert any(
        r.name == "app.audit.deadletter" and "Dropped appointment history entry" in r.getMessage()
        for r in caplog.records
    )


def test_history_failure_does_not_undo_transition(db, service, doctor, admin, monkeypatch):
    appointment = service.create_appointment(build_request(), doctor)

    def failing_append(session, **entry):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(HistoryRepository, "append", staticmethod(failing_append))

    service.transition_status(appointment.id, admin, "CONFIRMADO")

    db.expire_all()
    assert service.get_appointment(appointment.id).status == "CONFIRMADO"
