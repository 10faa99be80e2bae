from datetime import date, datetime

import pytest

from app.domain.scheduling.exceptions import InvalidSlotWindow, InvalidTimeRange
from app.domain.scheduling.time_slots import (
    combine,
    day_bounds,
    generate_slots,
    parse_hhmm,
    parse_iso_date,
    validate_slot_window,
)


def test_default_window_produces_fourteen_half_hour_slots():
    slots = generate_slots(7, 14, 30)

    assert len(slots) == 14
    assert slots[0] == "07:00"
    assert slots[1] == "07:30"
    assert slots[-1] == "13:30"


def test_generation_is_deterministic():
    first = generate_slots(7, 14, 30)
    generate_slots(0, 24, 15)
    assert generate_slots(7, 14, 30) == first


def test_minutes_restart_each_hour_for_non_divisor_intervals():
    assert generate_slots(7, 9, 45) == ["07:00", "07:45", "08:00", "08:45"]


def test_interval_longer_than_an_hour_yields_one_slot_per_hour():
    assert generate_slots(7, 10, 120) == ["07:00", "08:00", "09:00"]


@pytest.mark.parametrize(
    "start_hour,end_hour,interval,field",
    [
        (14, 7, 30, "endHour"),
        (8, 8, 30, "endHour"),
        (7, 14, 10, "slotDuration"),
        (7, 14, 300, "slotDuration"),
        (-1, 14, 30, "startHour"),
    ],
)
def test_invalid_window_is_rejected(start_hour, end_hour, interval, field):
    with pytest.raises(InvalidSlotWindow) as exc_info:
        validate_slot_window(start_hour, end_hour, interval)
    assert exc_info.value.extra["field"] == field


def test_parse_hhmm_rejects_garbage():
    assert parse_hhmm("07:30").hour == 7
    with pytest.raises(InvalidTimeRange):
        parse_hhmm("7h30")


def test_parse_iso_date_accepts_timestamp_suffix():
    assert parse_iso_date("2030-03-11T03:00:00.000Z") == date(2030, 3, 11)
    with pytest.raises(InvalidTimeRange):
        parse_iso_date("11/03/2030")


def test_combine_and_day_bounds():
    assert combine(date(2030, 3, 11), "10:30") == datetime(2030, 3, 11, 10, 30)
    start, end = day_bounds(date(2030, 3, 11))
    assert start == datetime(2030, 3, 11)
    assert end == datetime(2030, 3, 12)
