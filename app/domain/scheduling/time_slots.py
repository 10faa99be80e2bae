"""Time-slot generation and time parsing helpers"""

from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from ...config import CLINIC_TIMEZONE
from .exceptions import InvalidSlotWindow, InvalidTimeRange

MIN_SLOT_MINUTES = 15
MAX_SLOT_MINUTES = 240


def generate_slots(start_hour: int, end_hour: int, interval_minutes: int) -> list[str]:
    """
    Generate "HH:MM" slot start times covering [start_hour:00, end_hour:00).

    Minutes restart at every hour boundary, so an interval that does not divide
    60 produces e.g. 07:00, 07:45, 08:00, 08:45 for 45 minutes.

    Example:
        generate_slots(7, 14, 30)
        # ['07:00', '07:30', '08:00', ..., '13:30']
    """
    slots = []
    for hour in range(start_hour, end_hour):
        for minute in range(0, 60, interval_minutes):
            slots.append(f"{hour:02d}:{minute:02d}")
    return slots


def validate_slot_window(start_hour: int, end_hour: int, interval_minutes: int) -> None:
    if not 0 <= start_hour <= 23 or not 1 <= end_hour <= 24:
        raise InvalidSlotWindow("Horas devem estar entre 0 e 24", field="startHour")
    if end_hour <= start_hour:
        raise InvalidSlotWindow(field="endHour")
    if not MIN_SLOT_MINUTES <= interval_minutes <= MAX_SLOT_MINUTES:
        raise InvalidSlotWindow(
            f"Duração do slot deve estar entre {MIN_SLOT_MINUTES} e {MAX_SLOT_MINUTES} minutos",
            field="slotDuration",
        )


def parse_hhmm(value: str, field: str = "time") -> time:
    """Parse a 24h "HH:MM" string"""
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        raise InvalidTimeRange(
            "Formato de horário inválido. Use HH:MM.", field=field
        ) from None


def parse_iso_date(value: str, field: str = "date") -> date:
    """Parse "YYYY-MM-DD", tolerating a full ISO timestamp from the date picker"""
    if isinstance(value, date):
        return value
    date_only = value.split("T")[0] if value and "T" in value else value
    try:
        return datetime.strptime(date_only, "%Y-%m-%d").date()
    except (TypeError, ValueError):
        raise InvalidTimeRange(
            "Data deve estar no formato YYYY-MM-DD", field=field
        ) from None


def combine(day: date, hhmm: str, field: str = "time") -> datetime:
    return datetime.combine(day, parse_hhmm(hhmm, field))


def clinic_now() -> datetime:
    """Current wall-clock time in the clinic, as a naive datetime"""
    return datetime.now(ZoneInfo(CLINIC_TIMEZONE)).replace(tzinfo=None)


def format_hhmm(value: Optional[datetime]) -> Optional[str]:
    return value.strftime("%H:%M") if value else None


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """[00:00 of day, 00:00 of next day)"""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)
