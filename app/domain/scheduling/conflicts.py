"""
Conflict detection.

Single source of truth for "is the doctor busy" semantics. Intervals are
half-open [start, end): an appointment ending at 11:00 does not collide with
one starting at 11:00.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Appointment
from .exceptions import ConflictQueryFailed
from .repository import AppointmentRepository

logger = logging.getLogger(__name__)


def intervals_overlap(
    start: datetime, end: datetime, other_start: datetime, other_end: datetime
) -> bool:
    return start < other_end and end > other_start


def covers(start: datetime, end: datetime, instant: datetime) -> bool:
    """Whether [start, end) contains instant (overlap with a zero-width interval)"""
    return start <= instant < end


def is_busy_at(appointments: Iterable[Appointment], instant: datetime) -> bool:
    return any(covers(a.start_date_time, a.end_date_time, instant) for a in appointments)


@dataclass
class ConflictResult:
    conflict: bool
    overlapping: list[Appointment] = field(default_factory=list)


def find_conflicts(
    db: Session,
    doctor_id: str,
    start: datetime,
    end: datetime,
    exclude_appointment_id: Optional[str] = None,
) -> ConflictResult:
    """Return every active appointment of the doctor overlapping [start, end)"""
    try:
        candidates = AppointmentRepository.get_overlapping(
            db, doctor_id, start, end, exclude_appointment_id
        )
    except SQLAlchemyError as e:
        logger.exception(f"❌ Conflict query failed for doctor {doctor_id}: {e}")
        raise ConflictQueryFailed() from e

    overlapping = [
        a for a in candidates if intervals_overlap(a.start_date_time, a.end_date_time, start, end)
    ]
    if overlapping:
        logger.info(
            f"⚠️ {len(overlapping)} conflict(s) for doctor {doctor_id} in {start:%Y-%m-%d %H:%M}-{end:%H:%M}"
        )
    return ConflictResult(conflict=bool(overlapping), overlapping=overlapping)


def serialize_conflicts(appointments: Iterable[Appointment]) -> list[dict]:
    return [
        {
            "id": a.id,
            "start": a.start_date_time.strftime("%H:%M"),
            "end": a.end_date_time.strftime("%H:%M"),
            "procedure": a.procedure,
            "status": a.status,
        }
        for a in appointments
    ]
