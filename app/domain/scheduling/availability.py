"""Availability resolver - free/occupied slots for a doctor's day"""

import logging
import math
from datetime import date, datetime
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .conflicts import is_busy_at
from .exceptions import AvailabilityQueryFailed
from .repository import AppointmentRepository
from .time_slots import clinic_now, combine, day_bounds, generate_slots, validate_slot_window

logger = logging.getLogger(__name__)


def occupancy_rate(occupied: int, total: int) -> int:
    """Occupied share in percent, halves rounded up"""
    if total <= 0:
        return 0
    return math.floor(occupied / total * 100 + 0.5)


def resolve_availability(
    db: Session,
    doctor_id: str,
    day: date,
    start_hour: int,
    end_hour: int,
    interval_minutes: int,
    now: Optional[Callable[[], datetime]] = None,
) -> dict:
    validate_slot_window(start_hour, end_hour, interval_minutes)

    day_start, day_end = day_bounds(day)
    try:
        appointments = AppointmentRepository.get_active_for_doctor(
            db, doctor_id, starts_from=day_start, starts_before=day_end
        )
    except SQLAlchemyError as e:
        logger.exception(f"❌ Availability query failed for doctor {doctor_id} on {day}: {e}")
        raise AvailabilityQueryFailed() from e

    slots = []
    for slot in generate_slots(start_hour, end_hour, interval_minutes):
        instant = combine(day, slot)
        slots.append({"timeSlot": slot, "isAvailable": not is_busy_at(appointments, instant)})

    current = (now or clinic_now)()
    if day == current.date():
        # A slot starting exactly now is already gone
        current_hhmm = current.strftime("%H:%M")
        slots = [s for s in slots if s["timeSlot"] > current_hhmm]

    total = len(slots)
    available = sum(1 for s in slots if s["isAvailable"])
    occupied = total - available

    return {
        "slots": slots,
        "statistics": {
            "total": total,
            "available": available,
            "occupied": occupied,
            "occupancyRate": occupancy_rate(occupied, total),
        },
        "config": {
            "date": day.isoformat(),
            "doctorId": doctor_id,
            "startHour": start_hour,
            "endHour": end_hour,
            "slotDuration": interval_minutes,
        },
    }
