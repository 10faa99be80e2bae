"""
Scheduling Domain

Surgical-block appointments: slot availability, conflict detection and the
request/approval lifecycle.

Structure:
    time_slots.py    # Slot generation and time parsing
    availability.py  # Free/occupied slots for a doctor's day
    conflicts.py     # Overlap predicate and conflict lookup
    lifecycle.py     # Status transition table and audit trail
    service.py       # AppointmentService orchestration
    repository.py    # Appointment and history queries
    router.py        # /schedules, /admin/schedules, /appointments endpoints
"""
