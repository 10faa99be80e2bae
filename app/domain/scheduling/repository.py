"""Appointment repository - Database operations for appointments and their history"""

from datetime import datetime
from typing import Optional

from sqlalchemy import text
from sqlalchemy.orm import Session, joinedload

from ...models import (
    INACTIVE_STATUSES,
    Appointment,
    AppointmentDocument,
    AppointmentHistory,
    Patient,
)


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_by_id(db: Session, appointment_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.patient), joinedload(Appointment.doctor))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_active_for_doctor(
        db: Session,
        doctor_id: str,
        starts_from: Optional[datetime] = None,
        starts_before: Optional[datetime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[Appointment]:
        """Appointments still holding the doctor's time, ordered by start"""
        query = db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status.notin_(INACTIVE_STATUSES),
        )
        if starts_from is not None:
            query = query.filter(Appointment.start_date_time >= starts_from)
        if starts_before is not None:
            query = query.filter(Appointment.start_date_time < starts_before)
        if exclude_appointment_id:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.order_by(Appointment.start_date_time.asc()).all()

    @staticmethod
    def get_overlapping(
        db: Session,
        doctor_id: str,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> list[Appointment]:
        """Range pre-filter; the caller applies the exact overlap predicate"""
        query = db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status.notin_(INACTIVE_STATUSES),
            Appointment.start_date_time < end,
            Appointment.end_date_time > start,
        )
        if exclude_appointment_id:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.order_by(Appointment.start_date_time.asc()).all()

    @staticmethod
    def list_for_range(
        db: Session, starts_from: datetime, starts_before: datetime, limit: int = 50
    ) -> list[Appointment]:
        return (
            db.query(Appointment)
            .filter(
                Appointment.start_date_time >= starts_from,
                Appointment.start_date_time < starts_before,
            )
            .order_by(Appointment.start_date_time.asc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def search(
        db: Session,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        doctor_id: Optional[str] = None,
        patient_search: Optional[str] = None,
    ) -> list[Appointment]:
        """Admin listing with optional filters, newest first"""
        query = db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.doctor),
            joinedload(Appointment.documents),
        )

        if status:
            query = query.filter(Appointment.status == status)
        if date_from:
            query = query.filter(Appointment.start_date_time >= date_from)
        if date_to:
            query = query.filter(Appointment.start_date_time < date_to)
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if patient_search and patient_search.strip():
            query = query.join(Appointment.patient).filter(
                Patient.name.ilike(f"%{patient_search.strip()}%")
            )

        return query.order_by(Appointment.start_date_time.desc()).all()

    @staticmethod
    def lock_doctor_schedule(db: Session, doctor_id: str) -> None:
        """
        Serialize conflict-check-plus-write per doctor.

        Takes a transaction-scoped advisory lock on PostgreSQL, released on
        commit or rollback. Other dialects rely on the exclusion constraint
        alone.
        """
        if db.get_bind().dialect.name == "postgresql":
            db.execute(text("SELECT pg_advisory_xact_lock(hashtext(:key))"), {"key": doctor_id})

    @staticmethod
    def add(db: Session, appointment: Appointment) -> Appointment:
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def save(db: Session, appointment: Appointment) -> Appointment:
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.commit()

    @staticmethod
    def get_documents(db: Session, appointment_id: str) -> list[AppointmentDocument]:
        return (
            db.query(AppointmentDocument)
            .filter(AppointmentDocument.appointment_id == appointment_id)
            .order_by(AppointmentDocument.created_at.desc())
            .all()
        )


class HistoryRepository:
    """Append-only access to the appointment audit trail"""

    @staticmethod
    def append(db: Session, **entry) -> AppointmentHistory:
        record = AppointmentHistory(**entry)
        db.add(record)
        db.commit()
        return record

    @staticmethod
    def get_for_appointment(db: Session, appointment_id: str) -> list[AppointmentHistory]:
        return (
            db.query(AppointmentHistory)
            .filter(AppointmentHistory.appointment_id == appointment_id)
            .order_by(AppointmentHistory.created_at.asc(), AppointmentHistory.id.asc())
            .all()
        )
