"""Appointment service - Business logic for the appointment lifecycle"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import DEFAULT_APPOINTMENT_MINUTES, MIN_APPOINTMENT_MINUTES
from ...models import Appointment, AppointmentStatus, HistoryAction, User
from ..patients.repository import PatientRepository
from ..patients.schemas import PatientSummary
from ..patients.service import PatientService
from .availability import resolve_availability
from .conflicts import find_conflicts, serialize_conflicts
from .exceptions import (
    AppointmentNotFound,
    AppointmentPersistenceFailed,
    Forbidden,
    InvalidTimeRange,
    NotEditable,
    PastStartTime,
    PatientIdentityConflict,
    SchedulingConflict,
)
from .lifecycle import (
    DEFAULT_REJECTION_REASON,
    ensure_transition_allowed,
    history_action_for,
    parse_target_status,
    record_history,
)
from .repository import AppointmentRepository, HistoryRepository
from .schemas import AppointmentRequest
from .time_slots import clinic_now, combine, day_bounds, parse_iso_date

logger = logging.getLogger(__name__)


class AppointmentService:
    """Service layer for scheduling business logic"""

    def __init__(self, db: Session, now: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.repo = AppointmentRepository()
        self.patients = PatientService(db)
        self.now = now or clinic_now

    # ------------------------------------------------------------------
    # Time validation
    # ------------------------------------------------------------------

    def build_interval(self, data: AppointmentRequest) -> tuple[datetime, datetime]:
        day = parse_iso_date(data.selectedDate, field="selectedDate")
        start = combine(day, data.selectedTime, field="selectedTime")
        if data.estimatedEndTime:
            end = combine(day, data.estimatedEndTime, field="estimatedEndTime")
        else:
            end = start + timedelta(minutes=DEFAULT_APPOINTMENT_MINUTES)
        return start, end

    def validate_interval(self, start: datetime, end: datetime) -> None:
        if end <= start:
            raise InvalidTimeRange(
                "Hora de término deve ser posterior à hora de início", field="estimatedEndTime"
            )
        if end - start < timedelta(minutes=MIN_APPOINTMENT_MINUTES):
            raise InvalidTimeRange(
                f"Duração mínima de {MIN_APPOINTMENT_MINUTES} minutos", field="estimatedEndTime"
            )
        if start <= self.now():
            raise PastStartTime(field="selectedTime")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repo.get_by_id(self.db, appointment_id)
        if not appointment:
            raise AppointmentNotFound()
        return appointment

    def get_visible_appointment(self, appointment_id: str, actor: User) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if not actor.is_admin and appointment.doctor_id != actor.id:
            raise Forbidden("Você não tem permissão para visualizar este agendamento")
        return appointment

    def list_appointments(
        self,
        day: Optional[str] = None,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        limit: int = 50,
    ) -> list[Appointment]:
        if day:
            starts_from, starts_before = day_bounds(parse_iso_date(day))
        elif start_date and end_date:
            starts_from, _ = day_bounds(parse_iso_date(start_date, field="startDate"))
            _, starts_before = day_bounds(parse_iso_date(end_date, field="endDate"))
        else:
            raise InvalidTimeRange("Informe a data ou o período (startDate e endDate)", field="date")
        return self.repo.list_for_range(self.db, starts_from, starts_before, limit)

    def search_appointments(
        self,
        status: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        doctor_id: Optional[str] = None,
        patient_search: Optional[str] = None,
    ) -> list[Appointment]:
        starts_from = day_bounds(parse_iso_date(date_from, "dateFrom"))[0] if date_from else None
        starts_before = day_bounds(parse_iso_date(date_to, "dateTo"))[1] if date_to else None
        if status == "ALL":
            status = None
        return self.repo.search(
            self.db, status, starts_from, starts_before, doctor_id, patient_search
        )

    def get_availability(
        self, doctor_id: str, day: str, start_hour: int, end_hour: int, slot_duration: int
    ) -> dict:
        return resolve_availability(
            self.db,
            doctor_id,
            parse_iso_date(day),
            start_hour,
            end_hour,
            slot_duration,
            now=self.now,
        )

    def check_availability(
        self, doctor_id: str, day: str, start_time: str, end_time: str
    ) -> dict:
        parsed_day = parse_iso_date(day)
        start = combine(parsed_day, start_time, field="startTime")
        end = combine(parsed_day, end_time, field="endTime")
        if end <= start:
            raise InvalidTimeRange(
                "Hora de término deve ser posterior à hora de início", field="endTime"
            )
        if start <= self.now():
            raise PastStartTime("Não é possível verificar disponibilidade no passado", field="startTime")

        result = find_conflicts(self.db, doctor_id, start, end)
        conflicts = serialize_conflicts(result.overlapping)
        return {
            "available": not result.conflict,
            "conflicts": conflicts,
            "message": (
                "Horário disponível"
                if not result.conflict
                else f"Conflito encontrado: {len(conflicts)} agendamento(s) neste período"
            ),
        }

    # ------------------------------------------------------------------
    # Doctor operations
    # ------------------------------------------------------------------

    def create_appointment(self, data: AppointmentRequest, doctor: User) -> Appointment:
        """Create a PENDING appointment for the requesting doctor"""
        start, end = self.build_interval(data)
        self.validate_interval(start, end)

        logger.info(f"📥 Appointment request from doctor {doctor.id} for {start:%Y-%m-%d %H:%M}")

        patient_id = self.patients.resolve_or_create_patient(
            data.patientPhone, data.patientName, data.birthDate
        )

        self.repo.lock_doctor_schedule(self.db, doctor.id)
        result = find_conflicts(self.db, doctor.id, start, end)
        if result.conflict:
            self.db.rollback()
            raise SchedulingConflict(conflicts=serialize_conflicts(result.overlapping))

        appointment = Appointment(
            doctor_id=doctor.id,
            patient_id=patient_id,
            procedure=data.procedure,
            start_date_time=start,
            end_date_time=end,
            status=AppointmentStatus.PENDING.value,
            insurance=data.insurance.value,
            special_needs=data.specialNeeds,
        )
        try:
            appointment = self.repo.add(self.db, appointment)
        except IntegrityError as e:
            self.db.rollback()
            raise self._conflict_from_constraint(doctor.id, start, end) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"❌ Failed to create appointment for doctor {doctor.id}: {e}")
            raise AppointmentPersistenceFailed() from e

        logger.info(f"✅ Appointment {appointment.id} created as PENDING")
        record_history(
            self.db,
            appointment.id,
            doctor.id,
            HistoryAction.CREATED,
            new_status=AppointmentStatus.PENDING.value,
            notes="Agendamento solicitado pelo médico",
        )
        return self.get_appointment(appointment.id)

    def update_appointment(
        self, appointment_id: str, data: AppointmentRequest, actor: User
    ) -> Appointment:
        """Edit a pending appointment owned by the actor, patient identity included"""
        appointment = self._get_editable(appointment_id, actor, "editar")

        start, end = self.build_interval(data)
        self.validate_interval(start, end)

        self.repo.lock_doctor_schedule(self.db, appointment.doctor_id)
        result = find_conflicts(
            self.db, appointment.doctor_id, start, end, exclude_appointment_id=appointment.id
        )
        if result.conflict:
            self.db.rollback()
            raise SchedulingConflict(conflicts=serialize_conflicts(result.overlapping))

        patient = appointment.patient
        patient_id = patient.id
        if patient.phone != data.patientPhone:
            collision = self._phone_collision(data.patientPhone, patient_id)
            if collision:
                self.db.rollback()
                raise collision

        try:
            PatientRepository.update(
                self.db,
                patient,
                name=data.patientName,
                birth_date=data.birthDate,
                phone=data.patientPhone,
            )
            appointment.procedure = data.procedure
            appointment.start_date_time = start
            appointment.end_date_time = end
            appointment.insurance = data.insurance.value
            appointment.special_needs = data.specialNeeds
            appointment.updated_at = self.now()
            appointment = self.repo.save(self.db, appointment)
        except IntegrityError as e:
            self.db.rollback()
            # The phone may have been taken after the lookup above
            collision = self._phone_collision(data.patientPhone, patient_id)
            if collision:
                raise collision from e
            raise self._conflict_from_constraint(
                appointment.doctor_id, start, end, exclude_appointment_id=appointment_id
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"❌ Failed to update appointment {appointment_id}: {e}")
            raise AppointmentPersistenceFailed() from e

        logger.info(f"✏️ Appointment {appointment.id} updated by doctor {actor.id}")
        record_history(
            self.db,
            appointment.id,
            actor.id,
            HistoryAction.UPDATED,
            old_status=appointment.status,
            new_status=appointment.status,
            notes="Agendamento editado pelo médico",
        )
        return self.get_appointment(appointment.id)

    def delete_appointment(self, appointment_id: str, actor: User) -> dict:
        appointment = self._get_editable(appointment_id, actor, "excluir")
        try:
            self.repo.delete(self.db, appointment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"❌ Failed to delete appointment {appointment_id}: {e}")
            raise AppointmentPersistenceFailed() from e

        logger.info(f"🗑️ Appointment {appointment_id} deleted by doctor {actor.id}")
        return {"message": "Agendamento excluído com sucesso!"}

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def transition_status(
        self, appointment_id: str, actor: User, new_status: str, notes: Optional[str] = None
    ) -> Appointment:
        """Move an appointment through the lifecycle. Admin role is checked by the caller."""
        target = parse_target_status(new_status)
        appointment = self.get_appointment(appointment_id)
        old_status = appointment.status
        ensure_transition_allowed(old_status, target)

        now = self.now()
        appointment.status = target.value
        appointment.updated_at = now
        if target in (AppointmentStatus.CONFIRMADO, AppointmentStatus.REJEITADO):
            appointment.approved_by = actor.id
            appointment.approved_at = now
        if target == AppointmentStatus.REJEITADO:
            appointment.rejection_reason = notes or DEFAULT_REJECTION_REASON

        try:
            appointment = self.repo.save(self.db, appointment)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"❌ Failed to update status of appointment {appointment_id}: {e}")
            raise AppointmentPersistenceFailed() from e

        logger.info(
            f"✅ Appointment {appointment_id} transitioned: {old_status} → {target.value} by admin {actor.id}"
        )
        record_history(
            self.db,
            appointment_id,
            actor.id,
            history_action_for(target),
            old_status=old_status,
            new_status=target.value,
            notes=notes or f"Status alterado para {target.value} pelo administrador",
        )
        return appointment

    def get_history(self, appointment_id: str):
        return HistoryRepository.get_for_appointment(self.db, appointment_id)

    def get_documents(self, appointment_id: str, actor: User):
        self.get_visible_appointment(appointment_id, actor)
        return self.repo.get_documents(self.db, appointment_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_editable(self, appointment_id: str, actor: User, verb: str) -> Appointment:
        appointment = self.get_appointment(appointment_id)
        if appointment.doctor_id != actor.id:
            logger.warning(
                f"🚫 Doctor {actor.id} tried to {verb} appointment {appointment_id} owned by {appointment.doctor_id}"
            )
            raise Forbidden(f"Você não tem permissão para {verb} este agendamento")
        if appointment.status != AppointmentStatus.PENDING.value:
            raise NotEditable(
                f"Apenas agendamentos pendentes podem ser {'editados' if verb == 'editar' else 'excluídos'}",
                status=appointment.status,
            )
        return appointment

    def _phone_collision(
        self, phone: str, patient_id: str
    ) -> Optional[PatientIdentityConflict]:
        other = PatientRepository.get_by_phone(self.db, phone)
        if not other or other.id == patient_id:
            return None
        return PatientIdentityConflict(
            message=f"Já existe um paciente com este telefone: {other.name}",
            patient=PatientSummary.model_validate(other).model_dump(mode="json"),
        )

    def _conflict_from_constraint(
        self,
        doctor_id: str,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[str] = None,
    ) -> SchedulingConflict:
        """Build the conflict error after the store rejected a write"""
        logger.warning(f"⚠️ Store rejected overlapping booking for doctor {doctor_id}")
        result = find_conflicts(self.db, doctor_id, start, end, exclude_appointment_id)
        return SchedulingConflict(conflicts=serialize_conflicts(result.overlapping))
