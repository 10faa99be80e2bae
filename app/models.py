import uuid
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_uuid():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MEDICO = "MEDICO"
    DOCTOR = "DOCTOR"


DOCTOR_ROLES = (UserRole.DOCTOR.value, UserRole.MEDICO.value)


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMADO = "CONFIRMADO"
    REJEITADO = "REJEITADO"
    CANCELADO = "CANCELADO"
    CONCLUIDO = "CONCLUIDO"


# Statuses that no longer hold the doctor's time
INACTIVE_STATUSES = (AppointmentStatus.CANCELADO.value, AppointmentStatus.REJEITADO.value)


class InsuranceType(str, Enum):
    BRADESCO_SAUDE = "BRADESCO_SAUDE"
    MEDSENIOR = "MEDSENIOR"
    CABERGS_SAUDE = "CABERGS_SAUDE"
    POSTAL_SAUDE = "POSTAL_SAUDE"
    UNIMED = "UNIMED"
    DANAMED = "DANAMED"
    SUL_AMERICA = "SUL_AMERICA"


class HistoryAction(str, Enum):
    CREATED = "CREATED"
    UPDATED = "UPDATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class User(Base):
    """Staff member mirrored from the identity provider"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, index=True)  # ADMIN, MEDICO, DOCTOR
    medical_license = Column(String(50), nullable=True)  # CRM
    phone = Column(String(20), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_blocked = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship(
        "Appointment", back_populates="doctor", foreign_keys="Appointment.doctor_id"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_doctor(self) -> bool:
        return self.role in DOCTOR_ROLES


class Patient(Base):
    __tablename__ = "patients"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False, index=True)
    birth_date = Column(Date, nullable=False)
    phone = Column(String(20), unique=True, index=True, nullable=False)  # (XX) XXXXX-XXXX
    cpf = Column(String(14), unique=True, nullable=True)  # XXX.XXX.XXX-XX

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    appointments = relationship("Appointment", back_populates="patient")


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        CheckConstraint("end_date_time > start_date_time", name="appointments_end_after_start"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    doctor_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("patients.id"), nullable=False, index=True)
    procedure = Column(Text, nullable=False)
    start_date_time = Column(DateTime, nullable=False, index=True)
    end_date_time = Column(DateTime, nullable=False)
    insurance = Column(String(30), nullable=False)
    special_needs = Column(Text, nullable=True)
    status = Column(String(20), default=AppointmentStatus.PENDING.value, nullable=False, index=True)

    # Set only when an admin confirms or rejects
    approved_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("User", back_populates="appointments", foreign_keys=[doctor_id])
    approver = relationship("User", foreign_keys=[approved_by])
    patient = relationship("Patient", back_populates="appointments")
    history = relationship(
        "AppointmentHistory",
        back_populates="appointment",
        cascade="all, delete-orphan",
        order_by="AppointmentHistory.created_at",
    )
    documents = relationship(
        "AppointmentDocument", back_populates="appointment", cascade="all, delete-orphan"
    )

    @property
    def duration_minutes(self) -> int:
        return int((self.end_date_time - self.start_date_time).total_seconds() // 60)


class AppointmentHistory(Base):
    """Append-only audit trail of appointment changes"""

    __tablename__ = "appointment_history"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(
        String(36), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    changed_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    action = Column(String(20), nullable=False)
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="history")


class AppointmentDocument(Base):
    """File attached to an appointment; the bytes live in external storage"""

    __tablename__ = "appointment_documents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    appointment_id = Column(
        String(36), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    file_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=True)
    uploaded_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="documents")
