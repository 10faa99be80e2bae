"""Scheduling domain schemas - Pydantic models for validation"""

import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...config import DEFAULT_END_HOUR, DEFAULT_SLOT_DURATION, DEFAULT_START_HOUR
from ...models import InsuranceType
from ...shared.validators import parse_birth_date, validate_br_phone, validate_uuid
from ..patients.schemas import PatientSummary

HHMM_PATTERN = r"^\d{2}:\d{2}$"
DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"


def _validate_optional_uuid(v):
    if v is not None and not validate_uuid(v):
        raise ValueError("ID do médico inválido")
    return v


class AvailableSlotsRequest(BaseModel):
    """Schema for the slot availability query"""

    date: str = Field(..., pattern=DATE_PATTERN)
    doctorId: Optional[str] = None
    startHour: int = Field(DEFAULT_START_HOUR, ge=0, le=23)
    endHour: int = Field(DEFAULT_END_HOUR, ge=1, le=24)
    slotDuration: int = Field(DEFAULT_SLOT_DURATION, ge=15, le=240)

    @field_validator("doctorId")
    @classmethod
    def validate_doctor_id(cls, v):
        return _validate_optional_uuid(v)


class CheckAvailabilityRequest(BaseModel):
    """Schema for checking a proposed interval against the doctor's bookings"""

    date: str = Field(..., pattern=DATE_PATTERN)
    startTime: str = Field(..., pattern=HHMM_PATTERN)
    endTime: str = Field(..., pattern=HHMM_PATTERN)
    doctorId: Optional[str] = None

    @field_validator("doctorId")
    @classmethod
    def validate_doctor_id(cls, v):
        return _validate_optional_uuid(v)


class AppointmentRequest(BaseModel):
    """Schema for creating or editing a pending appointment"""

    selectedDate: str
    selectedTime: str = Field(..., pattern=HHMM_PATTERN)
    patientName: str = Field(..., min_length=3)
    birthDate: date
    procedure: str = Field(..., min_length=5)
    specialNeeds: str = Field(..., min_length=1)
    patientPhone: str
    insurance: InsuranceType
    estimatedEndTime: Optional[str] = None

    @field_validator("birthDate", mode="before")
    @classmethod
    def validate_birth_date(cls, v):
        return parse_birth_date(v)

    @field_validator("patientPhone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)

    @field_validator("estimatedEndTime")
    @classmethod
    def validate_end_time(cls, v):
        if v is None or not v.strip():
            return None
        if not re.match(HHMM_PATTERN, v.strip()):
            raise ValueError("Formato de horário inválido. Use HH:MM.")
        return v.strip()


class StatusUpdateRequest(BaseModel):
    """Schema for the admin status transition"""

    status: str
    notes: Optional[str] = None


class DoctorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    medical_license: Optional[str] = None


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    appointment_id: str
    file_name: str
    file_url: str
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None


class HistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_id: str
    changed_by: Optional[str] = None
    action: str
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    doctor_id: str
    patient_id: str
    procedure: str
    start_date_time: datetime
    end_date_time: datetime
    insurance: str
    special_needs: Optional[str] = None
    status: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AppointmentWithDetails(AppointmentResponse):
    patient: Optional[PatientSummary] = None
    doctor: Optional[DoctorSummary] = None


class AppointmentComplete(AppointmentWithDetails):
    documents: list[DocumentResponse] = []
    history: list[HistoryResponse] = []


class AppointmentMessageResponse(BaseModel):
    appointment: AppointmentWithDetails
    message: str


class AppointmentListResponse(BaseModel):
    appointments: list[AppointmentWithDetails]
    count: int


class SlotResponse(BaseModel):
    timeSlot: str
    isAvailable: bool


class SlotStatistics(BaseModel):
    total: int
    available: int
    occupied: int
    occupancyRate: int


class SlotConfig(BaseModel):
    date: str
    doctorId: str
    startHour: int
    endHour: int
    slotDuration: int


class AvailableSlotsResponse(BaseModel):
    slots: list[SlotResponse]
    statistics: SlotStatistics
    config: SlotConfig


class ConflictSummary(BaseModel):
    id: str
    start: str
    end: str
    procedure: str
    status: str


class CheckAvailabilityResponse(BaseModel):
    available: bool
    conflicts: list[ConflictSummary]
    message: str
