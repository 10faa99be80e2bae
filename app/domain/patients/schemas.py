"""Patient domain schemas - Pydantic models for validation"""

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import parse_birth_date, validate_br_phone, validate_cpf


class PatientCreate(BaseModel):
    """Schema for explicitly registering a patient"""

    name: str = Field(..., min_length=3)
    birth_date: date
    phone: str
    cpf: Optional[str] = None

    @field_validator("birth_date", mode="before")
    @classmethod
    def validate_birth_date(cls, v):
        return parse_birth_date(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return validate_br_phone(v)

    @field_validator("cpf")
    @classmethod
    def validate_cpf(cls, v):
        return validate_cpf(v)


class PatientResponse(BaseModel):
    """Schema for patient response"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    birth_date: date
    phone: str
    cpf: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PatientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    birth_date: date
    phone: str
    cpf: Optional[str] = None


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    hasMore: bool


class PatientListResponse(BaseModel):
    patients: list[PatientResponse]
    pagination: Pagination


class PatientBatchRequest(BaseModel):
    """Schema for fetching several patients at once"""

    ids: list[str] = Field(..., min_length=1, max_length=100)


class PatientBatchResponse(BaseModel):
    patients: list[PatientResponse]
    count: int
