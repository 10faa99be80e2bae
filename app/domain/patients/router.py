"""Patient router - FastAPI endpoints for patient lookup and registration"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...auth import require_staff
from ...database import get_db
from ...models import User
from ...shared.validators import validate_br_phone
from .schemas import (
    PatientBatchRequest,
    PatientBatchResponse,
    PatientCreate,
    PatientListResponse,
    PatientResponse,
)
from .service import PatientService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["Patients"])


def get_patient_service(db: Session = Depends(get_db)) -> PatientService:
    """Dependency injection for PatientService"""
    return PatientService(db)


@router.get("", response_model=PatientListResponse)
def list_patients(
    id: Optional[str] = Query(None),
    phone: Optional[str] = Query(None),
    cpf: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_staff),
    service: PatientService = Depends(get_patient_service),
):
    """Search patients by id, phone, CPF or name fragment"""
    if phone:
        try:
            phone = validate_br_phone(phone)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

    result = service.search_patients(id, phone, cpf, search, limit, offset)
    return PatientListResponse(
        patients=[PatientResponse.model_validate(p) for p in result["patients"]],
        pagination=result["pagination"],
    )


@router.post("", status_code=201)
def create_patient(
    data: PatientCreate,
    current_user: User = Depends(require_staff),
    service: PatientService = Depends(get_patient_service),
):
    patient = service.create_patient(data)
    logger.info(f"👤 Patient {patient.id} registered by {current_user.id}")
    return {
        "patient": PatientResponse.model_validate(patient).model_dump(mode="json"),
        "message": "Paciente criado com sucesso",
    }


@router.post("/batch", response_model=PatientBatchResponse)
def get_patients_batch(
    data: PatientBatchRequest,
    current_user: User = Depends(require_staff),
    service: PatientService = Depends(get_patient_service),
):
    """Fetch up to 100 patients by id; unknown ids are skipped"""
    patients = service.get_patients_by_ids(data.ids)
    return PatientBatchResponse(
        patients=[PatientResponse.model_validate(p) for p in patients], count=len(patients)
    )
