"""Scheduling router - FastAPI endpoints for surgical-block appointments"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_doctor
from ...config import SCHEDULE_REQUEST_RATE_LIMIT, SCHEDULE_REQUEST_RATE_WINDOW
from ...database import get_db
from ...models import Appointment, User
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AppointmentComplete,
    AppointmentListResponse,
    AppointmentMessageResponse,
    AppointmentRequest,
    AppointmentWithDetails,
    AvailableSlotsRequest,
    AvailableSlotsResponse,
    CheckAvailabilityRequest,
    CheckAvailabilityResponse,
    DocumentResponse,
    HistoryResponse,
    StatusUpdateRequest,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedules", tags=["Schedules"])
admin_router = APIRouter(prefix="/admin/schedules", tags=["Admin"])
documents_router = APIRouter(prefix="/appointments", tags=["Documents"])

rate_limit_schedule_request = create_rate_limiter(
    limit=SCHEDULE_REQUEST_RATE_LIMIT,
    window_seconds=SCHEDULE_REQUEST_RATE_WINDOW,
    key_prefix="schedule_request",
)


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def _details(appointment: Appointment) -> AppointmentWithDetails:
    return AppointmentWithDetails.model_validate(appointment)


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.post("/available-slots", response_model=AvailableSlotsResponse)
def get_available_slots(
    data: AvailableSlotsRequest,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Free and occupied slots of a doctor's day. Defaults to the caller's own agenda."""
    return service.get_availability(
        data.doctorId or current_user.id,
        data.date,
        data.startHour,
        data.endHour,
        data.slotDuration,
    )


@router.post("/check-availability", response_model=CheckAvailabilityResponse)
def check_availability(
    data: CheckAvailabilityRequest,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.check_availability(
        data.doctorId or current_user.id, data.date, data.startTime, data.endTime
    )


# ============================================================================
# DOCTOR OPERATIONS
# ============================================================================


@router.post("/request", response_model=AppointmentMessageResponse, status_code=201)
def request_appointment(
    data: AppointmentRequest,
    current_user: User = Depends(require_doctor),
    service: AppointmentService = Depends(get_appointment_service),
    _: None = Depends(rate_limit_schedule_request),
):
    """Request a surgical-block slot. The appointment starts as PENDING."""
    appointment = service.create_appointment(data, current_user)
    return AppointmentMessageResponse(
        appointment=_details(appointment), message="Solicitação enviada com sucesso!"
    )


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    date: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = service.list_appointments(date, startDate, endDate, limit)
    return AppointmentListResponse(
        appointments=[_details(a) for a in appointments], count=len(appointments)
    )


@router.get("/{appointment_id}", response_model=AppointmentWithDetails)
def get_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return _details(service.get_visible_appointment(appointment_id, current_user))


@router.put("/{appointment_id}", response_model=AppointmentMessageResponse)
def update_appointment(
    appointment_id: str,
    data: AppointmentRequest,
    current_user: User = Depends(require_doctor),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Edit a pending appointment, patient data included"""
    appointment = service.update_appointment(appointment_id, data, current_user)
    return AppointmentMessageResponse(
        appointment=_details(appointment), message="Agendamento atualizado com sucesso!"
    )


@router.delete("/{appointment_id}")
def delete_appointment(
    appointment_id: str,
    current_user: User = Depends(require_doctor),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.delete_appointment(appointment_id, current_user)


# ============================================================================
# ADMIN OPERATIONS
# ============================================================================


@admin_router.get("", response_model=AppointmentListResponse)
def admin_list_appointments(
    status: Optional[str] = Query(None),
    dateFrom: Optional[str] = Query(None),
    dateTo: Optional[str] = Query(None),
    doctorId: Optional[str] = Query(None),
    patientSearch: Optional[str] = Query(None),
    current_user: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = service.search_appointments(status, dateFrom, dateTo, doctorId, patientSearch)
    return AppointmentListResponse(
        appointments=[_details(a) for a in appointments], count=len(appointments)
    )


@admin_router.get("/{appointment_id}", response_model=AppointmentComplete)
def admin_get_appointment(
    appointment_id: str,
    current_user: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointment = service.get_appointment(appointment_id)
    return AppointmentComplete(
        **_details(appointment).model_dump(),
        documents=[
            DocumentResponse.model_validate(d)
            for d in service.get_documents(appointment_id, current_user)
        ],
        history=[HistoryResponse.model_validate(h) for h in service.get_history(appointment_id)],
    )


@admin_router.patch("/{appointment_id}/status", response_model=AppointmentMessageResponse)
def update_appointment_status(
    appointment_id: str,
    data: StatusUpdateRequest,
    current_user: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Confirm, reject, cancel or complete an appointment"""
    appointment = service.transition_status(appointment_id, current_user, data.status, data.notes)
    return AppointmentMessageResponse(
        appointment=_details(appointment),
        message=f"Status atualizado para {appointment.status}",
    )


# ============================================================================
# DOCUMENTS
# ============================================================================


@documents_router.get("/{appointment_id}/documents", response_model=list[DocumentResponse])
def list_documents(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return [
        DocumentResponse.model_validate(d)
        for d in service.get_documents(appointment_id, current_user)
    ]
