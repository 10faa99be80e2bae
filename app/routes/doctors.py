"""
Doctors API Routes

Lists the doctors that can receive surgical-block appointments.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain.scheduling.schemas import DoctorSummary
from ..models import DOCTOR_ROLES, User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctors", tags=["Doctors"])


@router.get("", response_model=list[DoctorSummary])
def list_doctors(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Active, unblocked doctors ordered by name"""
    doctors = (
        db.query(User)
        .filter(
            User.role.in_(DOCTOR_ROLES),
            User.is_active.is_(True),
            User.is_blocked.is_(False),
        )
        .order_by(User.name.asc())
        .all()
    )
    return [DoctorSummary.model_validate(d) for d in doctors]
