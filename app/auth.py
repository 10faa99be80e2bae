"""
Request identity.

Authentication happens upstream: the identity provider's gateway verifies the
session and forwards the user id in the ``X-User-Id`` header. Here we only
resolve that id to the mirrored staff row and check roles.
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from .database import get_db
from .models import User

logger = logging.getLogger(__name__)

user_id_header = APIKeyHeader(name="X-User-Id", auto_error=False)


def get_current_user(
    user_id: Optional[str] = Depends(user_id_header), db: Session = Depends(get_db)
) -> User:
    if not user_id:
        raise HTTPException(status_code=401, detail="Não autenticado")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"⚠️ Unknown user id forwarded by identity provider: {user_id}")
        raise HTTPException(status_code=401, detail="Não autenticado")

    if not user.is_active or user.is_blocked:
        logger.warning(f"🚫 Inactive or blocked user {user.id} attempted access")
        raise HTTPException(status_code=403, detail="Usuário inativo ou bloqueado")

    return user


def require_doctor(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_doctor:
        raise HTTPException(status_code=403, detail="Apenas médicos podem criar agendamentos")
    return current_user


def require_admin(current_user: User = Depends(get_current_user)) -> User:
    if not current_user.is_admin:
        raise HTTPException(status_code=403, detail="Acesso negado. Apenas administradores.")
    return current_user


def require_staff(current_user: User = Depends(get_current_user)) -> User:
    """Doctors and admins"""
    if not (current_user.is_doctor or current_user.is_admin):
        raise HTTPException(status_code=403, detail="Sem permissão para acessar pacientes")
    return current_user
