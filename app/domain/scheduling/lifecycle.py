"""
Appointment lifecycle: transition table and audit trail.

    PENDING ──► CONFIRMADO ──► CONCLUIDO
       │            │
       ├──► REJEITADO
       └────────────┴──► CANCELADO

REJEITADO, CANCELADO and CONCLUIDO are terminal.
"""

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...config import HISTORY_WRITE_ATTEMPTS
from ...models import AppointmentStatus, HistoryAction
from .exceptions import InvalidStatus, InvalidTransition
from .repository import HistoryRepository

logger = logging.getLogger(__name__)
deadletter_logger = logging.getLogger("app.audit.deadletter")

S = AppointmentStatus

TRANSITIONS: dict[AppointmentStatus, frozenset] = {
    S.PENDING: frozenset({S.CONFIRMADO, S.REJEITADO, S.CANCELADO}),
    S.CONFIRMADO: frozenset({S.CANCELADO, S.CONCLUIDO}),
    S.REJEITADO: frozenset(),
    S.CANCELADO: frozenset(),
    S.CONCLUIDO: frozenset(),
}

# Statuses an admin may request; PENDING is only entered on creation
ADMIN_TARGET_STATUSES = (S.CONFIRMADO, S.REJEITADO, S.CANCELADO, S.CONCLUIDO)

DEFAULT_REJECTION_REASON = "Rejeitado pelo administrador sem motivo especificado"


def parse_target_status(value: str) -> AppointmentStatus:
    try:
        status = AppointmentStatus(value)
    except ValueError:
        raise InvalidStatus(field="status", allowed=[s.value for s in ADMIN_TARGET_STATUSES]) from None
    if status not in ADMIN_TARGET_STATUSES:
        raise InvalidStatus(field="status", allowed=[s.value for s in ADMIN_TARGET_STATUSES])
    return status


def allowed_next(current: str) -> frozenset:
    try:
        return TRANSITIONS[AppointmentStatus(current)]
    except ValueError:
        return frozenset()


def ensure_transition_allowed(current: str, target: AppointmentStatus) -> None:
    allowed = allowed_next(current)
    if target not in allowed:
        raise InvalidTransition(
            f"Não é possível alterar o status de {current} para {target.value}",
            status=current,
            allowed=sorted(s.value for s in allowed),
        )


def history_action_for(target: AppointmentStatus) -> HistoryAction:
    if target == S.CANCELADO:
        return HistoryAction.CANCELLED
    if target == S.CONCLUIDO:
        return HistoryAction.COMPLETED
    return HistoryAction.STATUS_CHANGED


def record_history(
    db: Session,
    appointment_id: str,
    changed_by: Optional[str],
    action: HistoryAction,
    old_status: Optional[str] = None,
    new_status: Optional[str] = None,
    notes: Optional[str] = None,
) -> bool:
    """
    Append an audit row after the primary change has been committed.

    Failures are retried and then handed to the dead-letter logger; they never
    propagate, so the committed change stays in place. Returns whether the row
    was written.
    """
    entry = {
        "appointment_id": appointment_id,
        "changed_by": changed_by,
        "action": action.value,
        "old_status": old_status,
        "new_status": new_status,
        "notes": notes,
    }

    attempts = max(1, HISTORY_WRITE_ATTEMPTS)
    for attempt in range(1, attempts + 1):
        try:
            HistoryRepository.append(db, **entry)
            return True
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning(
                f"⚠️ History write failed for appointment {appointment_id} "
                f"(attempt {attempt}/{attempts}): {e}"
            )

    deadletter_logger.error(f"Dropped appointment history entry: {entry}")
    return False
