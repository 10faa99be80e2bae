"""Scheduling domain errors.

Every error carries the HTTP status it maps to and a human-readable message.
``extra`` holds structured detail (offending field, current status, colliding
records) that is merged into the JSON error body.
"""

from typing import Any, Optional


class SchedulingError(Exception):
    status_code = 400
    default_message = "Requisição inválida"

    def __init__(self, message: Optional[str] = None, **extra: Any):
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, **self.extra}


# Validation


class InvalidSlotWindow(SchedulingError):
    default_message = "Hora de término deve ser posterior à hora de início"


class InvalidTimeRange(SchedulingError):
    default_message = "Intervalo de horário inválido"


class PastStartTime(SchedulingError):
    default_message = "Não é possível agendar no passado"


class InvalidStatus(SchedulingError):
    default_message = "Status inválido"


# Authorization


class Forbidden(SchedulingError):
    status_code = 403
    default_message = "Você não tem permissão para alterar este agendamento"


# Lookup


class AppointmentNotFound(SchedulingError):
    status_code = 404
    default_message = "Agendamento não encontrado"


class PatientNotFound(SchedulingError):
    status_code = 404
    default_message = "Paciente não encontrado"


# State


class NotEditable(SchedulingError):
    status_code = 409
    default_message = "Apenas agendamentos pendentes podem ser alterados"


class InvalidTransition(SchedulingError):
    status_code = 409
    default_message = "Transição de status não permitida"


# Conflict


class SchedulingConflict(SchedulingError):
    status_code = 409
    default_message = "Você já possui um agendamento neste horário"


class PatientIdentityConflict(SchedulingError):
    status_code = 409
    default_message = "Paciente já existe"


# Data access. The message is generic; the cause is only logged.


class DataAccessError(SchedulingError):
    status_code = 500
    default_message = "Erro interno do servidor"


class AvailabilityQueryFailed(DataAccessError):
    pass


class ConflictQueryFailed(DataAccessError):
    pass


class PatientPersistenceFailed(DataAccessError):
    pass


class AppointmentPersistenceFailed(DataAccessError):
    pass
