"""Patient service - Business logic for patient identity"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ...models import Patient
from ..scheduling.exceptions import PatientIdentityConflict, PatientPersistenceFailed
from .repository import PatientRepository
from .schemas import PatientCreate, PatientSummary

logger = logging.getLogger(__name__)


class PatientService:
    """Service layer for patient business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PatientRepository()

    def resolve_or_create_patient(self, phone: str, name: str, birth_date: date) -> str:
        """
        Find a patient by phone or create one. Returns the patient id.

        An existing patient is returned untouched even when name or birth date
        differ: the first write wins, corrections go through appointment update.
        """
        try:
            existing = self.repo.get_by_phone(self.db, phone)
            if existing:
                logger.debug(f"Patient {existing.id} found for phone {phone}")
                return existing.id

            patient = self.repo.create(self.db, name=name, birth_date=birth_date, phone=phone)
            logger.info(f"✅ Created patient {patient.id}")
            return patient.id

        except IntegrityError:
            # Another request created the same phone between our lookup and insert
            self.db.rollback()
            winner = self.repo.get_by_phone(self.db, phone)
            if winner:
                logger.info(f"🔁 Patient for phone {phone} created concurrently, reusing {winner.id}")
                return winner.id
            logger.error(f"❌ Patient insert rejected for phone {phone} and no row found")
            raise PatientPersistenceFailed()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"❌ Failed to resolve patient for phone {phone}: {e}")
            raise PatientPersistenceFailed() from e

    def search_patients(
        self,
        patient_id: Optional[str] = None,
        phone: Optional[str] = None,
        cpf: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> dict:
        patients, total = self.repo.search(self.db, patient_id, phone, cpf, search, limit, offset)
        return {
            "patients": patients,
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "hasMore": total > offset + limit,
            },
        }

    def get_patients_by_ids(self, patient_ids: list[str]) -> list[Patient]:
        return self.repo.get_by_ids(self.db, list(dict.fromkeys(patient_ids)))

    def create_patient(self, data: PatientCreate) -> Patient:
        """Register a patient, refusing duplicate phone or CPF"""
        existing = self.repo.get_by_phone(self.db, data.phone)
        if existing:
            raise PatientIdentityConflict(
                message=f"Já existe um paciente com este telefone: {existing.name}",
                patient=PatientSummary.model_validate(existing).model_dump(mode="json"),
            )

        if data.cpf:
            existing = self.repo.get_by_cpf(self.db, data.cpf)
            if existing:
                raise PatientIdentityConflict(
                    message=f"Já existe um paciente com este CPF: {existing.name}",
                    patient=PatientSummary.model_validate(existing).model_dump(mode="json"),
                )

        try:
            patient = self.repo.create(
                self.db,
                name=data.name,
                birth_date=data.birth_date,
                phone=data.phone,
                cpf=data.cpf,
            )
        except IntegrityError:
            self.db.rollback()
            raise PatientIdentityConflict()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"❌ Failed to create patient: {e}")
            raise PatientPersistenceFailed() from e

        logger.info(f"✅ Patient {patient.id} registered")
        return patient
