"""Patient repository - Database operations for patients"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Patient


class PatientRepository:
    """Repository for patient database operations"""

    @staticmethod
    def get_by_id(db: Session, patient_id: str) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.id == patient_id).first()

    @staticmethod
    def get_by_phone(db: Session, phone: str) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.phone == phone).first()

    @staticmethod
    def get_by_cpf(db: Session, cpf: str) -> Optional[Patient]:
        return db.query(Patient).filter(Patient.cpf == cpf).first()

    @staticmethod
    def search(
        db: Session,
        patient_id: Optional[str] = None,
        phone: Optional[str] = None,
        cpf: Optional[str] = None,
        name: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Patient], int]:
        """
        Search patients by a single criterion, in priority order id > phone > cpf > name.
        Returns (page, total_count)
        """
        query = db.query(Patient)

        if patient_id:
            query = query.filter(Patient.id == patient_id)
        elif phone:
            query = query.filter(Patient.phone == phone)
        elif cpf:
            query = query.filter(Patient.cpf == cpf)
        elif name:
            query = query.filter(func.lower(Patient.name).contains(name.strip().lower()))

        total = query.count()
        patients = query.order_by(Patient.name.asc()).offset(offset).limit(limit).all()
        return patients, total

    @staticmethod
    def create(db: Session, **patient_data) -> Patient:
        patient = Patient(**patient_data)
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    @staticmethod
    def update(db: Session, patient: Patient, **updates) -> Patient:
        for key, value in updates.items():
            if value is not None and hasattr(patient, key):
                setattr(patient, key, value)
        db.flush()
        return patient

    @staticmethod
    def get_by_ids(db: Session, patient_ids: list[str]) -> list[Patient]:
        return db.query(Patient).filter(Patient.id.in_(patient_ids)).all()
