import os
import uuid
from datetime import date, datetime

# Must be set before the app modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
from fastapi import Depends  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from app.database import Base, SessionLocal, engine, get_db  # noqa: E402
from app.domain.scheduling.router import get_appointment_service  # noqa: E402
from app.domain.scheduling.service import AppointmentService  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Appointment, Patient, User  # noqa: E402

# Clinic wall clock used throughout the tests
FIXED_NOW = datetime(2030, 3, 10, 9, 15)
BOOKING_DAY = "2030-03-11"


def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def service(db):
    return AppointmentService(db, now=fixed_now)


@pytest.fixture
def client(db):
    def override_service(session: Session = Depends(get_db)) -> AppointmentService:
        return AppointmentService(session, now=fixed_now)

    app.dependency_overrides[get_appointment_service] = override_service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    def _make(role="DOCTOR", name="Dr. Teste", **kwargs):
        user = User(
            email=f"{uuid.uuid4().hex[:12]}@clinica.test",
            name=name,
            role=role,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def doctor(make_user):
    return make_user(role="DOCTOR", name="Dra. Ana Souza", medical_license="CRM-RS 12345")


@pytest.fixture
def other_doctor(make_user):
    return make_user(role="MEDICO", name="Dr. Bruno Lima")


@pytest.fixture
def admin(make_user):
    return make_user(role="ADMIN", name="Carla Admin")


@pytest.fixture
def make_patient(db):
    def _make(phone="(51) 99999-8888", name="Maria da Silva", cpf=None):
        patient = Patient(name=name, birth_date=date(1980, 5, 20), phone=phone, cpf=cpf)
        db.add(patient)
        db.commit()
        db.refresh(patient)
        return patient

    return _make


@pytest.fixture
def make_appointment(db, make_patient):
    def _make(doctor, start, end, status="PENDING", patient=None):
        if patient is None:
            digits = f"{uuid.uuid4().int % 10**8:08d}"
            patient = make_patient(phone=f"(51) 9{digits[:4]}-{digits[4:]}")
        appointment = Appointment(
            doctor_id=doctor.id,
            patient_id=patient.id,
            procedure="Artroscopia de joelho",
            start_date_time=start,
            end_date_time=end,
            insurance="UNIMED",
            special_needs="Nenhuma",
            status=status,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make


def request_payload(**overrides) -> dict:
    payload = {
        "selectedDate": BOOKING_DAY,
        "selectedTime": "10:00",
        "estimatedEndTime": "11:00",
        "patientName": "Maria da Silva",
        "birthDate": "20/05/1980",
        "procedure": "Artroscopia de joelho",
        "specialNeeds": "Nenhuma",
        "patientPhone": "(51) 99999-8888",
        "insurance": "UNIMED",
    }
    payload.update(overrides)
    return payload


def auth(user) -> dict:
    return {"X-User-Id": user.id}
