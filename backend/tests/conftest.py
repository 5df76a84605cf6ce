"""
Test configuration and shared fixtures for the clinic management test suite.

Each test gets a fresh in-memory SQLite database built from the model
metadata. The FastAPI app shares the test's session through a `get_db`
dependency override, so data created in a test is visible to requests.
"""

import os

# Must be set before core.config is imported
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENVIRONMENT", "test")

from typing import Dict, Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from core.constants import ROLE_ADMIN, ROLE_DOCTOR, ROLE_PATIENT, ROLE_RECEPTIONIST
from core.database import Base, get_db
from core.tenant import TenantScope
from models import Clinic, Doctor, Patient, User
from services.jwt_service import TokenPayload, jwt_service

TEST_PASSWORD = "password123"
_password_hash_cache: Dict[str, str] = {}


def _hashed(password: str) -> str:
    # bcrypt is deliberately slow; hash each distinct test password once
    if password not in _password_hash_cache:
        _password_hash_cache[password] = jwt_service.hash_password(password)
    return _password_hash_cache[password]


@pytest.fixture(scope="function")
def db_engine():
    """In-memory SQLite engine shared by every connection of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):  # type: ignore
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Provide a database session for a test."""
    TestingSession = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """TestClient whose requests use the test's database session."""
    from main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


# Helper functions for creating clinic data
def create_clinic(db_session: Session, name: str = "Test Clinic") -> Clinic:
    clinic = Clinic(name=name, email=f"{name.lower().replace(' ', '.')}@example.com", settings={})
    db_session.add(clinic)
    db_session.commit()
    return clinic


def create_user(
    db_session: Session,
    clinic: Clinic,
    role: str,
    email: str,
    first_name: str = "Test",
    last_name: str = "User",
    password: str = TEST_PASSWORD,
    is_active: bool = True,
) -> User:
    """Create a user directly in `clinic`, bypassing the API."""
    user = User(
        email=email,
        password_hash=_hashed(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
        clinic_id=clinic.id,
        is_active=is_active,
    )
    db_session.add(user)
    db_session.commit()
    return user


def create_doctor(
    db_session: Session,
    clinic: Clinic,
    email: str,
    first_name: str = "Gregory",
    last_name: str = "House",
    specialization: Optional[str] = "General Practice",
) -> Doctor:
    user = create_user(db_session, clinic, ROLE_DOCTOR, email, first_name=first_name, last_name=last_name)
    doctor = Doctor(user_id=user.id, specialization=specialization, availability={})
    TenantScope(db_session, clinic.id).add(doctor)
    db_session.commit()
    return doctor


def create_patient(
    db_session: Session,
    clinic: Clinic,
    email: str,
    first_name: str = "Jane",
    last_name: str = "Doe",
) -> Patient:
    user = create_user(db_session, clinic, ROLE_PATIENT, email, first_name=first_name, last_name=last_name)
    patient = Patient(user_id=user.id, gender="FEMALE")
    TenantScope(db_session, clinic.id).add(patient)
    db_session.commit()
    return patient


def auth_headers(user: User, clinic_name: Optional[str] = None) -> Dict[str, str]:
    """Bearer header carrying a session token for `user`."""
    token = jwt_service.create_access_token(TokenPayload(
        sub=str(user.id),
        email=user.email,
        role=user.role,
        clinic_id=user.clinic_id,
        clinic_name=clinic_name,
        name=user.full_name,
    ))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def clinic(db_session: Session) -> Clinic:
    return create_clinic(db_session, "Sunrise Clinic")


@pytest.fixture
def other_clinic(db_session: Session) -> Clinic:
    return create_clinic(db_session, "Harbor Clinic")


@pytest.fixture
def admin(db_session: Session, clinic: Clinic) -> User:
    return create_user(db_session, clinic, ROLE_ADMIN, "admin@sunrise.example.com", "Alice", "Admin")


@pytest.fixture
def receptionist(db_session: Session, clinic: Clinic) -> User:
    return create_user(db_session, clinic, ROLE_RECEPTIONIST, "desk@sunrise.example.com", "Rita", "Desk")


@pytest.fixture
def doctor(db_session: Session, clinic: Clinic) -> Doctor:
    return create_doctor(db_session, clinic, "doctor@sunrise.example.com")


@pytest.fixture
def patient(db_session: Session, clinic: Clinic) -> Patient:
    return create_patient(db_session, clinic, "jane@sunrise.example.com")


@pytest.fixture
def admin_headers(admin: User) -> Dict[str, str]:
    return auth_headers(admin, "Sunrise Clinic")


@pytest.fixture
def receptionist_headers(receptionist: User) -> Dict[str, str]:
    return auth_headers(receptionist, "Sunrise Clinic")


@pytest.fixture
def doctor_headers(doctor: Doctor) -> Dict[str, str]:
    return auth_headers(doctor.user, "Sunrise Clinic")


@pytest.fixture
def patient_headers(patient: Patient) -> Dict[str, str]:
    return auth_headers(patient.user, "Sunrise Clinic")
