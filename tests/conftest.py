"""Shared pytest fixtures."""

from datetime import datetime, timedelta

import pytest

from urgent_care_intake.client import ClientInfo
from urgent_care_intake.config import IntakeSettings
from urgent_care_intake.patient_intake.database import (
    FormRepository,
    LookupAuditRepository,
    Patient,
    PatientRepository,
    RateLimitRepository,
    VisitRepository,
    init_database,
)
from urgent_care_intake.returning_patient import ReturningPatientService


class FakeClock:
    """Controllable clock; call it like datetime.now."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def db_path(tmp_path):
    """Fresh database for each test."""
    path = tmp_path / "intake.db"
    init_database(path)
    return path


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 9, 0, 0))


@pytest.fixture
def settings(db_path):
    return IntakeSettings(
        database_path=db_path,
        lookup_max_attempts=5,
        lookup_window_minutes=15,
        session_ttl_minutes=30,
        dob_max_age_years=120,
        log_level="DEBUG",
    )


@pytest.fixture
def patient_repo(db_path, clock):
    return PatientRepository(db_path, clock=clock)


@pytest.fixture
def visit_repo(db_path, clock):
    return VisitRepository(db_path, clock=clock)


@pytest.fixture
def audit_repo(db_path, clock):
    return LookupAuditRepository(db_path, clock=clock)


@pytest.fixture
def rate_limit_repo(db_path):
    return RateLimitRepository(db_path)


@pytest.fixture
def form_repo(db_path, clock):
    return FormRepository(db_path, clock=clock)


@pytest.fixture
def service(patient_repo, visit_repo, audit_repo, rate_limit_repo, form_repo, settings, clock):
    return ReturningPatientService(
        patients=patient_repo,
        visits=visit_repo,
        audit=audit_repo,
        rate_limits=rate_limit_repo,
        forms=form_repo,
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def client():
    return ClientInfo(ip_address="10.0.0.5", user_agent="pytest", session_id="sess-1")


@pytest.fixture
def pat(patient_repo):
    """A stored returning patient with every required registration field."""
    patient = Patient(
        id="p-pat",
        first_name="Pat",
        last_name="Example",
        date_of_birth="1985-05-05",
        gender="Female",
        address="123 Main St",
        city="Springfield",
        state="IL",
        zip_code="62701",
        cell_phone="5551234567",
        email="pat@example.com",
        emergency_contact_name="Sam Example",
        emergency_contact_phone="5559876543",
        emergency_relationship="Sibling",
        insurance_provider="Aetna",
        reason_for_visit="Sore throat",
    )
    return patient_repo.create(patient, changed_by="test")
