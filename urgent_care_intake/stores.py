"""Narrow persistence ports the intake core depends on.

The SQLite repositories in ``patient_intake.database`` implement these; tests
may substitute anything with the same methods.
"""

from datetime import date, datetime
from typing import Protocol

from urgent_care_intake.client import ClientInfo
from urgent_care_intake.patient_intake.database import (
    LookupAttempt,
    Patient,
    RateLimitRecord,
    Visit,
)


class RateLimitStore(Protocol):
    def record_attempt(
        self, identifier: str, max_attempts: int, window_minutes: int, now: datetime
    ) -> RateLimitRecord: ...


class PatientStore(Protocol):
    def find_by_email_and_dob(self, email: str, date_of_birth: date | str) -> Patient | None: ...

    def get_by_id(self, patient_id: str) -> Patient | None: ...

    def create(self, patient: Patient, changed_by: str = "system") -> Patient: ...

    def update(self, patient_id: str, updates: dict, changed_by: str = "system") -> Patient | None: ...


class VisitStore(Protocol):
    def create_visit(self, patient_id: str, visit_type: str, client: ClientInfo | None = None) -> Visit: ...

    def get_by_id(self, visit_id: str) -> Visit | None: ...

    def get_last_visit(self, patient_id: str, exclude_visit_id: str | None = None) -> Visit | None: ...

    def attach_changes(
        self, visit_id: str, updated_fields: str, fields_changed_count: int, reason_for_visit: str | None
    ) -> bool: ...

    def complete_visit(self, visit_id: str) -> bool: ...


class AuditStore(Protocol):
    def log_lookup_attempt(self, attempt: LookupAttempt) -> LookupAttempt: ...


class FormStore(Protocol):
    def save_form(self, patient_id: str, visit_id: str, form_name: str, data: dict) -> str: ...

    def get_latest_form(self, patient_id: str, form_name: str) -> dict | None: ...
