"""Patient repository with lookup, CRUD operations and audit logging."""

import uuid
from dataclasses import dataclass, fields
from datetime import date, datetime
from pathlib import Path
from typing import Callable

from .connection import to_db_timestamp, transaction


@dataclass
class Patient:
    id: str
    first_name: str
    last_name: str
    date_of_birth: str
    middle_name: str | None = None
    gender: str | None = None
    ssn: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    home_phone: str | None = None
    cell_phone: str | None = None
    email: str | None = None
    marital_status: str | None = None
    emergency_contact_name: str | None = None
    emergency_contact_phone: str | None = None
    emergency_relationship: str | None = None
    insurance_provider: str | None = None
    policy_number: str | None = None
    group_number: str | None = None
    policy_holder_name: str | None = None
    policy_holder_dob: str | None = None
    pcp_name: str | None = None
    pcp_phone: str | None = None
    reason_for_visit: str | None = None
    allergies: str | None = None
    current_medications: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_record(self) -> dict:
        """Editable field values, in form order."""
        return {field: getattr(self, field) for field in PatientRepository.PATIENT_FIELDS}


_COLUMNS = [f.name for f in fields(Patient)]


class PatientRepository:
    """Repository for patient records with field-level change logging."""

    # Fields that can be set on registration and updated on later visits
    PATIENT_FIELDS = [
        "first_name", "middle_name", "last_name", "date_of_birth", "gender", "ssn",
        "address", "city", "state", "zip_code", "home_phone", "cell_phone", "email",
        "marital_status", "emergency_contact_name", "emergency_contact_phone",
        "emergency_relationship", "insurance_provider", "policy_number", "group_number",
        "policy_holder_name", "policy_holder_dob", "pcp_name", "pcp_phone",
        "reason_for_visit", "allergies", "current_medications",
    ]

    def __init__(self, db_path: Path | str | None = None, clock: Callable[[], datetime] = datetime.now):
        self.db_path = db_path
        self.clock = clock

    def find_by_email_and_dob(self, email: str, date_of_birth: date | str) -> Patient | None:
        """Find a patient by case-insensitive email and exact date of birth.

        If more than one record shares the pair, the most recently created wins.
        """
        dob = date_of_birth.isoformat() if isinstance(date_of_birth, date) else date_of_birth
        with transaction(self.db_path) as conn:
            row = conn.execute(
                """SELECT * FROM patients
                   WHERE LOWER(email) = LOWER(?) AND date_of_birth = ?
                   ORDER BY created_at DESC, rowid DESC
                   LIMIT 1""",
                (email.strip(), dob),
            ).fetchone()
        return self._row_to_patient(row) if row else None

    def create(self, patient: Patient, changed_by: str = "system") -> Patient:
        """Create a new patient with audit logging."""
        patient.id = patient.id or str(uuid.uuid4())
        now = to_db_timestamp(self.clock())
        patient.created_at = now
        patient.updated_at = now

        placeholders = ", ".join("?" for _ in _COLUMNS)
        with transaction(self.db_path) as conn:
            conn.execute(
                f"INSERT INTO patients ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                [getattr(patient, column) for column in _COLUMNS],
            )

            # Log creation for each non-null field
            for field in self.PATIENT_FIELDS:
                value = getattr(patient, field)
                if value is not None:
                    self._log_change(conn, patient.id, field, None, str(value), "CREATE", changed_by)

        return patient

    def get_by_id(self, patient_id: str) -> Patient | None:
        """Get a patient by ID."""
        with transaction(self.db_path) as conn:
            row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
        return self._row_to_patient(row) if row else None

    def update(self, patient_id: str, updates: dict, changed_by: str = "system") -> Patient | None:
        """Update patient fields with audit logging. Unknown keys are ignored."""
        with transaction(self.db_path) as conn:
            row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
            if not row:
                return None

            current = dict(row)
            valid_updates = {}
            for field, new_value in updates.items():
                if field not in self.PATIENT_FIELDS:
                    continue
                old_value = current.get(field)
                if old_value != new_value:
                    valid_updates[field] = new_value
                    self._log_change(
                        conn, patient_id, field,
                        str(old_value) if old_value is not None else None,
                        str(new_value) if new_value is not None else None,
                        "UPDATE", changed_by
                    )

            if valid_updates:
                set_clause = ", ".join(f"{field} = ?" for field in valid_updates)
                set_clause += ", updated_at = ?"
                values = list(valid_updates.values()) + [to_db_timestamp(self.clock()), patient_id]
                conn.execute(f"UPDATE patients SET {set_clause} WHERE id = ?", values)

        return self.get_by_id(patient_id)

    def get_change_history(self, patient_id: str, limit: int = 50) -> list[dict]:
        """Get the field-level audit trail for a patient."""
        with transaction(self.db_path) as conn:
            rows = conn.execute(
                """SELECT * FROM patient_change_log
                   WHERE patient_id = ?
                   ORDER BY changed_at DESC, rowid DESC
                   LIMIT ?""",
                (patient_id, limit),
            ).fetchall()
        return [dict(row) for row in rows]

    # Private helpers

    def _log_change(
        self,
        conn,
        patient_id: str,
        field_name: str,
        old_value: str | None,
        new_value: str | None,
        change_type: str,
        changed_by: str
    ) -> None:
        conn.execute("""
            INSERT INTO patient_change_log (id, patient_id, field_name, old_value, new_value, change_type, changed_by)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (str(uuid.uuid4()), patient_id, field_name, old_value, new_value, change_type, changed_by))

    def _row_to_patient(self, row) -> Patient:
        return Patient(**{column: row[column] for column in _COLUMNS})
