"""Storage for submitted wizard pages other than registration."""

import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable

from .connection import to_db_timestamp, transaction


class FormRepository:
    """Stores each page submission as a JSON object keyed by patient, visit and form."""

    def __init__(self, db_path: Path | str | None = None, clock: Callable[[], datetime] = datetime.now):
        self.db_path = db_path
        self.clock = clock

    def save_form(self, patient_id: str, visit_id: str, form_name: str, data: dict) -> str:
        submission_id = str(uuid.uuid4())
        with transaction(self.db_path) as conn:
            conn.execute("""
                INSERT INTO form_submissions (id, patient_id, visit_id, form_name, data, submitted_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (
                submission_id, patient_id, visit_id, form_name,
                json.dumps(data, default=str), to_db_timestamp(self.clock()),
            ))
        return submission_id

    def get_latest_form(self, patient_id: str, form_name: str) -> dict | None:
        """Get the most recent submission of a form for a patient."""
        with transaction(self.db_path) as conn:
            row = conn.execute("""
                SELECT data FROM form_submissions
                WHERE patient_id = ? AND form_name = ?
                ORDER BY submitted_at DESC, rowid DESC
                LIMIT 1
            """, (patient_id, form_name)).fetchone()
        return json.loads(row["data"]) if row else None
