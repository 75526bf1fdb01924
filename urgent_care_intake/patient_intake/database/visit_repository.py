"""Visit repository: one row per patient encounter."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from urgent_care_intake.client import ClientInfo

from .connection import to_db_timestamp, transaction


@dataclass
class Visit:
    id: str
    patient_id: str
    visit_type: str
    reason_for_visit: str | None = None
    updated_fields: str | None = None
    fields_changed_count: int = 0
    status: str = "open"
    all_forms_completed: bool = False
    ip_address: str | None = None
    user_agent: str | None = None
    session_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    completed_at: str | None = None


class VisitRepository:
    """Repository for visit records."""

    def __init__(self, db_path: Path | str | None = None, clock: Callable[[], datetime] = datetime.now):
        self.db_path = db_path
        self.clock = clock

    def create_visit(self, patient_id: str, visit_type: str, client: ClientInfo | None = None) -> Visit:
        """Create a new open visit record."""
        client = client or ClientInfo()
        visit_id = str(uuid.uuid4())
        now = to_db_timestamp(self.clock())

        with transaction(self.db_path) as conn:
            conn.execute("""
                INSERT INTO patient_visits
                    (id, patient_id, visit_type, status, ip_address, user_agent, session_id, created_at)
                VALUES (?, ?, ?, 'open', ?, ?, ?, ?)
            """, (visit_id, patient_id, visit_type, client.ip_address, client.user_agent, client.session_id, now))

        return Visit(
            id=visit_id,
            patient_id=patient_id,
            visit_type=visit_type,
            ip_address=client.ip_address,
            user_agent=client.user_agent,
            session_id=client.session_id,
            created_at=now,
        )

    def get_by_id(self, visit_id: str) -> Visit | None:
        with transaction(self.db_path) as conn:
            row = conn.execute("SELECT * FROM patient_visits WHERE id = ?", (visit_id,)).fetchone()
        return self._row_to_visit(row) if row else None

    def get_visit_history(self, patient_id: str, limit: int | None = None) -> list[Visit]:
        """Get visit history for a patient, newest first."""
        query = "SELECT * FROM patient_visits WHERE patient_id = ? ORDER BY created_at DESC, rowid DESC"
        params: list = [patient_id]
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with transaction(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_visit(row) for row in rows]

    def get_last_visit(self, patient_id: str, exclude_visit_id: str | None = None) -> Visit | None:
        """Get the most recent visit, optionally skipping the one in progress."""
        for visit in self.get_visit_history(patient_id, limit=2):
            if visit.id != exclude_visit_id:
                return visit
        return None

    def attach_changes(
        self,
        visit_id: str,
        updated_fields: str,
        fields_changed_count: int,
        reason_for_visit: str | None,
    ) -> bool:
        """Overwrite the visit's change summary. Completed visits are left untouched."""
        with transaction(self.db_path) as conn:
            cursor = conn.execute("""
                UPDATE patient_visits
                SET updated_fields = ?,
                    fields_changed_count = ?,
                    reason_for_visit = COALESCE(?, reason_for_visit),
                    status = 'updated',
                    updated_at = ?
                WHERE id = ? AND status != 'completed'
            """, (updated_fields, fields_changed_count, reason_for_visit, to_db_timestamp(self.clock()), visit_id))
            return cursor.rowcount > 0

    def complete_visit(self, visit_id: str) -> bool:
        """Mark an open or updated visit completed."""
        with transaction(self.db_path) as conn:
            cursor = conn.execute("""
                UPDATE patient_visits
                SET all_forms_completed = 1,
                    status = 'completed',
                    completed_at = ?
                WHERE id = ? AND status != 'completed'
            """, (to_db_timestamp(self.clock()), visit_id))
            return cursor.rowcount > 0

    def _row_to_visit(self, row) -> Visit:
        return Visit(
            id=row["id"],
            patient_id=row["patient_id"],
            visit_type=row["visit_type"],
            reason_for_visit=row["reason_for_visit"],
            updated_fields=row["updated_fields"],
            fields_changed_count=row["fields_changed_count"] or 0,
            status=row["status"],
            all_forms_completed=bool(row["all_forms_completed"]),
            ip_address=row["ip_address"],
            user_agent=row["user_agent"],
            session_id=row["session_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
        )
