"""Audit trail of returning-patient lookup attempts."""

import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from .connection import to_db_timestamp, transaction


@dataclass
class LookupAttempt:
    lookup_email: str
    lookup_dob: str
    patient_found: bool
    patient_id: str | None = None
    patient_name: str | None = None
    ip_address: str = ""
    user_agent: str = ""
    session_id: str = ""
    looked_up_at: str | None = None
    id: str | None = None


class LookupAuditRepository:
    """Append-only store for lookup attempts.

    Each append runs in its own connection and commit so that it never shares
    the fate of the caller's other writes.
    """

    def __init__(self, db_path: Path | str | None = None, clock: Callable[[], datetime] = datetime.now):
        self.db_path = db_path
        self.clock = clock

    def log_lookup_attempt(self, attempt: LookupAttempt) -> LookupAttempt:
        attempt.id = attempt.id or str(uuid.uuid4())
        attempt.looked_up_at = attempt.looked_up_at or to_db_timestamp(self.clock())

        with transaction(self.db_path) as conn:
            conn.execute("""
                INSERT INTO audit_patient_lookup
                    (id, lookup_email, lookup_dob, patient_found, patient_id, patient_name,
                     ip_address, user_agent, session_id, looked_up_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                attempt.id, attempt.lookup_email, attempt.lookup_dob, int(attempt.patient_found),
                attempt.patient_id, attempt.patient_name, attempt.ip_address, attempt.user_agent,
                attempt.session_id, attempt.looked_up_at,
            ))
        return attempt

    def get_recent_attempts(self, ip_address: str | None = None, limit: int = 50) -> list[LookupAttempt]:
        """Get recent lookup attempts, newest first, optionally for one IP."""
        query = "SELECT * FROM audit_patient_lookup"
        params: list = []
        if ip_address:
            query += " WHERE ip_address = ?"
            params.append(ip_address)
        query += " ORDER BY looked_up_at DESC, rowid DESC LIMIT ?"
        params.append(limit)

        with transaction(self.db_path) as conn:
            rows = conn.execute(query, params).fetchall()

        return [
            LookupAttempt(
                id=row["id"],
                lookup_email=row["lookup_email"],
                lookup_dob=row["lookup_dob"],
                patient_found=bool(row["patient_found"]),
                patient_id=row["patient_id"],
                patient_name=row["patient_name"],
                ip_address=row["ip_address"],
                user_agent=row["user_agent"],
                session_id=row["session_id"],
                looked_up_at=row["looked_up_at"],
            )
            for row in rows
        ]
