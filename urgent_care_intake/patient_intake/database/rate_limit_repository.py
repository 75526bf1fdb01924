"""Per-subject attempt counters for lookup throttling."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from .connection import from_db_timestamp, to_db_timestamp, transaction


@dataclass
class RateLimitRecord:
    identifier: str
    attempt_count: int
    first_attempt_at: datetime
    last_attempt_at: datetime
    blocked_until: datetime | None = None


# One statement per attempt. All CASE branches read the pre-update row, so
# the read-increment-write is atomic per subject across processes.
#   1. active block            -> keep counters and block
#   2. elapsed block or window -> reset to a fresh window with count 1
#   3. count already at max    -> start a block of one window
#   4. otherwise               -> increment
RECORD_ATTEMPT_SQL = """
INSERT INTO rate_limit_tracking (identifier, attempt_count, first_attempt_at, last_attempt_at, blocked_until)
VALUES (:identifier, 1, :now, :now, NULL)
ON CONFLICT(identifier) DO UPDATE SET
    attempt_count = CASE
        WHEN blocked_until > :now THEN attempt_count
        WHEN blocked_until IS NOT NULL OR first_attempt_at < :cutoff THEN 1
        WHEN attempt_count >= :max_attempts THEN attempt_count
        ELSE attempt_count + 1
    END,
    first_attempt_at = CASE
        WHEN blocked_until > :now THEN first_attempt_at
        WHEN blocked_until IS NOT NULL OR first_attempt_at < :cutoff THEN :now
        ELSE first_attempt_at
    END,
    blocked_until = CASE
        WHEN blocked_until > :now THEN blocked_until
        WHEN blocked_until IS NOT NULL OR first_attempt_at < :cutoff THEN NULL
        WHEN attempt_count >= :max_attempts THEN :block_until
        ELSE NULL
    END,
    last_attempt_at = :now
RETURNING identifier, attempt_count, first_attempt_at, last_attempt_at, blocked_until
"""


class RateLimitRepository:
    """SQLite-backed counter store keyed by subject (client IP)."""

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = db_path

    def record_attempt(
        self,
        identifier: str,
        max_attempts: int,
        window_minutes: int,
        now: datetime,
    ) -> RateLimitRecord:
        """Atomically count one attempt and return the resulting counter state."""
        window = timedelta(minutes=window_minutes)
        params = {
            "identifier": identifier,
            "now": to_db_timestamp(now),
            "cutoff": to_db_timestamp(now - window),
            "block_until": to_db_timestamp(now + window),
            "max_attempts": max_attempts,
        }
        with transaction(self.db_path) as conn:
            # Drain the RETURNING cursor so the statement is finished before commit
            rows = conn.execute(RECORD_ATTEMPT_SQL, params).fetchall()
        return self._row_to_record(rows[0])

    def get(self, identifier: str) -> RateLimitRecord | None:
        with transaction(self.db_path) as conn:
            row = conn.execute(
                "SELECT * FROM rate_limit_tracking WHERE identifier = ?", (identifier,)
            ).fetchone()
        return self._row_to_record(row) if row else None

    def clear(self, identifier: str) -> None:
        """Drop a subject's counter, e.g. after staff unblock an address."""
        with transaction(self.db_path) as conn:
            conn.execute("DELETE FROM rate_limit_tracking WHERE identifier = ?", (identifier,))

    def _row_to_record(self, row) -> RateLimitRecord:
        return RateLimitRecord(
            identifier=row["identifier"],
            attempt_count=row["attempt_count"],
            first_attempt_at=from_db_timestamp(row["first_attempt_at"]),
            last_attempt_at=from_db_timestamp(row["last_attempt_at"]),
            blocked_until=from_db_timestamp(row["blocked_until"]),
        )
