"""Sliding-window throttling of returning-patient lookups per client IP."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from urgent_care_intake.errors import PersistenceFailure
from urgent_care_intake.stores import RateLimitStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    blocked_until: datetime | None = None


class RateLimiter:
    """Counts attempts per subject and blocks once the window's allowance is spent.

    With ``max_attempts=5`` a subject gets five allowed calls (remaining 4..0);
    the sixth call inside the window starts a block lasting one window. Once
    the block has elapsed the next call opens a fresh window.
    """

    def __init__(
        self,
        store: RateLimitStore,
        max_attempts: int = 5,
        window_minutes: int = 15,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.max_attempts = max_attempts
        self.window_minutes = window_minutes
        self.clock = clock

    def check(
        self,
        subject_id: str,
        max_attempts: int | None = None,
        window_minutes: int | None = None,
    ) -> RateLimitResult:
        """Count one attempt for ``subject_id`` and decide whether it may proceed.

        Fails closed: if the counter store is unavailable the attempt is denied.
        """
        if max_attempts is None:
            max_attempts = self.max_attempts
        if window_minutes is None:
            window_minutes = self.window_minutes
        now = self.clock()

        try:
            record = self.store.record_attempt(subject_id, max_attempts, window_minutes, now)
        except PersistenceFailure:
            logger.exception("Rate limit store unavailable; denying attempt from %s", subject_id)
            return RateLimitResult(allowed=False, remaining=0, blocked_until=None)

        if record.blocked_until is not None and record.blocked_until > now:
            logger.warning(
                "Lookup throttled for %s until %s", subject_id, record.blocked_until.isoformat()
            )
            return RateLimitResult(allowed=False, remaining=0, blocked_until=record.blocked_until)

        return RateLimitResult(
            allowed=True,
            remaining=max(0, max_attempts - record.attempt_count),
            blocked_until=None,
        )
