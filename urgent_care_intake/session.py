"""Time-bounded lookup sessions gating access to pre-filled forms.

A session moves from active to either expired or revoked and never back.
Issuing again creates a new session rather than reviving an old one.
"""

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable

from urgent_care_intake.errors import SessionExpired, SessionInvalid
from urgent_care_intake.stores import PatientStore, VisitStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_MINUTES = 30


class SessionState(Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


@dataclass
class LookupSession:
    patient_id: str
    visit_id: str
    issued_at: datetime
    expires_at: datetime
    revoked_at: datetime | None = None

    def state(self, now: datetime) -> SessionState:
        if self.revoked_at is not None:
            return SessionState.REVOKED
        if now >= self.expires_at:
            return SessionState.EXPIRED
        return SessionState.ACTIVE

    def as_session_data(self) -> dict:
        """Plain values for the web session store."""
        return {
            "patient_id": self.patient_id,
            "visit_id": self.visit_id,
            "issued_at": self.issued_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "revoked_at": self.revoked_at.isoformat() if self.revoked_at else None,
        }

    @classmethod
    def from_session_data(cls, data: dict | None) -> "LookupSession | None":
        if not data or not data.get("patient_id") or not data.get("visit_id"):
            return None
        return cls(
            patient_id=data["patient_id"],
            visit_id=data["visit_id"],
            issued_at=datetime.fromisoformat(data["issued_at"]),
            expires_at=datetime.fromisoformat(data["expires_at"]),
            revoked_at=datetime.fromisoformat(data["revoked_at"]) if data.get("revoked_at") else None,
        )


class SessionManager:
    """Issues, validates, extends and revokes lookup sessions."""

    def __init__(
        self,
        patients: PatientStore,
        visits: VisitStore,
        ttl_minutes: int = DEFAULT_TTL_MINUTES,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.patients = patients
        self.visits = visits
        self.ttl_minutes = ttl_minutes
        self.clock = clock

    def issue(self, patient_id: str, visit_id: str, ttl_minutes: int | None = None) -> LookupSession:
        if ttl_minutes is None:
            ttl_minutes = self.ttl_minutes
        now = self.clock()
        return LookupSession(
            patient_id=patient_id,
            visit_id=visit_id,
            issued_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        )

    def is_valid(self, session: LookupSession | None) -> bool:
        try:
            self.require(session)
        except (SessionExpired, SessionInvalid):
            return False
        return True

    def require(self, session: LookupSession | None) -> LookupSession:
        """Return the session if usable, otherwise raise SessionExpired or SessionInvalid."""
        if session is None:
            raise SessionInvalid("No lookup session. Please look up your records again.")

        state = session.state(self.clock())
        if state is SessionState.REVOKED:
            raise SessionInvalid("This session has ended. Please look up your records again.")
        if state is SessionState.EXPIRED:
            raise SessionExpired("Your session has expired. Please look up your records again.")

        if self.patients.get_by_id(session.patient_id) is None or self.visits.get_by_id(session.visit_id) is None:
            logger.warning(
                "Lookup session references missing patient %s or visit %s",
                session.patient_id, session.visit_id,
            )
            raise SessionInvalid("Your records could not be loaded. Please look up your records again.")

        return session

    def extend(self, session: LookupSession, ttl_minutes: int | None = None) -> LookupSession:
        """Reset expiry to now + ttl. Expired or revoked sessions cannot be extended."""
        self.require(session)
        if ttl_minutes is None:
            ttl_minutes = self.ttl_minutes
        return dataclasses.replace(session, expires_at=self.clock() + timedelta(minutes=ttl_minutes))

    def revoke(self, session: LookupSession | None) -> None:
        if session is not None and session.revoked_at is None:
            session.revoked_at = self.clock()
