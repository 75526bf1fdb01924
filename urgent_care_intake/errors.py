"""Error types raised by the returning-patient intake core."""

import math
from datetime import datetime, timedelta


class IntakeError(Exception):
    """Base class for intake errors."""
    pass


class InvalidInput(IntakeError):
    """Raised when submitted values fail validation.

    ``errors`` maps field names to a user-facing corrective message.
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))


class Throttled(IntakeError):
    """Raised when the rate limiter denies a lookup attempt."""

    def __init__(self, blocked_until: datetime | None, retry_after: timedelta):
        self.blocked_until = blocked_until
        self.retry_after = retry_after
        super().__init__(
            f"Too many lookup attempts. Please try again in {self.retry_after_minutes} minutes."
        )

    @property
    def retry_after_minutes(self) -> int:
        return max(1, math.ceil(self.retry_after.total_seconds() / 60))


class PatientNotFound(IntakeError):
    """Raised when no patient matches the submitted email and date of birth."""

    def __init__(self, email: str):
        self.email = email
        super().__init__(
            "We couldn't find your records. Please check your email and date of birth, "
            "or register as a new patient."
        )


class SessionError(IntakeError):
    """Base class for lookup session errors."""
    pass


class SessionExpired(SessionError):
    """Raised when a lookup session is used past its expiry."""
    pass


class SessionInvalid(SessionError):
    """Raised when a lookup session is missing, revoked or no longer resolves."""
    pass


class PersistenceFailure(IntakeError):
    """Raised when a storage operation fails."""
    pass
