"""Settings for the intake core, read from the environment and ``.env``."""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=True)

DEFAULT_DB_PATH = Path(__file__).parent / "patient_intake" / "patient_intake.db"


@dataclass
class IntakeSettings:
    """Runtime settings for lookups, sessions and storage."""
    database_path: Path = field(
        default_factory=lambda: Path(os.getenv("INTAKE_DB_PATH", str(DEFAULT_DB_PATH)))
    )

    # Returning-patient lookup throttling, per client IP
    lookup_max_attempts: int = field(default_factory=lambda: int(os.getenv("LOOKUP_MAX_ATTEMPTS", "5")))
    lookup_window_minutes: int = field(default_factory=lambda: int(os.getenv("LOOKUP_WINDOW_MINUTES", "15")))

    session_ttl_minutes: int = field(default_factory=lambda: int(os.getenv("LOOKUP_SESSION_TTL_MINUTES", "30")))
    dob_max_age_years: int = field(default_factory=lambda: int(os.getenv("DOB_MAX_AGE_YEARS", "120")))

    log_level: str = field(default_factory=lambda: os.getenv("INTAKE_LOG_LEVEL", "INFO"))


@lru_cache()
def get_settings() -> IntakeSettings:
    """Get the cached settings instance."""
    return IntakeSettings()
