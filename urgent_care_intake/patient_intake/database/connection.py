"""Database connection manager for SQLite."""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

from urgent_care_intake.config import get_settings
from urgent_care_intake.errors import PersistenceFailure

from .schema import SCHEMA

logger = logging.getLogger(__name__)


def get_connection(db_path: Path | str | None = None) -> sqlite3.Connection:
    """Get a database connection with row factory enabled."""
    conn = sqlite3.connect(db_path or get_settings().database_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def transaction(db_path: Path | str | None = None) -> Iterator[sqlite3.Connection]:
    """Open a connection, commit on success and roll back on error.

    Any ``sqlite3.Error`` (including failure to connect) is re-raised as
    ``PersistenceFailure``.
    """
    try:
        conn = get_connection(db_path)
    except sqlite3.Error as e:
        logger.error("Database unavailable: %s", e)
        raise PersistenceFailure(f"Database unavailable: {e}") from e

    try:
        yield conn
        conn.commit()
    except sqlite3.Error as e:
        conn.rollback()
        logger.error("Database operation failed: %s", e)
        raise PersistenceFailure(f"Database operation failed: {e}") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def init_database(db_path: Path | str | None = None) -> None:
    """Initialize the database with schema."""
    with transaction(db_path) as conn:
        conn.executescript(SCHEMA)


def to_db_timestamp(value: datetime) -> str:
    """Format a timestamp so stored values sort and compare as text."""
    return value.isoformat(sep=" ", timespec="microseconds")


def from_db_timestamp(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None
