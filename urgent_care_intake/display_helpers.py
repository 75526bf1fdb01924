"""Formatting helpers for showing stored patient data back to the patient."""

import re
from datetime import date, datetime


def mask_ssn(ssn: str | None) -> str:
    """Mask SSN for display, keeping only the last four digits (XXX-XX-1234)."""
    if not ssn:
        return ""
    digits = re.sub(r"\D", "", ssn)
    if len(digits) < 4:
        return "XXX-XX-XXXX"
    return f"XXX-XX-{digits[-4:]}"


def format_date_display(value: str | date | None, fmt: str | None = None) -> str:
    """Format a stored date for display, e.g. 'May 5, 1985'.

    Unparseable values are returned as-is.
    """
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    if fmt:
        return value.strftime(fmt)
    return f"{value.strftime('%B')} {value.day}, {value.year}"


_UNITS = [
    (31536000, "year"),
    (2592000, "month"),
    (604800, "week"),
    (86400, "day"),
    (3600, "hour"),
    (60, "minute"),
]


def time_since_visit(visit_date: str | datetime | None, now: datetime | None = None) -> str:
    """Human-readable time since a visit, e.g. '3 weeks ago'."""
    if not visit_date:
        return "Unknown"
    if isinstance(visit_date, str):
        try:
            visit_date = datetime.fromisoformat(visit_date)
        except ValueError:
            return "Unknown"

    diff = ((now or datetime.now()) - visit_date).total_seconds()
    if diff < 60:
        return "Just now"
    for seconds, unit in _UNITS:
        if diff >= seconds:
            count = int(diff // seconds)
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    return "Just now"
