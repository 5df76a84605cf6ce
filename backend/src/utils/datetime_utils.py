"""
Datetime utilities for consistent timezone handling across the application.

All persisted timestamps are timezone-aware UTC. Appointment slots are stored
as a calendar date plus zero-padded "HH:MM" strings, so helpers for parsing
and combining those live here as well.
"""

import logging
import re
from datetime import datetime, timezone, date, time
from typing import Optional

logger = logging.getLogger(__name__)

HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def utc_now() -> datetime:
    """Get the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware in UTC.

    Some database backends (SQLite) hand back naive datetimes even for
    timezone-aware columns; those are assumed to already be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def is_valid_hhmm(value: str) -> bool:
    """Check that a value is a zero-padded 24h "HH:MM" string."""
    return bool(HHMM_PATTERN.match(value or ""))


def validate_hhmm(value: str) -> str:
    """Pydantic-friendly validator for "HH:MM" strings."""
    if not isinstance(value, str) or not is_valid_hhmm(value.strip()):
        raise ValueError("Time must be in HH:MM format")
    return value.strip()


def parse_date_string(date_str: str) -> date:
    """
    Parse a YYYY-MM-DD string (an ISO datetime is also accepted, its date part is used).

    Raises:
        ValueError: If the string is not a valid date
    """
    if not date_str:
        raise ValueError("Date is required")
    try:
        return date.fromisoformat(date_str[:10])
    except ValueError as e:
        raise ValueError(f"Invalid date format: {date_str}. Expected YYYY-MM-DD") from e


def combine_date_and_hhmm(day: date, hhmm: str) -> datetime:
    """Combine a calendar date and an "HH:MM" string into a UTC datetime."""
    hours, minutes = (int(part) for part in hhmm.split(":"))
    return datetime.combine(day, time(hours, minutes), tzinfo=timezone.utc)
