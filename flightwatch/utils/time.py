"""
Date handling utilities for flight references.

The flight data service reports times as "YYYY-MM-DD HH:MM+HH:MM" strings
(local) and "YYYY-MM-DD HH:MMZ" strings (UTC). Watchlist identity uses the
local departure date only.
"""

from datetime import date, datetime, timezone
from typing import Optional

DATE_FORMAT = "%Y-%m-%d"


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_date(value: date) -> str:
    """Format a date as YYYY-MM-DD for the flight API."""
    return value.strftime(DATE_FORMAT)


def parse_date(value: str) -> date:
    """
    Parse a YYYY-MM-DD string.

    Raises:
        ValueError: If the string is not a valid calendar date
    """
    if not isinstance(value, str) or len(value) != 10:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    return datetime.strptime(value, DATE_FORMAT).date()


def is_valid_date(value: str) -> bool:
    """Return True if value is a YYYY-MM-DD calendar date."""
    try:
        parse_date(value)
    except (TypeError, ValueError):
        return False
    return True


def normalize_date(value: "str | date") -> str:
    """Accept a date or a YYYY-MM-DD string and return the canonical string."""
    if isinstance(value, datetime):
        return format_date(value.date())
    if isinstance(value, date):
        return format_date(value)
    return format_date(parse_date(value.strip()))


def extract_date(timestamp: Optional[str]) -> Optional[str]:
    """
    Extract the date part of an upstream timestamp string.

    Args:
        timestamp: e.g. "2025-10-05 06:38-07:00" or "2025-10-03 20:28Z"

    Returns:
        "2025-10-05", or None if the string carries no valid date
    """
    if not timestamp:
        return None
    head = timestamp.strip().split(" ")[0].split("T")[0]
    return head if is_valid_date(head) else None
