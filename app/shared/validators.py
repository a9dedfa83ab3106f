"""Shared validation utilities"""

import re
from datetime import date, datetime
from typing import Optional

from ..exceptions import ValidationError

MINUTES_PER_DAY = 24 * 60

_HHMM_RE = re.compile(r"^([01]?\d|2[0-4]):([0-5]\d)$")


def parse_hhmm(value: Optional[str], field: str = "time") -> int:
    """
    Parse a 24h "HH:MM" string into minutes from midnight.

    "24:00" is accepted as the end-of-day boundary.

    Raises:
        ValidationError: If the value is missing or malformed
    """
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field} is required (HH:MM)")

    match = _HHMM_RE.match(value.strip())
    if not match:
        raise ValidationError(f"Invalid {field} '{value}'. Expected HH:MM")

    hours, minutes = int(match.group(1)), int(match.group(2))
    total = hours * 60 + minutes
    if total > MINUTES_PER_DAY:
        raise ValidationError(f"Invalid {field} '{value}'. Expected HH:MM")
    return total


def format_hhmm(minutes: int) -> str:
    """Format minutes from midnight as HH:MM"""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def parse_iso_date(value, field: str = "date") -> date:
    """
    Parse an ISO 8601 calendar date (YYYY-MM-DD).

    Raises:
        ValidationError: If the value is missing or malformed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field} is required (YYYY-MM-DD)")
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValidationError(f"Invalid {field} '{value}'. Expected YYYY-MM-DD") from None
