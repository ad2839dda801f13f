"""Time interval utilities."""

from datetime import datetime
from typing import Any, Optional, Union

import pytz


def overlaps(
    a_start: datetime,
    a_end: datetime,
    b_start: datetime,
    b_end: datetime,
) -> bool:
    """
    Check whether two half-open intervals overlap.

    ``[a_start, a_end)`` and ``[b_start, b_end)`` overlap iff each one starts
    before the other ends. Touching intervals do not overlap.
    """
    return a_start < b_end and b_start < a_end


def ensure_utc(dt: datetime) -> datetime:
    """
    Ensure datetime is in UTC.

    Args:
        dt: Datetime to convert (naive values are taken as UTC)

    Returns:
        UTC datetime
    """
    if dt.tzinfo is None:
        return pytz.utc.localize(dt)
    return dt.astimezone(pytz.utc)


def parse_datetime(value: Union[str, datetime]) -> datetime:
    """
    Parse an ISO-8601 timestamp into a UTC datetime.

    Raises:
        ValueError: If the value is not a valid timestamp
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(text))


def event_time(field: Optional[dict[str, Any]]) -> Optional[datetime]:
    """
    Read the timed start or end of an external event.

    All-day events only carry a ``date`` and yield None.
    """
    if not field or not field.get("dateTime"):
        return None
    return parse_datetime(field["dateTime"])


def to_iso(dt: datetime) -> str:
    """Format a datetime as ISO-8601 in UTC."""
    return ensure_utc(dt).isoformat()
