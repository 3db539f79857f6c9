"""
Timestamp helpers for document fields.

Documents carry `createdAt` / `lastModified` as ISO-8601 strings (the format
written by the web client), but values may also arrive as datetimes
or epoch numbers depending on the store. Everything is converted to aware UTC
datetimes before comparison.
"""

from datetime import datetime, timezone
from typing import Any, Optional


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a document timestamp into an aware UTC datetime.

    Args:
        value: ISO-8601 string (a trailing "Z" is accepted), datetime, or epoch
            seconds

    Returns:
        Aware datetime in UTC, or None if the value is missing or unparseable
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(float(value), tz=timezone.utc)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def from_epoch(seconds: float) -> datetime:
    """Convert epoch seconds to an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def isoformat_utc(moment: datetime) -> str:
    """Format a datetime the way documents store it (milliseconds, trailing Z)."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"
