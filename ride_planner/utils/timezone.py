"""Timezone utility functions for turning Peloton timestamps into calendar days.

Peloton reports completion as epoch seconds; planned workouts are scheduled
on a calendar date with no time of day. A workout finished at 23:30 in
Los Angeles belongs to that day's plan even though it is already tomorrow
in UTC, so the conversion has to happen in the user's timezone.
"""

from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from loguru import logger

DATE_FORMAT = "%Y-%m-%d"


def _load_timezone(name: str) -> ZoneInfo | None:
    # ZoneInfo raises more than ZoneInfoNotFoundError for client-supplied names:
    # "America" is a tzdata directory, very long names hit OS path limits.
    try:
        return ZoneInfo(name)
    except Exception:
        return None


def timestamp_to_local_date(timestamp: float, timezone_name: str | None = None) -> str:
    """Convert epoch seconds to a YYYY-MM-DD date string in the user's timezone.

    Falls back to the server's local timezone when timezone_name is missing or
    not a recognised zone. The fallback is logged, never raised, so one bad
    profile setting cannot break a completion sync.

    Args:
        timestamp: Epoch seconds
        timezone_name: IANA timezone identifier (optional)

    Returns:
        Calendar date string, e.g. "2024-01-19"
    """
    if not timezone_name:
        logger.warning(f"No timezone given, falling back to server local time for timestamp={timestamp}")
        return datetime.fromtimestamp(timestamp).strftime(DATE_FORMAT)

    tz = _load_timezone(timezone_name)
    if tz is None:
        logger.warning(
            f"Unknown timezone '{timezone_name}', falling back to server local time for timestamp={timestamp}"
        )
        return datetime.fromtimestamp(timestamp).strftime(DATE_FORMAT)

    return datetime.fromtimestamp(timestamp, tz).strftime(DATE_FORMAT)


def epoch_to_utc(timestamp: float) -> datetime:
    """Convert epoch seconds to a UTC-aware datetime."""
    return datetime.fromtimestamp(timestamp, timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC, treating naive values (SQLite round-trips) as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)
