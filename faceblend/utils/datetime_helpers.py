"""Datetime utility functions for the daily puzzle boundary."""
from datetime import date, datetime, UTC
from typing import Optional
from zoneinfo import ZoneInfo

DAY_KEY_FORMAT = "%Y-%m-%d"


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is timezone-aware in UTC.

    Naive datetimes are treated as UTC; aware datetimes are converted.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def day_key(now: Optional[datetime] = None, tz: ZoneInfo | None = None) -> str:
    """
    Return the canonical ``YYYY-MM-DD`` key of the civil day containing ``now``.

    Puzzle selection, artifact cache keys and client state keys must all be
    derived from this one helper so they roll over at the same instant.

    Args:
        now: Reference instant (defaults to the current time). Naive values are UTC.
        tz: Zone whose calendar date is used (defaults to UTC)

    Returns:
        The calendar date formatted as ``YYYY-MM-DD``

    Example:
        >>> day_key(datetime(2024, 1, 1, 23, 30, tzinfo=UTC))
        '2024-01-01'
        >>> day_key(datetime(2024, 1, 1, 23, 30, tzinfo=UTC), ZoneInfo("Asia/Tokyo"))
        '2024-01-02'
    """
    instant = ensure_utc(now) if now is not None else datetime.now(UTC)
    return instant.astimezone(tz or UTC).strftime(DAY_KEY_FORMAT)


def parse_day_key(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` day key, raising ``ValueError`` for anything else."""
    parsed = datetime.strptime(value, DAY_KEY_FORMAT).date()
    if parsed.strftime(DAY_KEY_FORMAT) != value:
        raise ValueError(f"Day key must be zero-padded YYYY-MM-DD: {value!r}")
    return parsed
