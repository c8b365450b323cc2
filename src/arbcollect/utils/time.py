"""
Time utilities.

Exchanges exchange millisecond Unix timestamps; the rest of the
collector works with timezone-aware UTC datetimes.
"""

import time
from datetime import UTC, datetime, timedelta


def get_timestamp_ms() -> int:
    """
    Get current timestamp in milliseconds.

    Returns:
        Current Unix timestamp in milliseconds.
    """
    return time.time_ns() // 1_000_000


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(tz=UTC)


def to_ms(dt: datetime) -> int:
    """
    Convert a datetime to Unix milliseconds.

    Naive datetimes are interpreted as UTC.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return int(dt.timestamp() * 1000)


def from_ms(timestamp_ms: int | str) -> datetime:
    """
    Convert Unix milliseconds (int or numeric string) to a UTC datetime.

    Example:
        >>> from_ms(1704067200000).isoformat()
        '2024-01-01T00:00:00+00:00'
    """
    return datetime.fromtimestamp(int(timestamp_ms) / 1000, tz=UTC)


def add_ms(dt: datetime, offset_ms: int) -> datetime:
    """Shift a datetime by a number of milliseconds."""
    return dt + timedelta(milliseconds=offset_ms)


def format_duration_s(duration_s: float) -> str:
    """
    Format a duration in seconds for human-readable display.

    Examples:
        >>> format_duration_s(0.25)
        '250ms'
        >>> format_duration_s(12.345)
        '12.3s'
    """
    if duration_s < 1:
        return f"{duration_s * 1000:.0f}ms"
    return f"{duration_s:.1f}s"
