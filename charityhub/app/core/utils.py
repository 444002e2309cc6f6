"""Time helpers shared by the rate limiter and the notification center.

Instants are carried as integer epoch milliseconds and rendered as
ISO-8601 UTC strings with millisecond precision (``2024-05-01T12:00:00.000Z``).
"""

import time
from datetime import datetime, timezone
from typing import Callable

# A clock returns the current instant in epoch milliseconds.
Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def ms_to_datetime(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime without float rounding."""
    value = int(value)
    seconds, millis = divmod(value, 1000)
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(
        microsecond=millis * 1000
    )


def datetime_to_ms(value: datetime) -> int:
    """Convert a datetime to epoch milliseconds (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def to_iso8601(value: int | datetime) -> str:
    """Render an instant the way ``Date.prototype.toISOString`` does.

    Examples:
        >>> to_iso8601(0)
        '1970-01-01T00:00:00.000Z'
    """
    if not isinstance(value, datetime):
        value = ms_to_datetime(value)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
