"""UTC-everywhere time handling. Eliminates timezone bugs at the source.

Persisted security state uses epoch milliseconds; datetimes only appear at
display boundaries.
"""

from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(now_utc().timestamp() * 1000)


def from_ms(millis: int) -> datetime:
    """Convert epoch milliseconds to a UTC datetime."""
    return _EPOCH + timedelta(milliseconds=millis)


def ms_to_iso(millis: int) -> str:
    """
    Render epoch milliseconds as ISO 8601 UTC with millisecond precision.

    Example: 0 -> "1970-01-01T00:00:00.000Z"
    """
    return from_ms(millis).isoformat(timespec="milliseconds").replace("+00:00", "Z")
