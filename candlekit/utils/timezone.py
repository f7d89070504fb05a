"""
Timezone utilities.

Conventions:
- Internal storage/processing: UTC (timezone-aware)
- DuckDB columns: naive TIMESTAMP holding UTC wall time
- Exchange payloads: epoch milliseconds

All datetime objects crossing module boundaries are timezone-aware UTC.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

UTC = timezone.utc
EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def now_utc() -> datetime:
    """Get current time in UTC (timezone-aware)."""
    return datetime.now(UTC)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to timezone-aware UTC.

    Naive datetimes are assumed to already be in UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def to_naive_utc(dt: datetime) -> datetime:
    """Convert to naive UTC for storage in DuckDB TIMESTAMP columns."""
    return to_utc(dt).replace(tzinfo=None)


def to_epoch_ms(dt: datetime) -> int:
    """Convert a datetime to Unix epoch milliseconds."""
    return (to_utc(dt) - EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(ms: int) -> datetime:
    """Convert Unix epoch milliseconds to a UTC datetime."""
    return EPOCH + timedelta(milliseconds=ms)
