"""
Canonical candle interval vocabulary.

Matches Binance kline intervals and serves as the canonical set across
fetchers, the candle cache and the backtest annualization table.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

ONE_MINUTE = "1m"
THREE_MINUTES = "3m"
FIVE_MINUTES = "5m"
FIFTEEN_MINUTES = "15m"
THIRTY_MINUTES = "30m"
ONE_HOUR = "1h"
TWO_HOURS = "2h"
FOUR_HOURS = "4h"
SIX_HOURS = "6h"
EIGHT_HOURS = "8h"
TWELVE_HOURS = "12h"
ONE_DAY = "1d"
THREE_DAYS = "3d"
ONE_WEEK = "1w"
ONE_MONTH = "1M"

ALL_INTERVALS: Tuple[str, ...] = (
    ONE_MINUTE, THREE_MINUTES, FIVE_MINUTES, FIFTEEN_MINUTES, THIRTY_MINUTES,
    ONE_HOUR, TWO_HOURS, FOUR_HOURS, SIX_HOURS, EIGHT_HOURS, TWELVE_HOURS,
    ONE_DAY, THREE_DAYS, ONE_WEEK, ONE_MONTH,
)

# Calendar months have no fixed length, so 1M is absent
_DURATIONS: Dict[str, timedelta] = {
    ONE_MINUTE: timedelta(minutes=1),
    THREE_MINUTES: timedelta(minutes=3),
    FIVE_MINUTES: timedelta(minutes=5),
    FIFTEEN_MINUTES: timedelta(minutes=15),
    THIRTY_MINUTES: timedelta(minutes=30),
    ONE_HOUR: timedelta(hours=1),
    TWO_HOURS: timedelta(hours=2),
    FOUR_HOURS: timedelta(hours=4),
    SIX_HOURS: timedelta(hours=6),
    EIGHT_HOURS: timedelta(hours=8),
    TWELVE_HOURS: timedelta(hours=12),
    ONE_DAY: timedelta(days=1),
    THREE_DAYS: timedelta(days=3),
    ONE_WEEK: timedelta(days=7),
}


def is_valid_interval(interval: str) -> bool:
    """Check membership in the canonical vocabulary (case-sensitive: 1m vs 1M)."""
    return interval in ALL_INTERVALS


def interval_duration(interval: str) -> Optional[timedelta]:
    """Expected duration of one candle, or None when it has no fixed length."""
    return _DURATIONS.get(interval)


def expected_candle_count(interval: str, start: datetime, end: datetime) -> Optional[int]:
    """
    Approximate number of candles in [start, end] for an interval.

    Returns None when the interval has no fixed duration.
    """
    duration = interval_duration(interval)
    if duration is None or duration.total_seconds() <= 0:
        return None
    return int((end - start).total_seconds() / duration.total_seconds())
