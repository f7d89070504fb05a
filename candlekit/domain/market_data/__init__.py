"""Market data domain: candle types, interval vocabulary and gap detection."""

from .gaps import TICK, identify_gaps
from .intervals import (
    ALL_INTERVALS,
    expected_candle_count,
    interval_duration,
    is_valid_interval,
)
from .models import (
    Candle,
    CoverageInfo,
    DataGap,
    FetcherInfo,
    MarketDataRequest,
    MarketDataResult,
    SourceSummary,
)

__all__ = [
    "ALL_INTERVALS",
    "Candle",
    "CoverageInfo",
    "DataGap",
    "FetcherInfo",
    "MarketDataRequest",
    "MarketDataResult",
    "SourceSummary",
    "TICK",
    "expected_candle_count",
    "identify_gaps",
    "interval_duration",
    "is_valid_interval",
]
