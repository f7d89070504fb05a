"""
Market data value types.

Candle is the universal format: exchange fetchers, CSV imports and store
reads all produce and consume it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple


@dataclass(frozen=True, slots=True)
class Candle:
    """A single OHLCV candle with source provenance."""

    symbol: str
    source: str
    interval: str
    open: float
    high: float
    low: float
    close: float
    volume: float
    timestamp: datetime  # Candle open time, UTC
    trade_count: int = 0

    @property
    def key(self) -> Tuple[str, str, str, datetime]:
        """Identity key: (symbol, source, interval, timestamp)."""
        return (self.symbol, self.source, self.interval, self.timestamp)


@dataclass(frozen=True, slots=True)
class CoverageInfo:
    """
    What is already stored for a (symbol, source, interval) combination.

    Derived on demand from the store, never persisted.
    """

    symbol: str
    source: str
    interval: str
    earliest: Optional[datetime] = None
    latest: Optional[datetime] = None
    candle_count: int = 0

    @property
    def is_empty(self) -> bool:
        """True if no data exists for this combination."""
        return self.candle_count == 0

    def fully_covers(self, start: datetime, end: datetime) -> bool:
        """Check if the stored data fully covers a requested range."""
        if self.is_empty or self.earliest is None or self.latest is None:
            return False
        return self.earliest <= start and self.latest >= end


@dataclass(frozen=True, slots=True)
class DataGap:
    """Inclusive time range missing from storage that needs fetching."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(f"start ({self.start}) must be <= end ({self.end})")

    def overlaps(self, other: DataGap) -> bool:
        return self.start <= other.end and other.start <= self.end


@dataclass(frozen=True, slots=True)
class MarketDataRequest:
    """A request for candles over an inclusive time range."""

    symbol: str
    source: str
    interval: str
    start: datetime
    end: datetime


@dataclass
class MarketDataResult:
    """Result of a market data request: what was served from cache vs. fetched fresh."""

    symbol: str
    source: str
    interval: str
    start: datetime
    end: datetime
    candles: List[Candle] = field(default_factory=list)
    cached_count: int = 0
    fetched_count: int = 0


@dataclass(frozen=True, slots=True)
class FetcherInfo:
    """Registry entry describing a fetcher's capabilities."""

    source_name: str
    display_name: str
    can_fetch_on_demand: bool
    supported_intervals: Tuple[str, ...]


@dataclass(frozen=True, slots=True)
class SourceSummary:
    """Availability of one (source, interval) pair for a symbol."""

    source: str
    interval: str
    earliest: datetime
    latest: datetime
    candle_count: int
