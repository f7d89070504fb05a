"""Pytest configuration and fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

import pytest

from candlekit.domain.exceptions import FetchError, ValidationError
from candlekit.domain.market_data.intervals import ALL_INTERVALS, interval_duration
from candlekit.domain.market_data.models import Candle
from candlekit.infrastructure.persistence.database import DatabaseManager
from candlekit.infrastructure.persistence.repositories import BacktestRepository, StrategyRepository
from candlekit.infrastructure.stores.duckdb_ohlc_store import DuckDBOhlcStore

UTC = timezone.utc


def build_candles(
    closes: Sequence[float],
    start: datetime = datetime(2024, 1, 1, tzinfo=UTC),
    interval: str = "1d",
    symbol: str = "BTC-USD",
    source: str = "binance",
    spread: float = 0.5,
) -> List[Candle]:
    """Candles with the given closes; high/low sit `spread` around the close."""
    step = interval_duration(interval) or timedelta(days=30)
    return [
        Candle(
            symbol=symbol,
            source=source,
            interval=interval,
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=100.0,
            timestamp=start + i * step,
            trade_count=10,
        )
        for i, close in enumerate(closes)
    ]


class FakeFetcher:
    """In-memory MarketDataFetcher serving candles from a fixed series."""

    def __init__(
        self,
        source_name: str = "binance",
        candles: Optional[List[Candle]] = None,
        can_fetch_on_demand: bool = True,
        intervals: Sequence[str] = ALL_INTERVALS,
        fail_on_call: Optional[int] = None,
    ) -> None:
        self._source_name = source_name
        self._candles = candles or []
        self._can_fetch = can_fetch_on_demand
        self._intervals = tuple(intervals)
        self._fail_on_call = fail_on_call
        self.calls: List[tuple] = []

    @property
    def source_name(self) -> str:
        return self._source_name

    @property
    def display_name(self) -> str:
        return f"Fake {self._source_name}"

    @property
    def can_fetch_on_demand(self) -> bool:
        return self._can_fetch

    @property
    def supported_intervals(self) -> Sequence[str]:
        return self._intervals

    def supports_interval(self, interval: str) -> bool:
        return interval in self._intervals

    async def fetch_candles(self, symbol, interval, start, end) -> List[Candle]:
        if not self.supports_interval(interval):
            raise ValidationError(f"unsupported interval {interval}")
        self.calls.append((symbol, interval, start, end))
        if self._fail_on_call is not None and len(self.calls) == self._fail_on_call:
            raise FetchError("simulated outage", source=self._source_name)
        return [c for c in self._candles if start <= c.timestamp <= end]


@pytest.fixture
def make_candles() -> Callable[..., List[Candle]]:
    """Factory for candle series."""
    return build_candles


@pytest.fixture
def fake_fetcher_cls() -> type:
    return FakeFetcher


@pytest.fixture
def db() -> DatabaseManager:
    """In-memory DuckDB database."""
    manager = DatabaseManager(":memory:")
    yield manager
    manager.close()


@pytest.fixture
def ohlc_store(db: DatabaseManager) -> DuckDBOhlcStore:
    store = DuckDBOhlcStore(db)
    store.ensure_schema()
    return store


@pytest.fixture
def strategy_repo(db: DatabaseManager) -> StrategyRepository:
    repo = StrategyRepository(db)
    repo.ensure_schema()
    return repo


@pytest.fixture
def backtest_repo(db: DatabaseManager) -> BacktestRepository:
    repo = BacktestRepository(db)
    repo.ensure_schema()
    return repo
