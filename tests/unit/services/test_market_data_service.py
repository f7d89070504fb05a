"""
Tests for the cache-first MarketDataService.

Uses the in-memory DuckDB store and FakeFetcher from conftest.
"""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from candlekit.domain.exceptions import ValidationError
from candlekit.domain.market_data.models import MarketDataRequest
from candlekit.services.fetcher_registry import FetcherRegistry
from candlekit.services.market_data_service import MarketDataService

UTC = timezone.utc
JAN_1 = datetime(2024, 1, 1, tzinfo=UTC)
MAR_1 = datetime(2024, 3, 1, tzinfo=UTC)


@pytest.fixture
def series(make_candles):
    """Daily candles Jan 1 .. Mar 1 2024 (61 candles)."""
    return make_candles([100.0 + i for i in range(61)])


def _service(store, *fetchers, settle_delay_ms: int = 0) -> MarketDataService:
    return MarketDataService(store, FetcherRegistry(fetchers), settle_delay_ms=settle_delay_ms)


def _request(**overrides) -> MarketDataRequest:
    fields = dict(symbol="BTC-USD", source="binance", interval="1d", start=JAN_1, end=MAR_1)
    fields.update(overrides)
    return MarketDataRequest(**fields)


class TestGetCandles:
    @pytest.mark.asyncio
    async def test_empty_store_fetches_whole_range(self, ohlc_store, fake_fetcher_cls, series) -> None:
        fetcher = fake_fetcher_cls(candles=series)
        service = _service(ohlc_store, fetcher)

        result = await service.get_candles(_request())

        assert fetcher.calls == [("BTC-USD", "1d", JAN_1, MAR_1)]
        assert len(result.candles) == 61
        assert result.fetched_count == 61
        assert result.cached_count == 0
        assert ohlc_store.get_coverage("BTC-USD", "binance", "1d").candle_count == 61

    @pytest.mark.asyncio
    async def test_head_and_tail_gaps(self, ohlc_store, fake_fetcher_cls, series) -> None:
        ohlc_store.write_candles(series[9:51])  # Jan 10 .. Feb 20
        fetcher = fake_fetcher_cls(candles=series)
        service = _service(ohlc_store, fetcher)

        result = await service.get_candles(_request())

        assert len(fetcher.calls) == 2
        head, tail = fetcher.calls
        assert head[2] == JAN_1
        assert head[3] == datetime(2024, 1, 9, 23, 59, 59, tzinfo=UTC)
        assert tail[2] == datetime(2024, 2, 20, 0, 0, 1, tzinfo=UTC)
        assert tail[3] == MAR_1
        assert len(result.candles) == 61
        assert result.fetched_count == 19
        assert result.cached_count == 42

    @pytest.mark.asyncio
    async def test_fully_cached_makes_no_calls(self, ohlc_store, fake_fetcher_cls, series) -> None:
        ohlc_store.write_candles(series)
        fetcher = fake_fetcher_cls(candles=series)
        service = _service(ohlc_store, fetcher)

        result = await service.get_candles(_request())

        assert fetcher.calls == []
        assert result.cached_count == 61
        assert result.fetched_count == 0

    @pytest.mark.asyncio
    async def test_fetch_failure_is_isolated_per_gap(self, ohlc_store, fake_fetcher_cls, series) -> None:
        ohlc_store.write_candles(series[9:51])
        fetcher = fake_fetcher_cls(candles=series, fail_on_call=1)
        service = _service(ohlc_store, fetcher)

        result = await service.get_candles(_request())

        assert len(fetcher.calls) == 2
        assert result.fetched_count == 10
        assert result.cached_count == 42
        assert result.candles[0].timestamp == datetime(2024, 1, 10, tzinfo=UTC)
        assert result.candles[-1].timestamp == MAR_1

    @pytest.mark.asyncio
    async def test_no_fetcher_serves_stored_only(self, ohlc_store, series) -> None:
        ohlc_store.write_candles(series[9:51])
        service = _service(ohlc_store)

        result = await service.get_candles(_request())

        assert len(result.candles) == 42
        assert result.fetched_count == 0
        assert result.cached_count == 42

    @pytest.mark.asyncio
    async def test_fetcher_not_on_demand_is_skipped(self, ohlc_store, fake_fetcher_cls, series) -> None:
        fetcher = fake_fetcher_cls(candles=series, can_fetch_on_demand=False)
        service = _service(ohlc_store, fetcher)

        result = await service.get_candles(_request())

        assert fetcher.calls == []
        assert result.candles == []

    @pytest.mark.asyncio
    async def test_source_is_case_insensitive(self, ohlc_store, fake_fetcher_cls, series) -> None:
        fetcher = fake_fetcher_cls(candles=series)
        service = _service(ohlc_store, fetcher)

        result = await service.get_candles(_request(source=" Binance "))

        assert result.source == "binance"
        assert len(result.candles) == 61

    @pytest.mark.asyncio
    async def test_naive_range_treated_as_utc(self, ohlc_store, series) -> None:
        ohlc_store.write_candles(series)
        service = _service(ohlc_store)

        result = await service.get_candles(
            _request(start=datetime(2024, 1, 1), end=datetime(2024, 1, 5))
        )

        assert result.start == JAN_1
        assert len(result.candles) == 5

    @pytest.mark.asyncio
    async def test_settle_delay_only_after_writes(self, ohlc_store, fake_fetcher_cls, make_candles) -> None:
        longer = make_candles([100.0 + i for i in range(70)])
        ohlc_store.write_candles(longer[:61])
        service = _service(ohlc_store, fake_fetcher_cls(candles=longer), settle_delay_ms=500)

        with patch(
            "candlekit.services.market_data_service.asyncio.sleep", new_callable=AsyncMock
        ) as sleep:
            await service.get_candles(_request())
            sleep.assert_not_awaited()

            await service.get_candles(_request(end=datetime(2024, 3, 10, tzinfo=UTC)))
            sleep.assert_awaited_once_with(0.5)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "overrides",
        [
            {"symbol": ""},
            {"symbol": "   "},
            {"source": ""},
            {"interval": "2d"},
            {"interval": "1H"},
            {"start": MAR_1, "end": JAN_1},
            {"start": JAN_1, "end": JAN_1},
        ],
    )
    async def test_invalid_requests(self, ohlc_store, fake_fetcher_cls, overrides) -> None:
        fetcher = fake_fetcher_cls()
        service = _service(ohlc_store, fetcher)

        with pytest.raises(ValidationError):
            await service.get_candles(_request(**overrides))
        assert fetcher.calls == []


class TestQueries:
    def test_coverage_and_symbols(self, ohlc_store, make_candles) -> None:
        ohlc_store.write_candles(make_candles([1.0, 2.0, 3.0]))
        ohlc_store.write_candles(make_candles([1.0, 2.0], symbol="ETH-USD", interval="1h"))
        service = _service(ohlc_store)

        coverage = service.get_coverage("BTC-USD", "BINANCE", "1d")
        assert coverage.candle_count == 3
        assert service.get_available_symbols() == ["BTC-USD", "ETH-USD"]
        summaries = service.get_source_summaries("ETH-USD")
        assert [(s.source, s.interval, s.candle_count) for s in summaries] == [("binance", "1h", 2)]

    def test_registered_fetchers(self, ohlc_store, fake_fetcher_cls) -> None:
        service = _service(ohlc_store, fake_fetcher_cls(intervals=("1h",)))

        assert [info.source_name for info in service.get_registered_fetchers()] == ["binance"]
        assert service.has_on_demand_fetcher("binance", "1h")
        assert not service.has_on_demand_fetcher("binance", "1d")
        assert not service.has_on_demand_fetcher("kraken", "1h")


class TestImportCandles:
    def test_import_is_idempotent(self, ohlc_store, make_candles) -> None:
        service = _service(ohlc_store)
        candles = make_candles([1.0, 2.0, 3.0])

        assert service.import_candles(candles) == 3
        assert service.import_candles(candles) == 3
        assert ohlc_store.get_coverage("BTC-USD", "binance", "1d").candle_count == 3

    def test_import_rejects_unknown_interval(self, ohlc_store, make_candles) -> None:
        service = _service(ohlc_store)
        candles = make_candles([1.0], interval="1d")
        bad = [replace(c, interval="2d") for c in candles]

        with pytest.raises(ValidationError):
            service.import_candles(bad)


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_fetch_writes_nothing(self, ohlc_store, fake_fetcher_cls) -> None:
        fetcher = fake_fetcher_cls()
        fetcher.fetch_candles = AsyncMock(side_effect=asyncio.CancelledError())
        service = _service(ohlc_store, fetcher)

        with pytest.raises(asyncio.CancelledError):
            await service.get_candles(_request())
        assert ohlc_store.get_coverage("BTC-USD", "binance", "1d").is_empty
