"""
Unit tests for BinanceKlineFetcher.

The HTTP session is a MagicMock; no network access.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from candlekit.config.models import BinanceConfig
from candlekit.domain.exceptions import FetchError, ValidationError
from candlekit.domain.interfaces import MarketDataFetcher
from candlekit.infrastructure.adapters.binance import BinanceKlineFetcher, normalize_symbol
from candlekit.utils.timezone import to_epoch_ms

UTC = timezone.utc
START = datetime(2024, 1, 1, tzinfo=UTC)
HOUR_MS = 3_600_000


def _kline(open_ms: int, close: float = 100.0) -> list:
    return [
        open_ms, "99.5", "101.0", "99.0", str(close), "12.5",
        open_ms + HOUR_MS - 1, "1250.0", 42, "6.0", "600.0", "0",
    ]


def _response(payload, status: int = 200) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def config() -> BinanceConfig:
    return BinanceConfig(page_limit=3, page_delay_ms=0)


class TestNormalizeSymbol:
    @pytest.mark.parametrize(
        "symbol,expected",
        [("BTC-USD", "BTCUSD"), ("eth/usdt", "ETHUSDT"), ("SOLUSD", "SOLUSD")],
    )
    def test_normalize(self, symbol: str, expected: str) -> None:
        assert normalize_symbol(symbol) == expected


class TestBinanceKlineFetcher:
    def test_protocol_and_capabilities(self, config, session) -> None:
        fetcher = BinanceKlineFetcher(config, session=session)

        assert isinstance(fetcher, MarketDataFetcher)
        assert fetcher.source_name == "binance"
        assert fetcher.can_fetch_on_demand
        assert len(fetcher.supported_intervals) == 15
        assert fetcher.supports_interval("1M")
        assert not fetcher.supports_interval("2d")

    @pytest.mark.asyncio
    async def test_single_short_page(self, config, session) -> None:
        start_ms = to_epoch_ms(START)
        session.get.return_value = _response([_kline(start_ms), _kline(start_ms + HOUR_MS, 105.0)])
        fetcher = BinanceKlineFetcher(config, session=session)

        candles = await fetcher.fetch_candles("BTC-USD", "1h", START, START + timedelta(days=1))

        assert len(candles) == 2
        first = candles[0]
        assert first.symbol == "BTC-USD"
        assert first.source == "binance"
        assert first.interval == "1h"
        assert first.timestamp == START
        assert (first.open, first.high, first.low, first.close, first.volume) == (99.5, 101.0, 99.0, 100.0, 12.5)
        assert first.trade_count == 42
        assert candles[1].close == 105.0

        session.get.assert_called_once()
        _, kwargs = session.get.call_args
        assert kwargs["params"] == {
            "symbol": "BTCUSD",
            "interval": "1h",
            "startTime": start_ms,
            "endTime": to_epoch_ms(START + timedelta(days=1)),
            "limit": 3,
        }
        assert session.get.call_args[0][0] == "https://api.binance.us/api/v3/klines"

    @pytest.mark.asyncio
    async def test_pages_until_short_page(self, config, session) -> None:
        start_ms = to_epoch_ms(START)
        page1 = [_kline(start_ms + i * HOUR_MS) for i in range(3)]
        page2 = [_kline(start_ms + i * HOUR_MS) for i in range(3, 5)]
        session.get.side_effect = [_response(page1), _response(page2)]
        fetcher = BinanceKlineFetcher(config, session=session)

        candles = await fetcher.fetch_candles("BTC-USD", "1h", START, START + timedelta(days=1))

        assert len(candles) == 5
        assert session.get.call_count == 2
        second_params = session.get.call_args_list[1][1]["params"]
        assert second_params["startTime"] == start_ms + 2 * HOUR_MS + 1

    @pytest.mark.asyncio
    async def test_stops_on_empty_page(self, config, session) -> None:
        start_ms = to_epoch_ms(START)
        page1 = [_kline(start_ms + i * HOUR_MS) for i in range(3)]
        session.get.side_effect = [_response(page1), _response([])]
        fetcher = BinanceKlineFetcher(config, session=session)

        candles = await fetcher.fetch_candles("BTC-USD", "1h", START, START + timedelta(days=1))

        assert len(candles) == 3
        assert session.get.call_count == 2

    @pytest.mark.asyncio
    async def test_sleeps_between_pages(self, session) -> None:
        start_ms = to_epoch_ms(START)
        page1 = [_kline(start_ms + i * HOUR_MS) for i in range(3)]
        session.get.side_effect = [_response(page1), _response([])]
        fetcher = BinanceKlineFetcher(BinanceConfig(page_limit=3, page_delay_ms=100), session=session)

        with patch("candlekit.infrastructure.adapters.binance.kline_fetcher.asyncio.sleep") as sleep:
            await fetcher.fetch_candles("BTC-USD", "1h", START, START + timedelta(days=1))

        sleep.assert_awaited_once_with(0.1)

    @pytest.mark.asyncio
    async def test_unsupported_interval_before_network(self, config, session) -> None:
        fetcher = BinanceKlineFetcher(config, session=session)

        with pytest.raises(ValidationError):
            await fetcher.fetch_candles("BTC-USD", "2d", START, START + timedelta(days=1))
        session.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_http_error(self, config, session) -> None:
        session.get.return_value = _response({"code": -1121, "msg": "Invalid symbol."}, status=400)
        fetcher = BinanceKlineFetcher(config, session=session)

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch_candles("NOPE-USD", "1h", START, START + timedelta(days=1))
        assert exc_info.value.status_code == 400
        assert exc_info.value.source == "binance"

    @pytest.mark.asyncio
    async def test_rate_limited(self, config, session) -> None:
        session.get.return_value = _response([], status=429)
        fetcher = BinanceKlineFetcher(config, session=session)

        with pytest.raises(FetchError, match="rate limit"):
            await fetcher.fetch_candles("BTC-USD", "1h", START, START + timedelta(days=1))

    @pytest.mark.asyncio
    async def test_network_error(self, config, session) -> None:
        session.get.side_effect = requests.ConnectionError("connection refused")
        fetcher = BinanceKlineFetcher(config, session=session)

        with pytest.raises(FetchError, match="connection refused"):
            await fetcher.fetch_candles("BTC-USD", "1h", START, START + timedelta(days=1))

    @pytest.mark.asyncio
    async def test_malformed_row(self, config, session) -> None:
        session.get.return_value = _response([[to_epoch_ms(START), "abc"]])
        fetcher = BinanceKlineFetcher(config, session=session)

        with pytest.raises(FetchError, match="Malformed"):
            await fetcher.fetch_candles("BTC-USD", "1h", START, START + timedelta(days=1))
