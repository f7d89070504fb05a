"""Unit tests for market data value types and the interval vocabulary."""

from datetime import datetime, timedelta, timezone

import pytest

from candlekit.domain.market_data import (
    ALL_INTERVALS,
    Candle,
    CoverageInfo,
    expected_candle_count,
    interval_duration,
    is_valid_interval,
)

UTC = timezone.utc
JAN_10 = datetime(2024, 1, 10, tzinfo=UTC)
FEB_20 = datetime(2024, 2, 20, tzinfo=UTC)


def _coverage(count: int = 100) -> CoverageInfo:
    if count == 0:
        return CoverageInfo(symbol="ETH-USD", source="binance", interval="1d")
    return CoverageInfo(
        symbol="ETH-USD",
        source="binance",
        interval="1d",
        earliest=JAN_10,
        latest=FEB_20,
        candle_count=count,
    )


class TestCoverageInfo:
    """fully_covers truth table."""

    @pytest.mark.parametrize(
        "start,end,expected",
        [
            (JAN_10, FEB_20, True),
            (JAN_10 + timedelta(days=1), FEB_20 - timedelta(days=1), True),
            (JAN_10 - timedelta(seconds=1), FEB_20, False),
            (JAN_10, FEB_20 + timedelta(seconds=1), False),
            (JAN_10 - timedelta(days=5), FEB_20 + timedelta(days=5), False),
        ],
    )
    def test_fully_covers(self, start, end, expected) -> None:
        assert _coverage().fully_covers(start, end) is expected

    def test_empty_never_covers(self) -> None:
        empty = _coverage(count=0)
        assert empty.is_empty
        assert not empty.fully_covers(JAN_10, JAN_10)


class TestCandle:
    def test_identity_key(self) -> None:
        candle = Candle(
            symbol="BTC-USD",
            source="binance",
            interval="1h",
            open=1.0,
            high=2.0,
            low=0.5,
            close=1.5,
            volume=10.0,
            timestamp=JAN_10,
        )
        assert candle.key == ("BTC-USD", "binance", "1h", JAN_10)
        assert candle.trade_count == 0


class TestIntervals:
    def test_vocabulary(self) -> None:
        assert len(ALL_INTERVALS) == 15
        assert is_valid_interval("1M")
        assert is_valid_interval("1m")
        assert not is_valid_interval("2d")
        assert not is_valid_interval("1H")

    def test_durations(self) -> None:
        assert interval_duration("1m") == timedelta(minutes=1)
        assert interval_duration("4h") == timedelta(hours=4)
        assert interval_duration("1w") == timedelta(days=7)
        assert interval_duration("1M") is None

    def test_expected_candle_count(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=UTC)
        assert expected_candle_count("1h", start, start + timedelta(days=2)) == 48
        assert expected_candle_count("1d", start, start + timedelta(days=30, hours=12)) == 30
        assert expected_candle_count("1M", start, start + timedelta(days=90)) is None
