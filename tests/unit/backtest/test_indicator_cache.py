"""Tests for IndicatorCache precomputation and warm-up."""

import math

import numpy as np
import pytest

from candlekit.backtest.indicator_cache import (
    IndicatorCache,
    IndicatorKey,
    IndicatorKind,
    resolve_key,
)
from candlekit.domain.strategy.models import StrategyConfiguration


class TestResolveKey:
    @pytest.mark.parametrize(
        "name,period,expected",
        [
            ("PRICE", 5, IndicatorKey(IndicatorKind.PRICE)),
            ("sma", 20, IndicatorKey(IndicatorKind.SMA, 20)),
            ("MACD", 26, IndicatorKey(IndicatorKind.MACD_LINE)),
            ("MACD_HIST", 0, IndicatorKey(IndicatorKind.MACD_HIST)),
            ("BBANDS", 20, IndicatorKey(IndicatorKind.BBANDS_MIDDLE, 20)),
            ("BBANDS_UPPER", 10, IndicatorKey(IndicatorKind.BBANDS_UPPER, 10)),
        ],
    )
    def test_known_names(self, name, period, expected) -> None:
        assert resolve_key(name, period) == expected

    @pytest.mark.parametrize("name", ["VWAP", "", None])
    def test_unknown_names(self, name) -> None:
        assert resolve_key(name, 14) is None


class TestIndicatorCache:
    def test_price_always_present(self) -> None:
        cache = IndicatorCache(np.array([1.0, 2.0, 3.0]))

        assert len(cache) == 1
        assert cache.value("PRICE", 0, 2) == 3.0
        assert cache.warmup_index() == 1

    def test_multi_output_families_computed_together(self) -> None:
        cache = IndicatorCache(np.linspace(100.0, 140.0, 40))

        cache.ensure("MACD_SIGNAL", 0)
        cache.ensure("BBANDS_LOWER", 20)

        assert set(cache.keys()) == {
            IndicatorKey(IndicatorKind.PRICE),
            IndicatorKey(IndicatorKind.MACD_LINE),
            IndicatorKey(IndicatorKind.MACD_SIGNAL),
            IndicatorKey(IndicatorKind.MACD_HIST),
            IndicatorKey(IndicatorKind.BBANDS_UPPER, 20),
            IndicatorKey(IndicatorKind.BBANDS_MIDDLE, 20),
            IndicatorKey(IndicatorKind.BBANDS_LOWER, 20),
        }

    def test_same_indicator_different_periods(self) -> None:
        cache = IndicatorCache(np.arange(1.0, 11.0))

        cache.ensure("SMA", 2)
        cache.ensure("SMA", 4)

        assert cache.value("SMA", 2, 3) == 3.5
        assert cache.value("SMA", 4, 3) == 2.5

    def test_value_out_of_range_or_unknown_is_nan(self) -> None:
        cache = IndicatorCache(np.array([1.0, 2.0]))

        assert math.isnan(cache.value("PRICE", 0, 5))
        assert math.isnan(cache.value("PRICE", 0, -1))
        assert math.isnan(cache.value("EMA", 3, 1))
        assert math.isnan(cache.value("VWAP", 0, 1))

    def test_warmup_is_latest_first_valid_index(self) -> None:
        cache = IndicatorCache(np.linspace(100.0, 140.0, 40))

        cache.ensure("SMA", 5)
        assert cache.warmup_index() == 4
        cache.ensure("SMA", 20)
        assert cache.warmup_index() == 19
        cache.ensure("MACD", 0)
        assert cache.warmup_index() == 33

    def test_all_nan_series_does_not_raise_warmup(self) -> None:
        cache = IndicatorCache(np.arange(1.0, 31.0))

        cache.ensure("SMA", 50)
        cache.ensure("SMA", 10)

        assert cache.warmup_index() == 9

    def test_for_configuration_collects_both_sides(self) -> None:
        config = StrategyConfiguration.model_validate(
            {
                "entryConditions": [
                    {
                        "indicator": "EMA",
                        "period": 3,
                        "operator": "CROSSES_ABOVE",
                        "compareType": "INDICATOR",
                        "compareIndicator": "SMA",
                        "comparePeriod": 5,
                    }
                ],
                "exitConditions": [
                    {"indicator": "RSI", "period": 4, "operator": "GREATER_THAN", "compareValue": 70}
                ],
            }
        )

        cache = IndicatorCache.for_configuration(config, np.arange(1.0, 21.0))

        assert set(cache.keys()) == {
            IndicatorKey(IndicatorKind.PRICE),
            IndicatorKey(IndicatorKind.EMA, 3),
            IndicatorKey(IndicatorKind.SMA, 5),
            IndicatorKey(IndicatorKind.RSI, 4),
        }
        assert cache.warmup_index() == 4
