"""
Indicator precomputation for the backtest simulator.

Every indicator referenced by a strategy's conditions is computed once over
the full close-price array before the candle walk. Series are keyed by a
small tagged key instead of a formatted string:

    IndicatorKey(IndicatorKind.SMA, 20)
    IndicatorKey(IndicatorKind.MACD_SIGNAL)        # fixed 12/26/9, no period
    IndicatorKey(IndicatorKind.BBANDS_UPPER, 20)   # one sub-series per period

Multi-output indicators (MACD, Bollinger Bands) store all of their
sub-series at once, so a condition on MACD_SIGNAL reuses the MACD
computation of another condition.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional

import numpy as np

from ..domain.indicators import bollinger_bands, ema, macd, rsi, sma
from ..domain.strategy.models import StrategyCondition, StrategyConfiguration


class IndicatorKind(str, Enum):
    PRICE = "PRICE"
    SMA = "SMA"
    EMA = "EMA"
    RSI = "RSI"
    MACD_LINE = "MACD_LINE"
    MACD_SIGNAL = "MACD_SIGNAL"
    MACD_HIST = "MACD_HIST"
    BBANDS_UPPER = "BBANDS_UPPER"
    BBANDS_MIDDLE = "BBANDS_MIDDLE"
    BBANDS_LOWER = "BBANDS_LOWER"


# Kinds whose series does not depend on a period
_PERIODLESS = frozenset(
    {IndicatorKind.PRICE, IndicatorKind.MACD_LINE, IndicatorKind.MACD_SIGNAL, IndicatorKind.MACD_HIST}
)

# Condition indicator name -> series kind
_NAME_TO_KIND: Dict[str, IndicatorKind] = {
    "PRICE": IndicatorKind.PRICE,
    "SMA": IndicatorKind.SMA,
    "EMA": IndicatorKind.EMA,
    "RSI": IndicatorKind.RSI,
    "MACD": IndicatorKind.MACD_LINE,
    "MACD_LINE": IndicatorKind.MACD_LINE,
    "MACD_SIGNAL": IndicatorKind.MACD_SIGNAL,
    "MACD_HIST": IndicatorKind.MACD_HIST,
    "BBANDS": IndicatorKind.BBANDS_MIDDLE,
    "BBANDS_UPPER": IndicatorKind.BBANDS_UPPER,
    "BBANDS_MIDDLE": IndicatorKind.BBANDS_MIDDLE,
    "BBANDS_LOWER": IndicatorKind.BBANDS_LOWER,
}

_MACD_KINDS = (IndicatorKind.MACD_LINE, IndicatorKind.MACD_SIGNAL, IndicatorKind.MACD_HIST)
_BBANDS_KINDS = (IndicatorKind.BBANDS_UPPER, IndicatorKind.BBANDS_MIDDLE, IndicatorKind.BBANDS_LOWER)


@dataclass(frozen=True, slots=True)
class IndicatorKey:
    """Cache key: series kind plus period (0 for period-less kinds)."""

    kind: IndicatorKind
    period: int = 0


def resolve_key(name: Optional[str], period: int) -> Optional[IndicatorKey]:
    """
    Map a condition's indicator name and period to its cache key.

    Returns:
        The key, or None for unknown indicator names.
    """
    if not name:
        return None
    kind = _NAME_TO_KIND.get(name.upper())
    if kind is None:
        return None
    if kind in _PERIODLESS:
        return IndicatorKey(kind)
    return IndicatorKey(kind, period)


class IndicatorCache:
    """Precomputed indicator series aligned with a candle sequence."""

    def __init__(self, closes: np.ndarray) -> None:
        self._closes = np.asarray(closes, dtype=float)
        self._series: Dict[IndicatorKey, np.ndarray] = {
            IndicatorKey(IndicatorKind.PRICE): self._closes
        }

    @classmethod
    def for_configuration(cls, config: StrategyConfiguration, closes: np.ndarray) -> IndicatorCache:
        """Build a cache holding every series the configuration's conditions use."""
        cache = cls(closes)
        for condition in list(config.entry_conditions) + list(config.exit_conditions):
            cache.add_condition(condition)
        return cache

    def add_condition(self, condition: StrategyCondition) -> None:
        self.ensure(condition.indicator, condition.period)
        if condition.compares_indicator:
            self.ensure(condition.compare_indicator, condition.effective_compare_period)

    def ensure(self, name: Optional[str], period: int) -> None:
        """Compute and store the series for an indicator name if not cached yet."""
        key = resolve_key(name, period)
        if key is None or key in self._series:
            return

        kind = key.kind
        if kind == IndicatorKind.SMA:
            self._series[key] = sma(self._closes, period)
        elif kind == IndicatorKind.EMA:
            self._series[key] = ema(self._closes, period)
        elif kind == IndicatorKind.RSI:
            self._series[key] = rsi(self._closes, period)
        elif kind in _MACD_KINDS:
            for sub_kind, values in zip(_MACD_KINDS, macd(self._closes)):
                self._series[IndicatorKey(sub_kind)] = values
        elif kind in _BBANDS_KINDS:
            for sub_kind, values in zip(_BBANDS_KINDS, bollinger_bands(self._closes, period)):
                self._series[IndicatorKey(sub_kind, period)] = values

    def get(self, key: Optional[IndicatorKey]) -> Optional[np.ndarray]:
        if key is None:
            return None
        return self._series.get(key)

    def value(self, name: Optional[str], period: int, index: int) -> float:
        """Series value at index, NaN if the series is unknown or index is out of range."""
        values = self.get(resolve_key(name, period))
        if values is None or index < 0 or index >= len(values):
            return float("nan")
        return float(values[index])

    def keys(self) -> Iterable[IndicatorKey]:
        return self._series.keys()

    def warmup_index(self) -> int:
        """
        First index at which every cached series has produced a value.

        The maximum first-valid index over all series, never below 1. A
        series that is NaN throughout does not raise the index.
        """
        warmup = 1
        for values in self._series.values():
            valid = np.flatnonzero(~np.isnan(values))
            if valid.size:
                warmup = max(warmup, int(valid[0]))
        return warmup

    def __len__(self) -> int:
        return len(self._series)
