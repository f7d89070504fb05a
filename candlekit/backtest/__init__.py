"""
Rule-based backtest engine.

Indicator precomputation, rule evaluation, the candle-walk simulator and
summary statistics.
"""

from .conditions import evaluate_condition, evaluate_conditions
from .indicator_cache import IndicatorCache, IndicatorKey, IndicatorKind, resolve_key
from .simulator import BacktestSimulator
from .statistics import annualization_multiplier, compute_trade_statistics, sharpe_ratio

__all__ = [
    "BacktestSimulator",
    "IndicatorCache",
    "IndicatorKey",
    "IndicatorKind",
    "annualization_multiplier",
    "compute_trade_statistics",
    "evaluate_condition",
    "evaluate_conditions",
    "resolve_key",
    "sharpe_ratio",
]
