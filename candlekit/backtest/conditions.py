"""Entry/exit rule evaluation against precomputed indicator series."""

from __future__ import annotations

import math
from typing import Sequence

from ..domain.strategy.models import (
    ConditionOperator,
    LogicOperator,
    StrategyCondition,
)
from .indicator_cache import IndicatorCache

EQUALS_TOLERANCE = 1e-4


def evaluate_conditions(
    conditions: Sequence[StrategyCondition],
    logic: LogicOperator,
    cache: IndicatorCache,
    index: int,
) -> bool:
    """
    Combine condition results at a candle index.

    An empty rule set never fires. OR needs any condition, AND needs all.
    """
    if not conditions:
        return False

    results = [evaluate_condition(c, cache, index) for c in conditions]
    if logic == LogicOperator.OR:
        return any(results)
    return all(results)


def evaluate_condition(condition: StrategyCondition, cache: IndicatorCache, index: int) -> bool:
    """
    Evaluate one condition at a candle index.

    Crossovers need valid previous values on both sides. A VALUE right side
    is constant, so its previous value equals its current value.
    """
    left = cache.value(condition.indicator, condition.period, index)
    left_prev = (
        cache.value(condition.indicator, condition.period, index - 1) if index > 0 else math.nan
    )

    if math.isnan(left):
        return False

    if condition.compares_indicator:
        compare_period = condition.effective_compare_period
        right = cache.value(condition.compare_indicator, compare_period, index)
        right_prev = (
            cache.value(condition.compare_indicator, compare_period, index - 1)
            if index > 0
            else math.nan
        )
    else:
        right = float(condition.compare_value) if condition.compare_value is not None else 0.0
        right_prev = right

    if math.isnan(right):
        return False

    op = condition.operator
    if op == ConditionOperator.GREATER_THAN:
        return left > right
    if op == ConditionOperator.LESS_THAN:
        return left < right
    if op == ConditionOperator.EQUALS:
        return abs(left - right) < EQUALS_TOLERANCE
    if op == ConditionOperator.CROSSES_ABOVE:
        return (
            not math.isnan(left_prev)
            and not math.isnan(right_prev)
            and left_prev <= right_prev
            and left > right
        )
    if op == ConditionOperator.CROSSES_BELOW:
        return (
            not math.isnan(left_prev)
            and not math.isnan(right_prev)
            and left_prev >= right_prev
            and left < right
        )
    return False
