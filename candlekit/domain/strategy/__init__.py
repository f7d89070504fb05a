"""Rule-based strategy configuration and strategy records."""

from .models import (
    PERIOD_INDICATORS,
    CompareType,
    ConditionOperator,
    LogicOperator,
    Strategy,
    StrategyCondition,
    StrategyConfiguration,
)

__all__ = [
    "PERIOD_INDICATORS",
    "CompareType",
    "ConditionOperator",
    "LogicOperator",
    "Strategy",
    "StrategyCondition",
    "StrategyConfiguration",
]
