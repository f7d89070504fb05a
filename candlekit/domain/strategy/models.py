"""
Rule-based strategy configuration.

A strategy's rules are stored as JSON on the strategy record and parsed
into StrategyConfiguration. Both snake_case and camelCase keys are
accepted so configurations authored by UI clients load unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# Indicators whose output depends on the condition period
PERIOD_INDICATORS = frozenset(
    {"SMA", "EMA", "RSI", "BBANDS", "BBANDS_UPPER", "BBANDS_MIDDLE", "BBANDS_LOWER"}
)


class ConditionOperator(str, Enum):
    CROSSES_ABOVE = "CROSSES_ABOVE"
    CROSSES_BELOW = "CROSSES_BELOW"
    GREATER_THAN = "GREATER_THAN"
    LESS_THAN = "LESS_THAN"
    EQUALS = "EQUALS"


class CompareType(str, Enum):
    VALUE = "VALUE"
    INDICATOR = "INDICATOR"


class LogicOperator(str, Enum):
    AND = "AND"
    OR = "OR"


def _upper(value):
    return value.upper() if isinstance(value, str) else value


class StrategyCondition(BaseModel):
    """
    A single comparison evaluated on every candle.

    Left side is always an indicator; the right side is either a constant
    (VALUE) or another indicator (INDICATOR).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    indicator: str = Field(description="Indicator name (SMA, EMA, RSI, MACD, BBANDS_UPPER, PRICE, ...)")
    period: int = Field(default=0, ge=0, description="Indicator period (ignored for PRICE and MACD)")
    operator: ConditionOperator = Field(description="Comparison operator")
    compare_type: CompareType = Field(default=CompareType.VALUE, description="Right-hand side kind")
    compare_value: Optional[float] = Field(default=None, description="Constant for VALUE comparisons")
    compare_indicator: Optional[str] = Field(default=None, description="Indicator for INDICATOR comparisons")
    compare_period: Optional[int] = Field(
        default=None, ge=1, description="Period of compare_indicator (defaults to period)"
    )

    @field_validator("indicator", "compare_indicator", "operator", "compare_type", mode="before")
    @classmethod
    def _normalize_case(cls, value):
        return _upper(value)

    @model_validator(mode="after")
    def validate_periods(self) -> "StrategyCondition":
        if self.indicator in PERIOD_INDICATORS and self.period < 1:
            raise ValueError(f"{self.indicator} requires period >= 1")
        if (
            self.compares_indicator
            and self.compare_indicator in PERIOD_INDICATORS
            and self.effective_compare_period < 1
        ):
            raise ValueError(f"{self.compare_indicator} requires compare_period >= 1")
        return self

    @property
    def compares_indicator(self) -> bool:
        return self.compare_type == CompareType.INDICATOR and bool(self.compare_indicator)

    @property
    def effective_compare_period(self) -> int:
        return self.compare_period if self.compare_period is not None else self.period


class StrategyConfiguration(BaseModel):
    """
    Rules for a UI-built strategy.

    Immutable: run-time overrides produce a new instance via with_overrides().
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    symbol: str = Field(default="", description="Canonical symbol (e.g., BTC-USD)")
    interval: str = Field(default="1h", description="Canonical candle interval")
    data_source: str = Field(default="", description="Source name (e.g., binance)")

    entry_conditions: List[StrategyCondition] = Field(default_factory=list)
    entry_logic: LogicOperator = Field(default=LogicOperator.AND)
    exit_conditions: List[StrategyCondition] = Field(default_factory=list)
    exit_logic: LogicOperator = Field(default=LogicOperator.AND)

    position_size_pct: float = Field(default=100.0, gt=0, le=100, description="Percent of equity per trade")
    allow_short: bool = Field(default=False, description="Reserved; entries are always LONG")
    stop_loss_pct: Optional[float] = Field(default=None, gt=0, description="Stop distance in percent")
    take_profit_pct: Optional[float] = Field(default=None, gt=0, description="Target distance in percent")

    @field_validator("entry_logic", "exit_logic", mode="before")
    @classmethod
    def _normalize_logic(cls, value):
        return _upper(value)

    def with_overrides(
        self,
        symbol: Optional[str] = None,
        data_source: Optional[str] = None,
        interval: Optional[str] = None,
    ) -> "StrategyConfiguration":
        """Return a copy with any non-empty overrides applied."""
        update = {}
        if symbol:
            update["symbol"] = symbol
        if data_source:
            update["data_source"] = data_source
        if interval:
            update["interval"] = interval
        return self.model_copy(update=update) if update else self


@dataclass(frozen=True)
class Strategy:
    """Persisted strategy record."""

    id: int
    name: str
    description: str = ""
    rules_configuration: Optional[str] = None  # JSON; None for code-only strategies
    strategy_class_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_rule_based(self) -> bool:
        return bool(self.rules_configuration and self.rules_configuration.strip())
