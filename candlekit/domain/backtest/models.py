"""
Backtest request, result and data-verification models.

BacktestResult is serialized whole into the backtest record's result_json
column, so everything here round-trips through model_dump_json().
"""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TradeSide(str, Enum):
    LONG = "LONG"
    SHORT = "SHORT"


class ExitReason(str, Enum):
    SIGNAL = "SIGNAL"
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"
    END_OF_DATA = "END_OF_DATA"


class BacktestStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class BacktestRequest(BaseModel):
    """Submit a backtest for a persisted strategy, with optional overrides."""

    strategy_id: int = Field(description="Strategy record id")
    start_date: datetime = Field(description="Requested range start (UTC)")
    end_date: datetime = Field(description="Requested range end (UTC)")
    initial_capital: float = Field(default=10_000.0, gt=0, description="Starting equity")

    # Optional overrides (None keeps the strategy's saved value)
    symbol: Optional[str] = Field(default=None)
    data_source: Optional[str] = Field(default=None)
    interval: Optional[str] = Field(default=None)


class Trade(BaseModel):
    """A closed round trip."""

    trade_number: int
    side: TradeSide = TradeSide.LONG
    entry_time: datetime
    entry_price: float
    exit_time: datetime
    exit_price: float
    quantity: float
    pnl: float
    pnl_pct: float
    equity_after: float
    exit_reason: ExitReason
    hold_duration: timedelta


class EquityPoint(BaseModel):
    timestamp: datetime
    equity: float
    drawdown_pct: float


class BacktestResult(BaseModel):
    """Summary statistics, equity curve, trade log and warnings for one run."""

    # Summary stats
    initial_capital: float
    final_capital: float
    total_return_pct: float = 0.0
    max_drawdown_pct: float = 0.0
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    sharpe_ratio: float = 0.0
    average_win_pct: float = 0.0
    average_loss_pct: float = 0.0
    largest_win_pct: float = 0.0
    largest_loss_pct: float = 0.0
    average_hold_time: timedelta = timedelta(0)

    # Data info
    symbol: str = ""
    data_source: str = ""
    interval: str = ""
    start_date: datetime
    end_date: datetime
    candles_processed: int = 0

    equity_curve: List[EquityPoint] = Field(default_factory=list)
    trades: List[Trade] = Field(default_factory=list)

    # Execution info (metadata only)
    execution_time_ms: int = 0
    warnings: List[str] = Field(default_factory=list)


class BacktestRecord(BaseModel):
    """Denormalized summary row of a saved backtest."""

    id: int
    name: str
    strategy_id: int
    status: BacktestStatus
    start_date: datetime
    end_date: datetime
    initial_capital: float
    final_capital: Optional[float] = None
    total_return_pct: Optional[float] = None
    total_trades: Optional[int] = None
    win_rate: Optional[float] = None
    max_drawdown_pct: Optional[float] = None
    sharpe_ratio: Optional[float] = None
    executed_at: Optional[datetime] = None


class DataVerificationStatus(str, Enum):
    FULLY_COVERED = "FullyCovered"          # Stored data covers the requested range
    PARTIAL_WITH_FETCH = "PartialWithFetch"  # Partial data; a fetcher can fill the gaps
    PARTIAL_COVERAGE = "PartialCoverage"    # Partial data; no auto-fetcher
    FETCH_REQUIRED = "FetchRequired"        # No data; a fetcher can retrieve it
    NO_DATA = "NoData"                      # No data and no way to get it automatically


class DataVerificationResult(BaseModel):
    """Dry-run answer to 'can this backtest get its data?'."""

    symbol: str
    source: str
    interval: str
    requested_from: datetime
    requested_to: datetime
    status: DataVerificationStatus
    message: str = ""
    can_auto_fetch: bool = False
    stored_candle_count: int = 0
    stored_from: Optional[datetime] = None
    stored_to: Optional[datetime] = None
    expected_candle_count: int = 0


class DataCoverage(BaseModel):
    """One (symbol, source, interval) row of available data."""

    symbol: str
    source: str
    interval: str
    from_date: datetime
    to_date: datetime
    candle_count: int
