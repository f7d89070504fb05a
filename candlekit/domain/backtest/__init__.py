"""Backtest request/result models."""

from .models import (
    BacktestRecord,
    BacktestRequest,
    BacktestResult,
    BacktestStatus,
    DataCoverage,
    DataVerificationResult,
    DataVerificationStatus,
    EquityPoint,
    ExitReason,
    Trade,
    TradeSide,
)

__all__ = [
    "BacktestRecord",
    "BacktestRequest",
    "BacktestResult",
    "BacktestStatus",
    "DataCoverage",
    "DataVerificationResult",
    "DataVerificationStatus",
    "EquityPoint",
    "ExitReason",
    "Trade",
    "TradeSide",
]
