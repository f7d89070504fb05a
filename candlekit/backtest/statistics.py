"""
Summary statistics for a finished backtest.

Computed once after the candle walk from the closed trades and the equity
curve. Percentages and ratios are rounded to 2 decimals.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, List, Sequence

from ..domain.backtest.models import EquityPoint, Trade

# Profit factor when there are winning trades and no losing ones
PROFIT_FACTOR_CAP = 999.99

# Periods per year by candle interval, for Sharpe annualization
ANNUALIZATION_PERIODS: Dict[str, float] = {
    "1m": 525_600,
    "5m": 105_120,
    "15m": 35_040,
    "1h": 8_760,
    "4h": 2_190,
    "1d": 365,
    "1w": 52,
}
DEFAULT_ANNUALIZATION = 365


def annualization_multiplier(interval: str) -> float:
    """Periods per year for an interval (default 365).

    Case is ignored except for the M suffix, which keeps 1M (month) apart from 1m (minute).
    """
    key = interval if interval.endswith("M") else interval.lower()
    return ANNUALIZATION_PERIODS.get(key, DEFAULT_ANNUALIZATION)


@dataclass
class TradeStatistics:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    profit_factor: float = 0.0
    average_win_pct: float = 0.0
    average_loss_pct: float = 0.0
    largest_win_pct: float = 0.0
    largest_loss_pct: float = 0.0
    average_hold_time: timedelta = timedelta(0)


def compute_trade_statistics(trades: Sequence[Trade]) -> TradeStatistics:
    """
    Win/loss breakdown of closed trades.

    A trade with pnl > 0 is a win; pnl <= 0 (breakeven included) is a loss.
    """
    stats = TradeStatistics(total_trades=len(trades))
    if not trades:
        return stats

    wins = [t for t in trades if t.pnl > 0]
    losses = [t for t in trades if t.pnl <= 0]

    stats.winning_trades = len(wins)
    stats.losing_trades = len(losses)
    stats.win_rate = round(len(wins) / len(trades) * 100, 2)

    gross_wins = sum(t.pnl for t in wins)
    gross_losses = abs(sum(t.pnl for t in losses))
    if gross_losses > 0:
        stats.profit_factor = round(gross_wins / gross_losses, 2)
    elif gross_wins > 0:
        stats.profit_factor = PROFIT_FACTOR_CAP

    if wins:
        stats.average_win_pct = round(sum(t.pnl_pct for t in wins) / len(wins), 2)
        stats.largest_win_pct = round(max(t.pnl_pct for t in wins), 2)
    if losses:
        stats.average_loss_pct = round(sum(t.pnl_pct for t in losses) / len(losses), 2)
        stats.largest_loss_pct = round(min(t.pnl_pct for t in losses), 2)

    total_hold = sum((t.hold_duration for t in trades), timedelta(0))
    stats.average_hold_time = total_hold / len(trades)

    return stats


def equity_returns(curve: Sequence[EquityPoint]) -> List[float]:
    """Per-point simple returns, skipping points whose previous equity is not positive."""
    returns: List[float] = []
    for prev, cur in zip(curve, curve[1:]):
        if prev.equity > 0:
            returns.append((cur.equity - prev.equity) / prev.equity)
    return returns


def sharpe_ratio(curve: Sequence[EquityPoint], interval: str) -> float:
    """
    Annualized Sharpe ratio of equity-curve returns (risk-free rate 0).

    Uses the population standard deviation. Needs at least two returns;
    a flat curve (zero deviation) gives 0.
    """
    returns = equity_returns(curve)
    if len(returns) < 2:
        return 0.0

    mean = sum(returns) / len(returns)
    std = math.sqrt(sum((r - mean) ** 2 for r in returns) / len(returns))
    if std <= 0:
        return 0.0
    return round(mean / std * math.sqrt(annualization_multiplier(interval)), 2)
