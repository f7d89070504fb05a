"""
Rule-based backtest simulator.

Walks a candle sequence once, evaluating a StrategyConfiguration's entry and
exit rules against precomputed indicators:

    Flat --entry rules--> InPosition --stop / target / exit rules--> Flat

While in a position the checks run in strict priority order on every
candle: stop loss (fills at the stop price), take profit (fills at the
target price), then exit rules (fill at the close). A candle that closes a
position never opens a new one. Equity is marked to market on every candle.

All simulation state lives inside a single run() call, so one simulator
instance can serve concurrent backtests.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

import numpy as np

from ..domain.backtest.models import BacktestResult, EquityPoint, ExitReason, Trade, TradeSide
from ..domain.market_data.models import Candle
from ..domain.strategy.models import StrategyConfiguration
from ..utils.logging_setup import get_logger
from .conditions import evaluate_conditions
from .indicator_cache import IndicatorCache
from .statistics import compute_trade_statistics, sharpe_ratio

logger = get_logger(__name__)

INSUFFICIENT_DATA_WARNING = "Insufficient data for backtesting (need at least 2 candles)."
END_OF_DATA_WARNING = "Open position was closed at end of data period."


@dataclass
class _OpenPosition:
    trade_number: int
    side: TradeSide
    entry_time: datetime
    entry_price: float
    quantity: float

    def unrealized_pnl(self, price: float) -> float:
        if self.side == TradeSide.LONG:
            return (price - self.entry_price) * self.quantity
        return (self.entry_price - price) * self.quantity

    def stop_price(self, stop_loss_pct: float) -> float:
        if self.side == TradeSide.LONG:
            return self.entry_price * (1 - stop_loss_pct / 100)
        return self.entry_price * (1 + stop_loss_pct / 100)

    def target_price(self, take_profit_pct: float) -> float:
        if self.side == TradeSide.LONG:
            return self.entry_price * (1 + take_profit_pct / 100)
        return self.entry_price * (1 - take_profit_pct / 100)

    def stop_hit(self, candle: Candle, stop: float) -> bool:
        if self.side == TradeSide.LONG:
            return candle.low <= stop
        return candle.high >= stop

    def target_hit(self, candle: Candle, target: float) -> bool:
        if self.side == TradeSide.LONG:
            return candle.high >= target
        return candle.low <= target


class BacktestSimulator:
    """
    Deterministic candle-by-candle simulator for rule-based strategies.

    Example:
        simulator = BacktestSimulator()
        result = simulator.run(config, candles, 10_000.0, start, end)
        print(result.total_return_pct, len(result.trades))
    """

    def run(
        self,
        config: StrategyConfiguration,
        candles: Sequence[Candle],
        initial_capital: float,
        start_date: datetime,
        end_date: datetime,
    ) -> BacktestResult:
        """
        Simulate a strategy over candles sorted by timestamp.

        Args:
            config: Strategy rules (symbol/interval already resolved).
            candles: Candles in ascending timestamp order.
            initial_capital: Starting equity.
            start_date: Requested range start, echoed on the result.
            end_date: Requested range end, echoed on the result.

        Returns:
            BacktestResult with trades, equity curve, statistics and warnings.
        """
        started = time.perf_counter()
        warnings: List[str] = []

        if len(candles) < 2:
            warnings.append(INSUFFICIENT_DATA_WARNING)
            return BacktestResult(
                initial_capital=initial_capital,
                final_capital=initial_capital,
                symbol=config.symbol,
                data_source=config.data_source,
                interval=config.interval,
                start_date=start_date,
                end_date=end_date,
                candles_processed=len(candles),
                execution_time_ms=_elapsed_ms(started),
                warnings=warnings,
            )

        closes = np.array([c.close for c in candles], dtype=np.float64)
        cache = IndicatorCache.for_configuration(config, closes)

        equity = initial_capital
        peak_equity = initial_capital
        max_drawdown = 0.0
        position: Optional[_OpenPosition] = None
        trade_count = 0
        trades: List[Trade] = []
        equity_curve: List[EquityPoint] = [
            EquityPoint(timestamp=candles[0].timestamp, equity=initial_capital, drawdown_pct=0.0)
        ]

        start_index = cache.warmup_index()

        for i in range(start_index, len(candles)):
            candle = candles[i]
            price = candle.close

            if position is not None:
                if config.stop_loss_pct is not None:
                    stop = position.stop_price(config.stop_loss_pct)
                    if position.stop_hit(candle, stop):
                        trade = _close(position, stop, candle.timestamp, ExitReason.STOP_LOSS, equity)
                        equity += trade.pnl
                        trades.append(trade)
                        position = None

                if position is not None and config.take_profit_pct is not None:
                    target = position.target_price(config.take_profit_pct)
                    if position.target_hit(candle, target):
                        trade = _close(position, target, candle.timestamp, ExitReason.TAKE_PROFIT, equity)
                        equity += trade.pnl
                        trades.append(trade)
                        position = None

                if position is not None and evaluate_conditions(
                    config.exit_conditions, config.exit_logic, cache, i
                ):
                    trade = _close(position, price, candle.timestamp, ExitReason.SIGNAL, equity)
                    equity += trade.pnl
                    trades.append(trade)
                    position = None

            elif evaluate_conditions(config.entry_conditions, config.entry_logic, cache, i):
                trade_count += 1
                # TODO: pick SHORT when allow_short is set and the rules call for it
                position = _OpenPosition(
                    trade_number=trade_count,
                    side=TradeSide.LONG,
                    entry_time=candle.timestamp,
                    entry_price=price,
                    quantity=equity * (config.position_size_pct / 100) / price,
                )

            current_equity = equity
            if position is not None:
                current_equity = equity + position.unrealized_pnl(price)

            if current_equity > peak_equity:
                peak_equity = current_equity
            drawdown = (peak_equity - current_equity) / peak_equity * 100 if peak_equity > 0 else 0.0
            if drawdown > max_drawdown:
                max_drawdown = drawdown

            equity_curve.append(
                EquityPoint(
                    timestamp=candle.timestamp,
                    equity=round(current_equity, 2),
                    drawdown_pct=round(drawdown, 2),
                )
            )

        if position is not None:
            last = candles[-1]
            trade = _close(position, last.close, last.timestamp, ExitReason.END_OF_DATA, equity)
            equity += trade.pnl
            trades.append(trade)
            warnings.append(END_OF_DATA_WARNING)

        stats = compute_trade_statistics(trades)
        total_return = (
            round((equity - initial_capital) / initial_capital * 100, 2) if initial_capital > 0 else 0.0
        )

        logger.debug(
            f"Simulated {config.symbol} {config.interval}: {len(candles)} candles, "
            f"{len(trades)} trades, return {total_return}%"
        )

        return BacktestResult(
            initial_capital=initial_capital,
            final_capital=round(equity, 2),
            total_return_pct=total_return,
            max_drawdown_pct=round(max_drawdown, 2),
            total_trades=stats.total_trades,
            winning_trades=stats.winning_trades,
            losing_trades=stats.losing_trades,
            win_rate=stats.win_rate,
            profit_factor=stats.profit_factor,
            sharpe_ratio=sharpe_ratio(equity_curve, config.interval),
            average_win_pct=stats.average_win_pct,
            average_loss_pct=stats.average_loss_pct,
            largest_win_pct=stats.largest_win_pct,
            largest_loss_pct=stats.largest_loss_pct,
            average_hold_time=stats.average_hold_time,
            symbol=config.symbol,
            data_source=config.data_source,
            interval=config.interval,
            start_date=start_date,
            end_date=end_date,
            candles_processed=len(candles),
            equity_curve=equity_curve,
            trades=trades,
            execution_time_ms=_elapsed_ms(started),
            warnings=warnings,
        )


def _close(
    position: _OpenPosition,
    exit_price: float,
    exit_time: datetime,
    reason: ExitReason,
    equity: float,
) -> Trade:
    """Build the closed trade. equity is the realized equity before this exit."""
    pnl = position.unrealized_pnl(exit_price)
    if position.entry_price > 0:
        move = (
            exit_price - position.entry_price
            if position.side == TradeSide.LONG
            else position.entry_price - exit_price
        )
        pnl_pct = round(move / position.entry_price * 100, 2)
    else:
        pnl_pct = 0.0

    return Trade(
        trade_number=position.trade_number,
        side=position.side,
        entry_time=position.entry_time,
        entry_price=position.entry_price,
        exit_time=exit_time,
        exit_price=exit_price,
        quantity=position.quantity,
        pnl=pnl,
        pnl_pct=pnl_pct,
        equity_after=round(equity + pnl, 2),
        exit_reason=reason,
        hold_duration=exit_time - position.entry_time,
    )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
