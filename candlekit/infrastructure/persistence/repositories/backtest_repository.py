"""
Repository for backtest results persistence.

Stores one denormalized summary row per run plus the full BacktestResult
(equity curve, trades, warnings) as JSON.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from ....domain.backtest.models import BacktestRecord, BacktestResult, BacktestStatus
from ....utils.timezone import now_utc, to_naive_utc, to_utc
from .base import BaseRepository

logger = logging.getLogger(__name__)

_SUMMARY_COLUMNS = """
    id, name, strategy_id, status, start_date, end_date, initial_capital,
    final_capital, total_return_pct, total_trades, win_rate, max_drawdown_pct,
    sharpe_ratio, executed_at
"""


class BacktestRepository(BaseRepository[BacktestRecord]):
    """Repository for backtest results."""

    @property
    def table_name(self) -> str:
        return "backtests"

    def ensure_schema(self) -> None:
        self._ensure_sequence()
        self._db.execute(f"""
            CREATE TABLE IF NOT EXISTS backtests (
                id BIGINT PRIMARY KEY DEFAULT nextval('{self.sequence_name}'),
                name VARCHAR NOT NULL,
                strategy_id BIGINT NOT NULL,
                status VARCHAR NOT NULL,
                start_date TIMESTAMP NOT NULL,
                end_date TIMESTAMP NOT NULL,
                initial_capital DOUBLE NOT NULL,
                final_capital DOUBLE,
                total_return_pct DOUBLE,
                total_trades INTEGER,
                win_rate DOUBLE,
                max_drawdown_pct DOUBLE,
                sharpe_ratio DOUBLE,
                result_json VARCHAR,
                executed_at TIMESTAMP
            )
        """)

    def _to_entity(self, row: Tuple) -> BacktestRecord:
        return BacktestRecord(
            id=int(row[0]),
            name=row[1],
            strategy_id=int(row[2]),
            status=BacktestStatus(row[3]),
            start_date=to_utc(row[4]),
            end_date=to_utc(row[5]),
            initial_capital=row[6],
            final_capital=row[7],
            total_return_pct=row[8],
            total_trades=row[9],
            win_rate=row[10],
            max_drawdown_pct=row[11],
            sharpe_ratio=row[12],
            executed_at=to_utc(row[13]) if row[13] else None,
        )

    def save(
        self,
        name: str,
        strategy_id: int,
        result: BacktestResult,
        status: BacktestStatus = BacktestStatus.COMPLETED,
        executed_at: Optional[datetime] = None,
    ) -> int:
        """
        Persist a finished run.

        Returns:
            The new backtest id.
        """
        row = self._db.fetchone("""
            INSERT INTO backtests (
                name, strategy_id, status, start_date, end_date, initial_capital,
                final_capital, total_return_pct, total_trades, win_rate,
                max_drawdown_pct, sharpe_ratio, result_json, executed_at
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            RETURNING id
        """, [
            name,
            strategy_id,
            status.value,
            to_naive_utc(result.start_date),
            to_naive_utc(result.end_date),
            result.initial_capital,
            result.final_capital,
            result.total_return_pct,
            result.total_trades,
            result.win_rate,
            result.max_drawdown_pct,
            result.sharpe_ratio,
            result.model_dump_json(),
            to_naive_utc(executed_at or now_utc()),
        ])
        backtest_id = int(row[0])
        logger.info(f"Saved backtest {backtest_id}: {name}")
        return backtest_id

    def get(self, backtest_id: int) -> Optional[BacktestRecord]:
        return self._fetch_entity(
            f"SELECT {_SUMMARY_COLUMNS} FROM backtests WHERE id = ?", [backtest_id]
        )

    def list(self, strategy_id: Optional[int] = None, limit: int = 100) -> List[BacktestRecord]:
        """List saved runs, newest first."""
        if strategy_id is None:
            return self._fetch_entities(
                f"SELECT {_SUMMARY_COLUMNS} FROM backtests ORDER BY id DESC LIMIT ?", [limit]
            )
        return self._fetch_entities(
            f"SELECT {_SUMMARY_COLUMNS} FROM backtests WHERE strategy_id = ? "
            f"ORDER BY id DESC LIMIT ?",
            [strategy_id, limit],
        )

    def get_result(self, backtest_id: int) -> Optional[BacktestResult]:
        """Load the full stored result of a run."""
        row = self._db.fetchone("SELECT result_json FROM backtests WHERE id = ?", [backtest_id])
        if not row or not row[0]:
            return None
        return BacktestResult.model_validate_json(row[0])
