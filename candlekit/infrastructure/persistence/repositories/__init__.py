"""Record repositories over the shared DuckDB database."""

from .backtest_repository import BacktestRepository
from .base import BaseRepository
from .strategy_repository import StrategyRepository

__all__ = ["BacktestRepository", "BaseRepository", "StrategyRepository"]
