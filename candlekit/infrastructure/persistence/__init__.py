"""DuckDB persistence: connection manager and record repositories."""

from .database import DatabaseManager
from .repositories import BacktestRepository, StrategyRepository

__all__ = ["BacktestRepository", "DatabaseManager", "StrategyRepository"]
