"""Application services: candle cache and backtest orchestration."""

from .backtest_execution_service import BacktestExecutionService
from .fetcher_registry import FetcherRegistry
from .market_data_service import MarketDataService

__all__ = ["BacktestExecutionService", "FetcherRegistry", "MarketDataService"]
