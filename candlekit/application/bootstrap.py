"""
Application Bootstrap - Composition Root for Service Wiring.

AppContainer builds every service from an AppConfig in an explicit order:

    database -> schema bootstrap (with retry) -> stores/repositories
    -> fetcher registry -> market data service -> backtest service

Usage:
    container = AppContainer(config)
    container.initialize()
    result = await container.backtest_service.run_backtest(request)
    container.cleanup()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

from tenacity import Retrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_fixed

from ..config.models import AppConfig
from ..domain.exceptions import PersistenceError, SchemaBootstrapError
from ..domain.interfaces.market_data_fetcher import MarketDataFetcher
from ..infrastructure.adapters.binance import BinanceKlineFetcher
from ..infrastructure.persistence.database import DatabaseManager
from ..infrastructure.persistence.repositories import BacktestRepository, StrategyRepository
from ..infrastructure.stores.duckdb_ohlc_store import DuckDBOhlcStore
from ..services.backtest_execution_service import BacktestExecutionService
from ..services.fetcher_registry import FetcherRegistry
from ..services.market_data_service import MarketDataService
from ..utils.logging_setup import get_logger

logger = get_logger(__name__)


def bootstrap_schema(
    steps: List[Callable[[], None]],
    attempts: int = 5,
    delay_sec: float = 3.0,
) -> None:
    """
    Run idempotent schema steps, retrying while the store is unreachable.

    Every attempt re-runs all steps; each step is CREATE ... IF NOT EXISTS.

    Raises:
        SchemaBootstrapError: The store did not accept the schema within
            the retry limit.
    """
    retrying = Retrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_fixed(delay_sec),
        retry=retry_if_exception_type(PersistenceError),
        reraise=False,
        before_sleep=lambda retry_state: logger.warning(
            f"Schema bootstrap failed, retrying ({retry_state.attempt_number}/{attempts})",
            extra={
                "error": str(retry_state.outcome.exception()) if retry_state.outcome else None,
            },
        ),
    )
    try:
        for attempt in retrying:
            with attempt:
                for step in steps:
                    step()
    except RetryError as e:
        cause = e.last_attempt.exception()
        raise SchemaBootstrapError(
            f"Schema bootstrap failed after {attempts} attempts: {cause}"
        ) from cause

    logger.info("Schema bootstrap complete")


@dataclass
class AppContainer:
    """
    Composition root for all application services.

    Attributes:
        config: Application configuration.
        db_path: Overrides config.database.path (e.g. ":memory:" for tests).
        extra_fetchers: Additional fetchers registered after the built-in ones.
    """

    config: AppConfig
    db_path: Optional[str] = None
    extra_fetchers: List[MarketDataFetcher] = field(default_factory=list)

    db: Optional[DatabaseManager] = field(default=None, init=False)
    ohlc_store: Optional[DuckDBOhlcStore] = field(default=None, init=False)
    strategies: Optional[StrategyRepository] = field(default=None, init=False)
    backtests: Optional[BacktestRepository] = field(default=None, init=False)
    registry: Optional[FetcherRegistry] = field(default=None, init=False)
    market_data: Optional[MarketDataService] = field(default=None, init=False)
    backtest_service: Optional[BacktestExecutionService] = field(default=None, init=False)

    _initialized: bool = field(default=False, init=False)

    def initialize(self) -> None:
        """Initialize all services in dependency order."""
        if self._initialized:
            raise RuntimeError("AppContainer already initialized")

        # Phase 1: Persistence
        self._create_database()
        self._bootstrap_schema()

        # Phase 2: Fetchers
        self._create_registry()

        # Phase 3: Services
        self.market_data = MarketDataService(
            store=self.ohlc_store,
            registry=self.registry,
            settle_delay_ms=self.config.market_data.settle_delay_ms,
        )
        self.backtest_service = BacktestExecutionService(
            market_data=self.market_data,
            strategies=self.strategies,
            backtests=self.backtests,
        )

        self._initialized = True
        logger.info("AppContainer initialization complete")

    def _create_database(self) -> None:
        path = self.db_path or self.config.database.path
        self.db = DatabaseManager(path)
        self.ohlc_store = DuckDBOhlcStore(self.db)
        self.strategies = StrategyRepository(self.db)
        self.backtests = BacktestRepository(self.db)
        logger.info(f"Database configured at {path}")

    def _bootstrap_schema(self) -> None:
        bootstrap_schema(
            [
                self.ohlc_store.ensure_schema,
                self.strategies.ensure_schema,
                self.backtests.ensure_schema,
            ],
            attempts=self.config.database.schema_retry_attempts,
            delay_sec=self.config.database.schema_retry_delay_sec,
        )

    def _create_registry(self) -> None:
        self.registry = FetcherRegistry()
        binance_config = self.config.market_data.binance
        if binance_config.enabled:
            self.registry.register(BinanceKlineFetcher(binance_config))
        for fetcher in self.extra_fetchers:
            self.registry.register(fetcher)

    def cleanup(self) -> None:
        """Release resources."""
        if self.db:
            self.db.close()
            logger.info("Database connection closed")
