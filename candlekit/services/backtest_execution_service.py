"""
Backtest Execution Service - orchestrates rule-based backtest runs.

Run flow:
1. Load the strategy and parse its rules configuration
2. Apply run-time overrides (symbol, source, interval)
3. Get candles through MarketDataService (cache-first, fetches gaps)
4. Attach data-quality warnings
5. Run the simulator
6. Save a summary record plus the full result

Also answers dry-run data verification and coverage queries without
touching the network.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from ..backtest.simulator import BacktestSimulator
from ..domain.backtest.models import (
    BacktestRecord,
    BacktestRequest,
    BacktestResult,
    BacktestStatus,
    DataCoverage,
    DataVerificationResult,
    DataVerificationStatus,
)
from ..domain.exceptions import NotFoundError, PersistenceError, UnconfiguredStrategyError, ValidationError
from ..domain.market_data.intervals import expected_candle_count, interval_duration
from ..domain.market_data.models import Candle, MarketDataRequest
from ..domain.strategy.models import Strategy, StrategyConfiguration
from ..infrastructure.persistence.repositories import BacktestRepository, StrategyRepository
from ..utils.logging_setup import get_logger
from ..utils.timezone import now_utc, to_utc
from .market_data_service import MarketDataService

logger = get_logger(__name__)

# Minimum share of expected candles before a coverage warning is attached
COVERAGE_WARNING_RATIO = 0.9
# Ranges expecting this many candles or fewer are too short to judge coverage
COVERAGE_MIN_EXPECTED = 10
# Start/end slack for intervals without a fixed duration (1M)
DEFAULT_BOUNDARY_SLACK = timedelta(hours=1)

SAVE_FAILED_WARNING = "Backtest completed but the result could not be saved to the database."


class BacktestExecutionService:
    """
    Orchestrates backtests for persisted rule-based strategies.

    Example:
        service = BacktestExecutionService(market_data, strategies, backtests)
        result = await service.run_backtest(BacktestRequest(
            strategy_id=1,
            start_date=datetime(2024, 1, 1, tzinfo=UTC),
            end_date=datetime(2024, 3, 31, tzinfo=UTC),
        ))
    """

    def __init__(
        self,
        market_data: MarketDataService,
        strategies: StrategyRepository,
        backtests: BacktestRepository,
        simulator: Optional[BacktestSimulator] = None,
    ) -> None:
        self._market_data = market_data
        self._strategies = strategies
        self._backtests = backtests
        self._simulator = simulator or BacktestSimulator()

    # -------------------------------------------------------------------------
    # Execute
    # -------------------------------------------------------------------------

    async def run_backtest(self, request: BacktestRequest) -> BacktestResult:
        """
        Run a backtest for a persisted strategy.

        Args:
            request: Strategy id, date range, capital and optional overrides.

        Returns:
            The result. Data-quality problems and save failures surface as warnings.

        Raises:
            NotFoundError: Unknown strategy id.
            UnconfiguredStrategyError: Strategy has no rules configuration.
            ValidationError: Rules configuration cannot be parsed, or the range is inverted.
            PersistenceError: The candle store cannot be read or written.
        """
        strategy = self._strategies.get(request.strategy_id)
        if strategy is None:
            raise NotFoundError(f"Strategy {request.strategy_id} not found.")

        config = self.resolve_configuration(strategy).with_overrides(
            symbol=request.symbol,
            data_source=request.data_source,
            interval=request.interval,
        )

        start = to_utc(request.start_date)
        end = to_utc(request.end_date)

        candles, warnings = await self._fetch_and_verify_data(
            config.symbol, config.data_source, config.interval, start, end
        )

        if not candles:
            return BacktestResult(
                initial_capital=request.initial_capital,
                final_capital=request.initial_capital,
                symbol=config.symbol,
                data_source=config.data_source,
                interval=config.interval,
                start_date=start,
                end_date=end,
                warnings=warnings,
            )

        result = self._simulator.run(config, candles, request.initial_capital, start, end)
        result.warnings[0:0] = warnings

        self._save_record(request.strategy_id, strategy.name, result)

        logger.info(
            f"Backtest of '{strategy.name}' on {config.symbol} {config.interval}: "
            f"{result.total_trades} trades, return {result.total_return_pct}%",
            extra={"strategy_id": request.strategy_id, "execution_ms": result.execution_time_ms},
        )
        return result

    @staticmethod
    def resolve_configuration(strategy: Strategy) -> StrategyConfiguration:
        """Parse a strategy's rules configuration."""
        if not strategy.is_rule_based:
            raise UnconfiguredStrategyError(
                "Strategy has no rules configuration. It may be a code-only strategy."
            )
        try:
            return StrategyConfiguration.model_validate_json(strategy.rules_configuration)
        except PydanticValidationError as e:
            raise ValidationError(
                f"Failed to parse rules configuration of strategy {strategy.id}: {e}"
            ) from e

    # -------------------------------------------------------------------------
    # Dry-run verification and coverage
    # -------------------------------------------------------------------------

    def verify_data(
        self,
        symbol: str,
        source: str,
        interval: str,
        start_date: datetime,
        end_date: datetime,
    ) -> DataVerificationResult:
        """
        Classify data availability for a backtest without running it.

        Reads coverage and the fetcher registry only: no writes, no network.

        Raises:
            ValidationError: start is not before end.
        """
        start = to_utc(start_date)
        end = to_utc(end_date)
        if start >= end:
            raise ValidationError(f"start ({start}) must be before end ({end})")
        coverage = self._market_data.get_coverage(symbol, source, interval)

        status: DataVerificationStatus
        can_auto_fetch = False

        if coverage.fully_covers(start, end):
            status = DataVerificationStatus.FULLY_COVERED
            message = (
                f"Data fully available: {coverage.candle_count:,} candles "
                f"from {coverage.earliest:%Y-%m-%d} to {coverage.latest:%Y-%m-%d}."
            )
        elif coverage.is_empty:
            can_auto_fetch = self._market_data.has_on_demand_fetcher(source, interval)
            if can_auto_fetch:
                status = DataVerificationStatus.FETCH_REQUIRED
                message = (
                    f"No stored data. {source} fetcher available, data will be "
                    f"fetched automatically when the backtest runs."
                )
            else:
                status = DataVerificationStatus.NO_DATA
                message = (
                    f"No stored data for {symbol} from {source} ({interval}). "
                    f"Import data via the Data Manager before running a backtest."
                )
        else:
            can_auto_fetch = self._market_data.has_on_demand_fetcher(source, interval)

            gaps = []
            if start < coverage.earliest:
                gaps.append(f"before {coverage.earliest:%Y-%m-%d}")
            if end > coverage.latest:
                gaps.append(f"after {coverage.latest:%Y-%m-%d}")
            gap_text = " and ".join(gaps)

            stored = (
                f"Partial data ({coverage.candle_count:,} candles, "
                f"{coverage.earliest:%Y-%m-%d} to {coverage.latest:%Y-%m-%d})."
            )
            if can_auto_fetch:
                status = DataVerificationStatus.PARTIAL_WITH_FETCH
                message = f"{stored} Gaps {gap_text} will be fetched automatically."
            else:
                status = DataVerificationStatus.PARTIAL_COVERAGE
                message = f"{stored} Missing data {gap_text}. Import via Data Manager for full coverage."

        return DataVerificationResult(
            symbol=symbol,
            source=source,
            interval=interval,
            requested_from=start,
            requested_to=end,
            status=status,
            message=message,
            can_auto_fetch=can_auto_fetch,
            stored_candle_count=coverage.candle_count,
            stored_from=coverage.earliest,
            stored_to=coverage.latest,
            expected_candle_count=expected_candle_count(interval, start, end) or 0,
        )

    def get_data_coverage(self, symbol: Optional[str] = None) -> List[DataCoverage]:
        """Available data grouped by symbol/source/interval, for one or all symbols."""
        symbols = [symbol] if symbol else self._market_data.get_available_symbols()

        coverage: List[DataCoverage] = []
        for sym in symbols:
            for summary in self._market_data.get_source_summaries(sym):
                coverage.append(
                    DataCoverage(
                        symbol=sym,
                        source=summary.source,
                        interval=summary.interval,
                        from_date=summary.earliest,
                        to_date=summary.latest,
                        candle_count=summary.candle_count,
                    )
                )
        return coverage

    def get_available_symbols(self) -> List[str]:
        return self._market_data.get_available_symbols()

    # -------------------------------------------------------------------------
    # History
    # -------------------------------------------------------------------------

    def list_backtests(self, strategy_id: Optional[int] = None) -> List[BacktestRecord]:
        return self._backtests.list(strategy_id=strategy_id)

    def get_backtest(self, backtest_id: int) -> Tuple[BacktestRecord, Optional[BacktestResult]]:
        """
        Load a saved run and its full result.

        Raises:
            NotFoundError: Unknown backtest id.
        """
        record = self._backtests.get(backtest_id)
        if record is None:
            raise NotFoundError(f"Backtest {backtest_id} not found.")
        return record, self._backtests.get_result(backtest_id)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _fetch_and_verify_data(
        self,
        symbol: str,
        source: str,
        interval: str,
        start: datetime,
        end: datetime,
    ) -> Tuple[List[Candle], List[str]]:
        """Get candles via the cache and collect data-quality warnings."""
        warnings: List[str] = []

        data = await self._market_data.get_candles(
            MarketDataRequest(symbol=symbol, source=source, interval=interval, start=start, end=end)
        )

        logger.info(
            f"Market data returned {len(data.candles)} candles for {symbol}/{source}/{interval} "
            f"({data.cached_count} cached, {data.fetched_count} freshly fetched) "
            f"from {start:%Y-%m-%d} to {end:%Y-%m-%d}"
        )

        if not data.candles:
            warnings.append(
                f"No OHLC data found for {symbol} from {source} ({interval}) "
                f"between {start:%Y-%m-%d} and {end:%Y-%m-%d}. "
                f"Try fetching data first via the Data Manager."
            )
            return [], warnings

        if data.fetched_count > 0:
            warnings.append(
                f"Fetched {data.fetched_count:,} new candles from {source} "
                f"(plus {data.cached_count:,} from cache)."
            )

        candles = sorted(data.candles, key=lambda c: c.timestamp)
        warnings.extend(self._data_quality_warnings(candles, interval, start, end))
        return candles, warnings

    @staticmethod
    def _data_quality_warnings(
        candles: Sequence[Candle],
        interval: str,
        start: datetime,
        end: datetime,
    ) -> List[str]:
        warnings: List[str] = []
        actual_from = candles[0].timestamp
        actual_to = candles[-1].timestamp

        expected = expected_candle_count(interval, start, end)
        if expected is not None:
            actual = len(candles)
            ratio = actual / expected if expected > 0 else 0.0
            if ratio < COVERAGE_WARNING_RATIO and expected > COVERAGE_MIN_EXPECTED:
                warnings.append(
                    f"Data coverage is {ratio:.0%} ({actual:,} of ~{expected:,} expected candles). "
                    f"Results may not reflect the full date range."
                )

        slack = interval_duration(interval) or DEFAULT_BOUNDARY_SLACK
        if actual_from > start + slack:
            warnings.append(
                f"Data starts at {actual_from:%Y-%m-%d %H:%M} UTC, "
                f"which is after the requested start of {start:%Y-%m-%d}."
            )
        if actual_to < end - slack:
            warnings.append(
                f"Data ends at {actual_to:%Y-%m-%d %H:%M} UTC, "
                f"which is before the requested end of {end:%Y-%m-%d}."
            )
        return warnings

    def _save_record(self, strategy_id: int, strategy_name: str, result: BacktestResult) -> None:
        name = (
            f"{strategy_name} - {result.symbol} "
            f"({result.start_date:%Y-%m-%d} to {result.end_date:%Y-%m-%d})"
        )
        try:
            self._backtests.save(
                name=name,
                strategy_id=strategy_id,
                result=result,
                status=BacktestStatus.COMPLETED,
                executed_at=now_utc(),
            )
        except PersistenceError as e:
            logger.warning(f"Failed to save backtest record, results are still returned: {e}")
            result.warnings.append(SAVE_FAILED_WARNING)
