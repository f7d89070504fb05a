"""
Market Data Service - cache-first candle retrieval.

Coordinates between:
- Coverage store (DuckDB) - knows what candles we have, and stores them
- Fetcher registry - external sources able to fill gaps on demand

Flow for get_candles():
    coverage -> gaps -> fetch each gap (failures isolated) -> write
    -> settle delay (only if anything was written) -> final read
"""

from __future__ import annotations

import asyncio
from typing import Iterable, List

from ..domain.exceptions import ValidationError
from ..domain.market_data.gaps import identify_gaps
from ..domain.market_data.intervals import is_valid_interval
from ..domain.market_data.models import (
    Candle,
    CoverageInfo,
    FetcherInfo,
    MarketDataRequest,
    MarketDataResult,
    SourceSummary,
)
from ..infrastructure.stores.duckdb_ohlc_store import DuckDBOhlcStore
from ..utils.logging_setup import get_logger
from ..utils.timezone import to_utc
from .fetcher_registry import FetcherRegistry

logger = get_logger(__name__)


class MarketDataService:
    """
    Cache-first candle access.

    Stored candles are served directly; missing head/tail ranges are fetched
    from the source's registered fetcher when one exists. Fetch failures are
    logged per gap and never abort the request. Store failures propagate.
    """

    def __init__(
        self,
        store: DuckDBOhlcStore,
        registry: FetcherRegistry,
        settle_delay_ms: int = 500,
    ) -> None:
        """
        Initialize the service.

        Args:
            store: Candle store used for coverage, reads and writes.
            registry: Registered fetchers by source.
            settle_delay_ms: Pause after writes before the final read.
        """
        self._store = store
        self._registry = registry
        self._settle_delay = max(0, settle_delay_ms) / 1000.0

    async def get_candles(self, request: MarketDataRequest) -> MarketDataResult:
        """
        Get candles for the requested range, fetching missing ranges first.

        Args:
            request: Symbol, source, interval and inclusive range.

        Returns:
            MarketDataResult with the full stored range and cache/fetch counts.

        Raises:
            ValidationError: Invalid request fields.
            PersistenceError: Store failure (coverage, write or read).
        """
        request = self._validate(request)

        coverage = self._store.get_coverage(request.symbol, request.source, request.interval)
        gaps = identify_gaps(request, coverage)

        fetched = 0
        if gaps:
            fetcher = self._registry.find_on_demand(request.source, request.interval)
            if fetcher is None:
                logger.debug(
                    f"No on-demand fetcher for {request.source}/{request.interval}; "
                    f"serving stored data only"
                )
            else:
                logger.info(
                    f"Found {len(gaps)} gaps in {request.symbol}/{request.source}/"
                    f"{request.interval} coverage, fetching from {fetcher.display_name}"
                )
                for gap in gaps:
                    try:
                        candles = await fetcher.fetch_candles(
                            request.symbol, request.interval, gap.start, gap.end
                        )
                    except Exception as e:
                        logger.error(
                            f"Failed to fetch {request.symbol}/{request.interval} from "
                            f"{fetcher.source_name} for {gap.start} to {gap.end}: {e}",
                            extra={"symbol": request.symbol, "source": request.source},
                        )
                        continue

                    if candles:
                        fetched += self._store.write_candles(candles)

        if fetched > 0 and self._settle_delay > 0:
            await asyncio.sleep(self._settle_delay)

        candles = self._store.get_candles(
            request.symbol, request.source, request.interval, request.start, request.end
        )

        return MarketDataResult(
            symbol=request.symbol,
            source=request.source,
            interval=request.interval,
            start=request.start,
            end=request.end,
            candles=candles,
            cached_count=max(0, len(candles) - fetched),
            fetched_count=fetched,
        )

    def get_coverage(self, symbol: str, source: str, interval: str) -> CoverageInfo:
        return self._store.get_coverage(symbol, source.lower(), interval)

    def get_source_summaries(self, symbol: str) -> List[SourceSummary]:
        return self._store.get_source_summaries(symbol)

    def get_available_symbols(self) -> List[str]:
        return self._store.get_available_symbols()

    def get_registered_fetchers(self) -> List[FetcherInfo]:
        return self._registry.list_info()

    def has_on_demand_fetcher(self, source: str, interval: str) -> bool:
        return self._registry.find_on_demand(source, interval) is not None

    def import_candles(self, candles: Iterable[Candle]) -> int:
        """
        Write candles directly (manual import). Idempotent by candle key.

        Returns:
            Number of distinct candles written.
        """
        candles = list(candles)
        for candle in candles:
            if not is_valid_interval(candle.interval):
                raise ValidationError(f"Invalid interval '{candle.interval}' for {candle.symbol}")
        written = self._store.write_candles(candles)
        logger.info(f"Imported {written} candles")
        return written

    @staticmethod
    def _validate(request: MarketDataRequest) -> MarketDataRequest:
        if not request.symbol or not request.symbol.strip():
            raise ValidationError("symbol is required")
        if not request.source or not request.source.strip():
            raise ValidationError("source is required")
        if not is_valid_interval(request.interval):
            raise ValidationError(f"Invalid interval '{request.interval}'")
        request = _normalized(request)
        if request.start >= request.end:
            raise ValidationError(
                f"start ({request.start}) must be before end ({request.end})"
            )
        return request


def _normalized(request: MarketDataRequest) -> MarketDataRequest:
    """Lowercase the source and make the range timezone-aware UTC."""
    return MarketDataRequest(
        symbol=request.symbol.strip(),
        source=request.source.strip().lower(),
        interval=request.interval,
        start=to_utc(request.start),
        end=to_utc(request.end),
    )


__all__ = ["MarketDataService"]
