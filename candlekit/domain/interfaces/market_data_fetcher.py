"""Market data fetcher protocol for retrieving candles from external sources."""

from __future__ import annotations

from datetime import datetime
from typing import List, Protocol, Sequence, runtime_checkable

from ..market_data.models import Candle, FetcherInfo


@runtime_checkable
class MarketDataFetcher(Protocol):
    """
    Protocol for external candle sources.

    One instance per source, registered by its canonical source name.
    New sources are added by implementing this protocol and registering
    an instance; the candle cache never changes.

    Implementations:
    - BinanceKlineFetcher (Binance US REST klines)
    """

    @property
    def source_name(self) -> str:
        """
        Canonical lowercase source identifier (e.g., 'binance').

        Used as the registry key and stored as candle provenance.
        """
        ...

    @property
    def display_name(self) -> str:
        """Human-readable source name."""
        ...

    @property
    def can_fetch_on_demand(self) -> bool:
        """Whether the candle cache may call this fetcher to fill gaps."""
        ...

    @property
    def supported_intervals(self) -> Sequence[str]:
        """Canonical intervals this source can serve."""
        ...

    def supports_interval(self, interval: str) -> bool:
        """Check if this source supports the given interval."""
        ...

    async def fetch_candles(
        self,
        symbol: str,
        interval: str,
        start: datetime,
        end: datetime,
    ) -> List[Candle]:
        """
        Fetch candles from the source, paging internally.

        Args:
            symbol: Canonical symbol (e.g., 'BTC-USD').
            interval: Canonical interval (e.g., '1h').
            start: Start datetime (inclusive).
            end: End datetime (inclusive).

        Returns:
            Candles sorted by timestamp ascending. Empty list if none.

        Raises:
            ValidationError: If the interval is not supported (before any network call).
            FetchError: On network, rate-limit or parse failure.
        """
        ...


def describe_fetcher(fetcher: MarketDataFetcher) -> FetcherInfo:
    """Build the registry description of a fetcher."""
    return FetcherInfo(
        source_name=fetcher.source_name,
        display_name=fetcher.display_name,
        can_fetch_on_demand=fetcher.can_fetch_on_demand,
        supported_intervals=tuple(fetcher.supported_intervals),
    )
