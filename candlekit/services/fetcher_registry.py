"""
Fetcher registry - maps source names to market data fetchers.

Lookups are case-insensitive; source names are stored lowercase.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional

from ..domain.interfaces.market_data_fetcher import MarketDataFetcher, describe_fetcher
from ..domain.market_data.models import FetcherInfo
from ..utils.logging_setup import get_logger

logger = get_logger(__name__)


class FetcherRegistry:
    """Registry of market data fetchers keyed by lowercase source name."""

    def __init__(self, fetchers: Optional[Iterable[MarketDataFetcher]] = None) -> None:
        self._fetchers: Dict[str, MarketDataFetcher] = {}
        for fetcher in fetchers or ():
            self.register(fetcher)

    def register(self, fetcher: MarketDataFetcher) -> None:
        """
        Register a fetcher under its source name.

        Raises:
            ValueError: If a fetcher is already registered for the source.
        """
        key = fetcher.source_name.lower()
        if key in self._fetchers:
            raise ValueError(f"Fetcher already registered for source '{key}'")
        self._fetchers[key] = fetcher
        logger.info(f"Registered market data fetcher: {fetcher.display_name} ({key})")

    def get(self, source: str) -> Optional[MarketDataFetcher]:
        return self._fetchers.get(source.lower())

    def find_on_demand(self, source: str, interval: str) -> Optional[MarketDataFetcher]:
        """Return the fetcher for source if it can fill gaps for this interval."""
        fetcher = self.get(source)
        if fetcher is None or not fetcher.can_fetch_on_demand:
            return None
        if not fetcher.supports_interval(interval):
            return None
        return fetcher

    def list_info(self) -> List[FetcherInfo]:
        return [describe_fetcher(f) for f in self._fetchers.values()]

    def __contains__(self, source: str) -> bool:
        return source.lower() in self._fetchers

    def __len__(self) -> int:
        return len(self._fetchers)
