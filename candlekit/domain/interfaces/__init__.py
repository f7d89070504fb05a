"""Ports implemented by infrastructure adapters."""

from .market_data_fetcher import MarketDataFetcher, describe_fetcher

__all__ = ["MarketDataFetcher", "describe_fetcher"]
