"""Binance US market data adapter."""

from .kline_fetcher import BinanceKlineFetcher, normalize_symbol

__all__ = ["BinanceKlineFetcher", "normalize_symbol"]
