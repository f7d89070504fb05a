"""Candle storage."""

from .duckdb_ohlc_store import DuckDBOhlcStore

__all__ = ["DuckDBOhlcStore"]
