"""Candle importers."""

from .csv_importer import read_candles_csv

__all__ = ["read_candles_csv"]
