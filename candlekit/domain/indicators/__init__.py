"""
Indicator library.

Pure numeric functions over a price array. Each returns an array (or a
tuple of arrays) aligned index-for-index with the input, with NaN where
there is not yet enough history.
"""

from .momentum import macd, rsi
from .trend import ema, sma
from .volatility import bollinger_bands

__all__ = ["bollinger_bands", "ema", "macd", "rsi", "sma"]
