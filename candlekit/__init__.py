"""
candlekit - cache-first candle storage and rule-based backtesting.

Candles are served from DuckDB first; missing head/tail ranges are fetched
from registered exchange fetchers on demand. Stored strategies are
backtested deterministically over those candles.
"""

__version__ = "0.1.0"
