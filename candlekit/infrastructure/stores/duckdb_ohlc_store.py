"""
DuckDB-based OHLC candle store.

Answers "what do we already have?" for a (symbol, source, interval) key and
persists candles idempotently: rows are keyed on
(symbol, source, timeframe, ts) and every write is an upsert, so repeated or
overlapping writes never create duplicates and the last writer wins.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List

import pandas as pd

from ...domain.market_data.models import Candle, CoverageInfo, SourceSummary
from ...utils.logging_setup import get_logger
from ...utils.timezone import to_naive_utc, to_utc
from ..persistence.database import DatabaseManager

logger = get_logger(__name__)

_KEY_COLUMNS = ["symbol", "source", "timeframe", "ts"]
_COLUMNS = _KEY_COLUMNS + ["open", "high", "low", "close", "volume", "trade_count"]


class DuckDBOhlcStore:
    """
    Candle storage and coverage queries over a single `ohlc` table.

    Timestamps are stored as naive UTC and returned as timezone-aware UTC.
    """

    def __init__(self, db: DatabaseManager) -> None:
        self.db = db

    def ensure_schema(self) -> None:
        """Create the ohlc table if it doesn't exist. Safe to call on every startup."""
        self.db.execute("""
            CREATE TABLE IF NOT EXISTS ohlc (
                symbol VARCHAR NOT NULL,
                source VARCHAR NOT NULL,
                timeframe VARCHAR NOT NULL,
                ts TIMESTAMP NOT NULL,
                open DOUBLE NOT NULL,
                high DOUBLE NOT NULL,
                low DOUBLE NOT NULL,
                close DOUBLE NOT NULL,
                volume DOUBLE NOT NULL,
                trade_count BIGINT DEFAULT 0,
                PRIMARY KEY (symbol, source, timeframe, ts)
            )
        """)

    def get_coverage(self, symbol: str, source: str, interval: str) -> CoverageInfo:
        """
        Get min/max timestamp and count for a symbol/source/interval.

        Returns:
            CoverageInfo; empty (count 0, no bounds) when nothing is stored.
        """
        row = self.db.fetchone("""
            SELECT MIN(ts), MAX(ts), COUNT(*)
            FROM ohlc
            WHERE symbol = ? AND source = ? AND timeframe = ?
        """, [symbol, source, interval])

        count = int(row[2]) if row else 0
        if count == 0:
            return CoverageInfo(symbol=symbol, source=source, interval=interval)

        return CoverageInfo(
            symbol=symbol,
            source=source,
            interval=interval,
            earliest=to_utc(row[0]),
            latest=to_utc(row[1]),
            candle_count=count,
        )

    def get_source_summaries(self, symbol: str) -> List[SourceSummary]:
        """Get per-(source, interval) availability for a symbol."""
        rows = self.db.fetchall("""
            SELECT source, timeframe, MIN(ts), MAX(ts), COUNT(*)
            FROM ohlc
            WHERE symbol = ?
            GROUP BY source, timeframe
            ORDER BY source, timeframe
        """, [symbol])

        return [
            SourceSummary(
                source=row[0],
                interval=row[1],
                earliest=to_utc(row[2]),
                latest=to_utc(row[3]),
                candle_count=int(row[4]),
            )
            for row in rows
        ]

    def get_available_symbols(self) -> List[str]:
        """Get all symbols that have stored candles."""
        rows = self.db.fetchall("SELECT DISTINCT symbol FROM ohlc ORDER BY symbol")
        return [row[0] for row in rows]

    def get_candles(
        self,
        symbol: str,
        source: str,
        interval: str,
        start: datetime,
        end: datetime,
    ) -> List[Candle]:
        """
        Read candles in [start, end] (inclusive), ascending by timestamp.
        """
        rows = self.db.fetchall("""
            SELECT ts, open, high, low, close, volume, trade_count
            FROM ohlc
            WHERE symbol = ? AND source = ? AND timeframe = ?
              AND ts >= ? AND ts <= ?
            ORDER BY ts ASC
        """, [symbol, source, interval, to_naive_utc(start), to_naive_utc(end)])

        return [
            Candle(
                symbol=symbol,
                source=source,
                interval=interval,
                timestamp=to_utc(row[0]),
                open=row[1],
                high=row[2],
                low=row[3],
                close=row[4],
                volume=row[5],
                trade_count=int(row[6] or 0),
            )
            for row in rows
        ]

    def write_candles(self, candles: Iterable[Candle]) -> int:
        """
        Upsert candles keyed on (symbol, source, interval, timestamp).

        Duplicate keys within the batch collapse to the last occurrence.

        Returns:
            Number of distinct rows written.
        """
        df = self._to_frame(candles)
        if df.empty:
            return 0

        df = df.drop_duplicates(subset=_KEY_COLUMNS, keep="last")

        conn = self.db.conn
        conn.register("incoming_ohlc", df)
        try:
            with self.db.transaction():
                self.db.execute(f"""
                    INSERT OR REPLACE INTO ohlc ({", ".join(_COLUMNS)})
                    SELECT {", ".join(_COLUMNS)} FROM incoming_ohlc
                """)
        finally:
            conn.unregister("incoming_ohlc")

        written = len(df)
        logger.debug(f"Upserted {written} candles into ohlc")
        return written

    @staticmethod
    def _to_frame(candles: Iterable[Candle]) -> pd.DataFrame:
        records = [
            {
                "symbol": c.symbol,
                "source": c.source,
                "timeframe": c.interval,
                "ts": to_naive_utc(c.timestamp),
                "open": float(c.open),
                "high": float(c.high),
                "low": float(c.low),
                "close": float(c.close),
                "volume": float(c.volume),
                "trade_count": int(c.trade_count),
            }
            for c in candles
        ]
        return pd.DataFrame.from_records(records, columns=_COLUMNS)
