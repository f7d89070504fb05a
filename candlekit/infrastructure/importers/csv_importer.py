"""
CSV candle importer.

Reads OHLCV rows from a CSV file with a header record into Candles for a
given symbol, source and interval. Column names are matched
case-insensitively; the time column may be any of TIME_COLUMNS and holds
either ISO-8601 strings or epoch milliseconds.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

import pandas as pd

from ...domain.exceptions import ValidationError
from ...domain.market_data.intervals import is_valid_interval
from ...domain.market_data.models import Candle
from ...utils.logging_setup import get_logger

logger = get_logger(__name__)

TIME_COLUMNS = ("timestamp", "time", "datetime", "date", "open_time")
PRICE_COLUMNS = ("open", "high", "low", "close", "volume")


def _parse_timestamps(values: pd.Series) -> pd.Series:
    if pd.api.types.is_numeric_dtype(values):
        return pd.to_datetime(values, unit="ms", utc=True)
    return pd.to_datetime(values, utc=True)


def read_candles_csv(
    path: Union[str, Path],
    symbol: str,
    source: str,
    interval: str,
) -> List[Candle]:
    """
    Parse a CSV file into candles.

    Args:
        path: CSV file with a header row.
        symbol: Canonical symbol assigned to every row.
        source: Source name assigned to every row (stored lowercase).
        interval: Canonical interval assigned to every row.

    Returns:
        Candles sorted by timestamp.

    Raises:
        ValidationError: Unknown interval, missing columns or unparseable values.
    """
    if not is_valid_interval(interval):
        raise ValidationError(f"Invalid interval '{interval}'")
    if not symbol or not source:
        raise ValidationError("symbol and source are required")

    try:
        df = pd.read_csv(path)
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise ValidationError(f"Cannot read CSV {path}: {e}") from e

    df.columns = [str(c).strip().lower() for c in df.columns]

    time_col = next((c for c in TIME_COLUMNS if c in df.columns), None)
    if time_col is None:
        raise ValidationError(f"CSV {path} has no time column (expected one of {', '.join(TIME_COLUMNS)})")

    missing = [c for c in PRICE_COLUMNS if c not in df.columns]
    if missing:
        raise ValidationError(f"CSV {path} is missing columns: {', '.join(missing)}")

    try:
        timestamps = _parse_timestamps(df[time_col])
        prices = df[list(PRICE_COLUMNS)].astype(float)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"CSV {path} has unparseable values: {e}") from e

    if "trade_count" in df.columns:
        trade_counts = df["trade_count"].fillna(0).astype(int)
    else:
        trade_counts = pd.Series(0, index=df.index)

    source = source.lower()
    candles = [
        Candle(
            symbol=symbol,
            source=source,
            interval=interval,
            timestamp=ts.to_pydatetime(),
            open=row.open,
            high=row.high,
            low=row.low,
            close=row.close,
            volume=row.volume,
            trade_count=int(tc),
        )
        for ts, row, tc in zip(timestamps, prices.itertuples(index=False), trade_counts)
    ]
    candles.sort(key=lambda c: c.timestamp)

    logger.info(f"Read {len(candles)} {interval} candles for {symbol} from {path}")
    return candles
