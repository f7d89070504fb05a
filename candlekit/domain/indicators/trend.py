"""
Trend indicators: simple and exponential moving averages.

Both return an array aligned with the input; positions before the first
full window hold NaN. Inputs shorter than the period yield all-NaN output.
"""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np

ArrayLike = Union[Sequence[float], np.ndarray]


def _validate_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")


def sma(prices: ArrayLike, period: int) -> np.ndarray:
    """
    Simple moving average using a running window sum.

    First valid index is period - 1.
    """
    _validate_period(period)
    data = np.asarray(prices, dtype=np.float64)
    n = len(data)
    result = np.full(n, np.nan, dtype=np.float64)

    if n < period:
        return result

    window_sum = float(np.sum(data[:period]))
    result[period - 1] = window_sum / period

    for i in range(period, n):
        window_sum += data[i] - data[i - period]
        result[i] = window_sum / period

    return result


def ema(prices: ArrayLike, period: int) -> np.ndarray:
    """
    Exponential moving average seeded with the SMA of the first period values.

    ema[i] = (price[i] - ema[i-1]) * 2/(period+1) + ema[i-1]
    """
    _validate_period(period)
    data = np.asarray(prices, dtype=np.float64)
    n = len(data)
    result = np.full(n, np.nan, dtype=np.float64)

    if n < period:
        return result

    multiplier = 2.0 / (period + 1)
    result[period - 1] = float(np.sum(data[:period])) / period

    for i in range(period, n):
        result[i] = (data[i] - result[i - 1]) * multiplier + result[i - 1]

    return result
