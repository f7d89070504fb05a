"""
Momentum indicators: RSI (Wilder) and MACD.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .trend import ArrayLike, _validate_period, ema


def rsi(prices: ArrayLike, period: int = 14) -> np.ndarray:
    """
    Relative Strength Index with Wilder's smoothing.

    The first value at index `period` uses simple averages of the first
    `period` price changes; later values smooth with weight (period-1)/period.
    RSI is 100 when the average loss is zero.

    Args:
        prices: Close prices.
        period: Lookback period (default 14).

    Returns:
        Array aligned with prices; the first `period` entries are NaN.
    """
    _validate_period(period)
    data = np.asarray(prices, dtype=np.float64)
    n = len(data)
    result = np.full(n, np.nan, dtype=np.float64)

    if n < period + 1:
        return result

    # Index 0 has no prior price, so its change stays 0
    deltas = np.zeros(n, dtype=np.float64)
    deltas[1:] = np.diff(data)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = float(np.sum(gains[1:period + 1])) / period
    avg_loss = float(np.sum(losses[1:period + 1])) / period
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period + 1, n):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        result[i] = _rsi_value(avg_gain, avg_loss)

    return result


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    return 100.0 - (100.0 / (1.0 + avg_gain / avg_loss))


def macd(
    prices: ArrayLike,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    MACD line, signal line and histogram.

    MACD line = EMA(fast) - EMA(slow) wherever both are valid. The signal
    line is the EMA of the valid MACD segment, mapped back to the original
    indices. Histogram = MACD - signal wherever the signal is valid.

    Returns:
        (macd_line, signal_line, histogram), each aligned with prices.
    """
    data = np.asarray(prices, dtype=np.float64)
    n = len(data)
    macd_line = np.full(n, np.nan, dtype=np.float64)
    signal_line = np.full(n, np.nan, dtype=np.float64)
    histogram = np.full(n, np.nan, dtype=np.float64)

    fast = ema(data, fast_period)
    slow = ema(data, slow_period)

    valid = ~np.isnan(fast) & ~np.isnan(slow)
    if not valid.any():
        return macd_line, signal_line, histogram

    macd_line[valid] = fast[valid] - slow[valid]
    valid_idx = np.flatnonzero(valid)

    segment = macd_line[valid_idx]
    if len(segment) < signal_period:
        return macd_line, signal_line, histogram

    signal_segment = ema(segment, signal_period)
    signal_line[valid_idx] = signal_segment

    has_signal = ~np.isnan(signal_segment)
    hist_idx = valid_idx[has_signal]
    histogram[hist_idx] = macd_line[hist_idx] - signal_segment[has_signal]

    return macd_line, signal_line, histogram
