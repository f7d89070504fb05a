"""Volatility indicators: Bollinger Bands."""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .trend import ArrayLike, sma


def bollinger_bands(
    prices: ArrayLike,
    period: int = 20,
    num_std: float = 2.0,
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Bollinger Bands around a simple moving average.

    Band width uses the population standard deviation of the trailing
    `period` prices around the window mean.

    Returns:
        (upper, middle, lower), each aligned with prices.
    """
    data = np.asarray(prices, dtype=np.float64)
    n = len(data)
    middle = sma(data, period)
    upper = np.full(n, np.nan, dtype=np.float64)
    lower = np.full(n, np.nan, dtype=np.float64)

    for i in range(period - 1, n):
        if np.isnan(middle[i]):
            continue
        window = data[i - period + 1:i + 1]
        std = float(np.sqrt(np.sum((window - middle[i]) ** 2) / period))
        upper[i] = middle[i] + num_std * std
        lower[i] = middle[i] - num_std * std

    return upper, middle, lower
