"""Moving average series for the three-line convergence engine.

This module provides the rolling-window primitives the engine builds on. Unlike
a NaN-padded NumPy series, positions that cannot be computed yet are ``None``
so "not enough history" never leaks into arithmetic as a number.
"""

import math

import numpy as np
from numpy.typing import NDArray

MASeries = list[float | None]


def simple_moving_average(
    values: list[float] | NDArray[np.float64], period: int
) -> MASeries:
    """Calculate a Simple Moving Average (SMA) series.

    The SMA at position i is the arithmetic mean of values[i-period+1..i].
    A running sum is maintained (add the entering value, subtract the leaving
    one), so the whole series costs O(n) regardless of the window length.

    Args:
        values: Numeric data, oldest first
        period: Window length (must be > 0)

    Returns:
        List with the same length as ``values``. Positions before
        ``period - 1`` are None. A window that contains a non-finite value
        is also None.

    Raises:
        ValueError: If period <= 0

    Example:
        >>> simple_moving_average([1, 2, 3, 4, 5], 3)
        [None, None, 2.0, 3.0, 4.0]
    """
    if period <= 0:
        raise ValueError("Period must be greater than 0")

    values_array = np.asarray(values, dtype=float)
    n = len(values_array)
    sma: MASeries = [None] * n

    if n < period:
        return sma

    finite = np.isfinite(values_array)
    running_sum = 0.0
    bad_in_window = 0

    for i in range(n):
        if finite[i]:
            running_sum += float(values_array[i])
        else:
            bad_in_window += 1

        leaving = i - period
        if leaving >= 0:
            if finite[leaving]:
                running_sum -= float(values_array[leaving])
            else:
                bad_in_window -= 1

        if i >= period - 1 and bad_in_window == 0:
            sma[i] = running_sum / period

    return sma


def value_at(series: MASeries, offset: int = 0) -> float | None:
    """Return the value ``offset`` positions back from the end of a series.

    offset=0 is the latest value, offset=1 is the one before it. Returns None
    when the position does not exist or holds no computed value.
    """
    if offset < 0 or offset >= len(series):
        return None
    value = series[len(series) - 1 - offset]
    if value is None or not math.isfinite(value):
        return None
    return value
