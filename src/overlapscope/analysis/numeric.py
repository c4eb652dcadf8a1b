"""
Numeric primitives shared by the statistics and shape analysis.

Samples arrive either as integer nanoseconds (durations, overlaps) or as
floats (percentages, converted units); everything here accepts both.
"""

from collections.abc import Iterable
from numbers import Real
from typing import Any

import numpy as np

__all__ = ["as_float", "as_float_array", "kahan_sum"]


def as_float(value: Any) -> float:
    """
    Cast a single integer or floating point sample to float.

    Args:
        value: Python int/float or numpy scalar

    Returns:
        The value as a Python float

    Raises:
        TypeError: If value is not a real number (bool and str included)
    """
    if isinstance(value, (bool, np.bool_)) or not isinstance(value, (Real, np.number)):
        raise TypeError(f"Expected a real number, got {type(value).__name__}")
    return float(value)


def as_float_array(values: Iterable[Any]) -> np.ndarray:
    """
    Cast a sequence of integer or floating point samples to a float64 array.

    Raises:
        TypeError: If the values are not numeric
    """
    array = values if isinstance(values, np.ndarray) else np.asarray(list(values))
    if array.size == 0:
        return np.zeros(0, dtype=np.float64)
    if array.dtype == np.bool_ or not np.issubdtype(array.dtype, np.number):
        raise TypeError(f"Expected numeric samples, got dtype {array.dtype}")
    return array.astype(np.float64, copy=False)


def kahan_sum(values: Iterable[Any]) -> float:
    """
    Sum a sequence of numbers with Kahan compensated summation.

    Keeps a running compensation term for the low-order bits lost in each
    addition, so the error stays bounded independent of the number of terms.
    See https://en.wikipedia.org/wiki/Kahan_summation_algorithm.

    Args:
        values: Any iterable of int/float samples

    Returns:
        The compensated sum as a float (0.0 for an empty sequence)
    """
    total = 0.0
    compensation = 0.0
    for value in values:
        y = as_float(value) - compensation
        t = total + y
        compensation = (t - total) - y
        total = t
    return total
