"""
Descriptive statistics over sorted sample sets.

All functions expect samples that are already sorted ascending. Sorting is
the caller's job (see sort_bins), which lets a caller sort once and derive
several statistics from the same data.
"""

import math

from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np

from overlapscope.analysis.numeric import as_float, kahan_sum
from overlapscope.analysis.types import StatisticsRecord
from overlapscope.constants import AggregationMode


__all__ = [
    "compute_statistics",
    "extract_statistic",
    "median",
    "sort_bins",
    "statistics_per_bin",
]


def _require_sorted(samples: Sequence[Any]) -> None:
    if len(samples) < 2:
        return
    if np.any(np.diff(np.asarray(samples, dtype=np.float64)) < 0):
        raise ValueError("Samples must be sorted in ascending order")


def median(sorted_samples: Sequence[Any]) -> float:
    """
    Median of a sorted sequence.

    For an even number of samples this is the mean of the two middle elements.

    Raises:
        ValueError: If the sequence is empty
    """
    n = len(sorted_samples)
    if n == 0:
        raise ValueError("Median of an empty sequence is undefined")
    mid = n // 2
    if n % 2 == 0:
        return (as_float(sorted_samples[mid - 1]) + as_float(sorted_samples[mid])) / 2.0
    return as_float(sorted_samples[mid])


def compute_statistics(sorted_samples: Sequence[Any]) -> StatisticsRecord:
    """
    Calculate count, extremes, mean, standard deviation and quartiles.

    Quartiles split the data at half its length: Q1 is the median of the
    lower half and Q3 the median of the upper half, both excluding the middle
    element when the count is odd. A single sample yields Q1 = Q3 = median.
    Mean and variance use Kahan summation.

    Args:
        sorted_samples: Samples sorted ascending (int or float)

    Returns:
        StatisticsRecord; count=0 with zeroed fields for empty input

    Raises:
        ValueError: If the samples are not sorted
    """
    count = len(sorted_samples)
    if count == 0:
        return StatisticsRecord(count=0)

    _require_sorted(sorted_samples)

    mean = kahan_sum(sorted_samples) / count
    sum_of_squares = kahan_sum((as_float(x) - mean) ** 2 for x in sorted_samples)

    mid = median(sorted_samples)
    half = count // 2
    if half == 0:
        q1 = q3 = mid
    else:
        q1 = median(sorted_samples[:half])
        q3 = median(sorted_samples[count - half :])

    return StatisticsRecord(
        count=count,
        min=as_float(sorted_samples[0]),
        max=as_float(sorted_samples[-1]),
        mean=mean,
        std_dev=math.sqrt(sum_of_squares / count),
        median=mid,
        q1=q1,
        q3=q3,
        iqr=q3 - q1,
    )


def sort_bins(bins: Iterable[Sequence[Any]]) -> list[list[Any]]:
    """Sort the samples within each bin. Bin order is unchanged."""
    return [sorted(bin_values) for bin_values in bins]


def statistics_per_bin(bins: Iterable[Sequence[Any]]) -> list[StatisticsRecord]:
    """Calculate statistics for each bin of sorted samples."""
    return [compute_statistics(bin_values) for bin_values in bins]


def extract_statistic(
    records: Iterable[StatisticsRecord], mode: AggregationMode | str
) -> list[float]:
    """
    Pick one statistic out of each record.

    Args:
        records: Statistics per bin
        mode: Which statistic to report

    Returns:
        One float per record
    """
    mode = AggregationMode(mode)
    if mode == AggregationMode.COUNT:
        return [float(r.count) for r in records]
    return [float(getattr(r, mode.value)) for r in records]
