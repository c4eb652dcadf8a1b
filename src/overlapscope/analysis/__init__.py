"""Overlap sweep, statistics, binning and shape analysis."""

from overlapscope.analysis.overlap import (
    IntervalOrderError,
    InvalidIntervalError,
    OverlapSweep,
    compute_overlap,
    iter_overlap,
    overlap_to_percent,
)
from overlapscope.analysis.shape import analyze_shape, find_shape, rank_groups_by_shape
from overlapscope.analysis.statistics import compute_statistics, median
from overlapscope.analysis.types import (
    ActiveCountSample,
    AggregationSettings,
    Interval,
    OverlapRecord,
    OverlapResult,
    ShapeRecord,
    StatisticsRecord,
    TimePeriod,
    TimeUnit,
)

__all__ = [
    "ActiveCountSample",
    "AggregationSettings",
    "Interval",
    "IntervalOrderError",
    "InvalidIntervalError",
    "OverlapRecord",
    "OverlapResult",
    "OverlapSweep",
    "ShapeRecord",
    "StatisticsRecord",
    "TimePeriod",
    "TimeUnit",
    "analyze_shape",
    "compute_overlap",
    "compute_statistics",
    "find_shape",
    "iter_overlap",
    "median",
    "overlap_to_percent",
    "rank_groups_by_shape",
]
