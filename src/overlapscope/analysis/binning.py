"""
Time-window binning and aggregation of sample series.

A series is a pair of parallel sequences: timestamps (ns, sorted) and values.
Binning maps each timestamp to a bucket key, groups contiguous runs of equal
key, reduces each group to one statistic, and splits the result into
segments wherever buckets are missing so that a plot does not connect
unrelated windows.
"""

import logging

from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from overlapscope.analysis.statistics import (
    extract_statistic,
    sort_bins,
    statistics_per_bin,
)
from overlapscope.analysis.types import AggregationSettings

logger = logging.getLogger(__name__)

__all__ = [
    "Segment",
    "aggregate_and_segment",
    "group_by_key",
    "segment_series",
    "ungroup_segments",
]

X = TypeVar("X")
Y = TypeVar("Y")
K = TypeVar("K")

Segment = tuple[list[Any], list[Any]]


def group_by_key(
    x_sorted: Sequence[X],
    y: Sequence[Y],
    bucket_fn: Callable[[X], K],
    min_count: int | None = None,
) -> tuple[list[K], list[list[Y]]]:
    """
    Group y values by the bucket their x value maps to.

    Contiguous runs of equal bucket key form one group. x must be ordered so
    that bucket keys never decrease.

    Args:
        x_sorted: Values that determine the bucket (usually timestamps)
        y: Values to group, parallel to x_sorted
        bucket_fn: Maps an x value to its bucket key
        min_count: Drop groups with fewer values than this

    Returns:
        Tuple of (bucket_keys, grouped_values)

    Raises:
        ValueError: If x and y differ in length or bucket keys decrease
    """
    if len(x_sorted) != len(y):
        raise ValueError(
            f"x and y must have the same length ({len(x_sorted)} != {len(y)})"
        )

    keys: list[K] = []
    groups: list[list[Y]] = []
    if len(x_sorted) == 0:
        return keys, groups

    def close_group(key: K, values: list[Y]) -> None:
        if min_count is not None and len(values) < min_count:
            return
        keys.append(key)
        groups.append(values)

    current_key = bucket_fn(x_sorted[0])
    current_values: list[Y] = [y[0]]

    for x_value, y_value in zip(x_sorted[1:], y[1:]):
        key = bucket_fn(x_value)
        if key == current_key:
            current_values.append(y_value)
            continue
        if key < current_key:  # type: ignore[operator]
            raise ValueError(
                f"Values are not sorted by bucket key ({key} follows {current_key})"
            )
        close_group(current_key, current_values)
        current_key = key
        current_values = [y_value]

    close_group(current_key, current_values)
    return keys, groups


def segment_series(
    keys: Sequence[int], values: Sequence[Y], max_gap: int = 1
) -> list[tuple[list[int], list[Y]]]:
    """
    Split a bucketed series into runs without missing buckets.

    A new segment starts wherever two consecutive keys are more than max_gap
    apart.

    Args:
        keys: Ascending bucket keys
        values: One value per key
        max_gap: Largest key step that still counts as contiguous

    Returns:
        List of (keys, values) segments, in order
    """
    if len(keys) != len(values):
        raise ValueError(
            f"keys and values must have the same length ({len(keys)} != {len(values)})"
        )
    if len(keys) == 0:
        return []

    segments: list[tuple[list[int], list[Y]]] = []
    segment_keys = [keys[0]]
    segment_values = [values[0]]

    for previous, key, value in zip(keys, keys[1:], values[1:]):
        if key - previous > max_gap:
            segments.append((segment_keys, segment_values))
            segment_keys, segment_values = [], []
        segment_keys.append(key)
        segment_values.append(value)

    segments.append((segment_keys, segment_values))
    return segments


def ungroup_segments(
    segments: Sequence[tuple[Sequence[K], Sequence[Y]]],
    unbucket_fn: Callable[[K], X],
) -> list[tuple[list[X], list[Y]]]:
    """
    Map the bucket keys of each segment back to representative x values.

    Segment boundaries are preserved.

    Args:
        segments: (bucket_keys, values) pairs
        unbucket_fn: Maps a bucket key to e.g. the timestamp the bucket starts at

    Returns:
        (x_values, values) pairs
    """
    return [
        ([unbucket_fn(key) for key in segment_keys], list(segment_values))
        for segment_keys, segment_values in segments
    ]


def aggregate_and_segment(
    timestamps: Sequence[int],
    values: Sequence[Any],
    aggregation: AggregationSettings | None = None,
) -> list[Segment]:
    """
    Reduce a time series into per-window statistics, split at missing windows.

    Without aggregation settings the raw series is returned as one segment.

    Args:
        timestamps: Sample timestamps (ns), ascending
        values: Sample values, parallel to timestamps
        aggregation: Window size, statistic and minimum window population

    Returns:
        List of (window_start_timestamps, statistic_values) segments
    """
    if aggregation is None:
        if len(timestamps) != len(values):
            raise ValueError(
                f"x and y must have the same length ({len(timestamps)} != {len(values)})"
            )
        if len(timestamps) == 0:
            return []
        return [([int(t) for t in timestamps], [float(v) for v in values])]

    period = aggregation.size
    keys, bins = group_by_key(
        timestamps, values, period.to_bucket, min_count=aggregation.min_count
    )
    statistics = statistics_per_bin(sort_bins(bins))
    aggregated = extract_statistic(statistics, aggregation.mode)

    segments = segment_series(keys, aggregated)
    logger.debug(
        f"Aggregated {len(timestamps)} samples into {len(keys)} windows of "
        f"{period} ({len(segments)} segments)"
    )
    return ungroup_segments(segments, period.from_bucket)
