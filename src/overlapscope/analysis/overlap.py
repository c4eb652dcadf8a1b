"""
Interval overlap sweep.

Computes, for every execution interval, how long it ran concurrently with
other executions and how many of them it overlapped, together with a
timeline of the number of concurrently active executions.

The sweep makes a single forward pass over intervals ordered by
(start_time, ordinal). It keeps the intervals that are still running in a
min-heap keyed by end time. When a new interval starts, every interval that
ended at or before its start is finalized, and the new interval is compared
only against the intervals still running. Each overlapping pair is therefore
visited exactly once, when the later of the two starts, and the overlap is
credited to both sides.

Note that overlap is summed per partner: an interval that runs concurrently
with two others over the same stretch of time counts that stretch twice, so
overlap can exceed the interval's own duration when overlap_count > 1.

Example:
    >>> result = compute_overlap(
    ...     [Interval(0, 10), Interval(5, 10), Interval(12, 3)]
    ... )
    >>> [(r.start_time, r.overlap, r.overlap_count) for r in result.records]
    [(0, 5, 1), (5, 8, 2), (12, 3, 1)]
"""

import bisect
import heapq
import logging

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from overlapscope.analysis.numeric import as_float_array
from overlapscope.analysis.types import (
    ActiveCountSample,
    Interval,
    OverlapRecord,
    OverlapResult,
    SweepStep,
)
from overlapscope.constants import AnalysisConstants as AC

logger = logging.getLogger(__name__)

__all__ = [
    "IntervalOrderError",
    "InvalidIntervalError",
    "OverlapSweep",
    "SweepState",
    "active_count_at",
    "compute_overlap",
    "iter_overlap",
    "overlap_to_percent",
]


class InvalidIntervalError(ValueError):
    """Raised for an interval that cannot exist, such as a negative duration."""


class IntervalOrderError(ValueError):
    """Raised when intervals are not delivered in (start_time, ordinal) order."""


@dataclass(slots=True)
class ActiveInterval:
    """An interval that has started but not yet been finalized."""

    start_time: int
    ordinal: int
    end_time: int
    overlap: int = 0
    overlap_count: int = 0

    def finalize(self) -> OverlapRecord:
        return OverlapRecord(
            start_time=self.start_time,
            ordinal=self.ordinal,
            end_time=self.end_time,
            overlap=self.overlap,
            overlap_count=self.overlap_count,
        )


@dataclass
class SweepState:
    """
    Mutable state of one sweep.

    Attributes:
        active: Heap of (end_time, sequence, interval). The sequence number is
            unique per insertion, so intervals sharing an end time never
            collide and expire in insertion order.
        sequence: Next insertion sequence number
        last_key: (start_time, ordinal) of the last interval added
        processed: Number of intervals added so far
    """

    active: list[tuple[int, int, ActiveInterval]] = field(default_factory=list)
    sequence: int = 0
    last_key: tuple[int, int] | None = None
    processed: int = 0


class OverlapSweep:
    """
    Incremental overlap sweep over intervals ordered by start time.

    Feed intervals with add() and call finish() once the input is exhausted.
    Each call returns the records finalized and the active-count samples
    emitted by that call, so output can be written out as it is produced.

    Example:
        >>> sweep = OverlapSweep()
        >>> for interval in intervals:
        ...     step = sweep.add(interval)
        ...     sink(step)
        >>> sink(sweep.finish())
    """

    def __init__(self) -> None:
        self.state = SweepState()

    @property
    def active_count(self) -> int:
        """Number of intervals currently running."""
        return len(self.state.active)

    def add(self, interval: Interval) -> SweepStep:
        """
        Process the start of an interval.

        Args:
            interval: Next interval in (start_time, ordinal) order

        Returns:
            Records finalized by this start (intervals that ended at or before
            it) and the active-count samples emitted along the way

        Raises:
            InvalidIntervalError: If the duration is negative
            IntervalOrderError: If the interval does not sort after the previous one
        """
        self._validate(interval)
        state = self.state
        step = SweepStep()

        start_time = interval.start_time
        end_time = interval.end_time
        self._expire(start_time, step)

        new = ActiveInterval(
            start_time=start_time, ordinal=interval.ordinal, end_time=end_time
        )
        for _, _, other in state.active:
            # other.end_time > start_time >= other.start_time, so overlap >= 0
            overlap = min(end_time, other.end_time) - max(start_time, other.start_time)
            other.overlap += overlap
            other.overlap_count += 1
            new.overlap += overlap
        new.overlap_count = len(state.active)

        heapq.heappush(state.active, (end_time, state.sequence, new))
        state.sequence += 1
        step.samples.append(ActiveCountSample(start_time, len(state.active)))

        state.last_key = (start_time, interval.ordinal)
        state.processed += 1
        if state.processed % AC.SWEEP_PROGRESS_INTERVAL == 0:
            logger.debug(
                f"Sweep progress: {state.processed} intervals, "
                f"{len(state.active)} active"
            )

        return step

    def finish(self) -> SweepStep:
        """Finalize every interval still running, in end time order."""
        step = SweepStep()
        self._expire(None, step)
        return step

    def _expire(self, until: int | None, step: SweepStep) -> None:
        """Finalize active intervals with end_time <= until (all if None)."""
        active = self.state.active
        while active and (until is None or active[0][0] <= until):
            _, _, expired = heapq.heappop(active)
            step.records.append(expired.finalize())
            step.samples.append(ActiveCountSample(expired.end_time, len(active)))

    def _validate(self, interval: Interval) -> None:
        if interval.duration < 0:
            raise InvalidIntervalError(
                f"Interval at {interval.start_time} (ordinal {interval.ordinal}) "
                f"has negative duration {interval.duration}"
            )
        key = (interval.start_time, interval.ordinal)
        last_key = self.state.last_key
        if last_key is not None and key <= last_key:
            raise IntervalOrderError(
                f"Interval {key} does not sort after {last_key}; input must be "
                "ordered by (start_time, ordinal) without duplicates"
            )


def iter_overlap(intervals: Iterable[Interval]) -> Iterator[SweepStep]:
    """
    Run a sweep lazily, yielding the output of each step.

    The final step yielded is the flush of intervals still running at the end
    of the input.
    """
    sweep = OverlapSweep()
    for interval in intervals:
        yield sweep.add(interval)
    yield sweep.finish()


def compute_overlap(intervals: Iterable[Interval]) -> OverlapResult:
    """
    Run a complete sweep and collect its output.

    Args:
        intervals: Intervals ordered by (start_time, ordinal)

    Returns:
        OverlapResult with one record per interval (in end time order) and the
        active-count timeline
    """
    records: list[OverlapRecord] = []
    timeline: list[ActiveCountSample] = []
    for step in iter_overlap(intervals):
        records.extend(step.records)
        timeline.extend(step.samples)

    logger.info(
        f"Computed overlap for {len(records)} intervals "
        f"({len(timeline)} active-count samples)"
    )
    return OverlapResult(records=records, timeline=timeline)


def overlap_to_percent(durations: Sequence[Any], overlaps: Sequence[Any]) -> np.ndarray:
    """
    Express overlap as a percentage of each interval's own duration.

    100% corresponds to running concurrently with a single other execution
    for the whole duration. Intervals with zero duration map to 0%.

    Args:
        durations: Wall-clock durations (ns)
        overlaps: Accumulated overlaps (ns), parallel to durations

    Returns:
        Array of percentages

    Raises:
        ValueError: If the sequences differ in length
    """
    duration_array = as_float_array(durations)
    overlap_array = as_float_array(overlaps)
    if duration_array.shape != overlap_array.shape:
        raise ValueError(
            f"durations and overlaps must have the same length "
            f"({duration_array.size} != {overlap_array.size})"
        )

    percent = np.zeros_like(duration_array)
    np.divide(overlap_array, duration_array, out=percent, where=duration_array > 0)
    return percent * 100.0


def active_count_at(timeline: Sequence[ActiveCountSample], timestamp: int) -> int:
    """
    Number of active intervals at a point in time.

    Returns the most recent timeline sample at or before timestamp, or 0 if
    the timeline starts later.
    """
    index = bisect.bisect_right(timeline, timestamp, key=lambda s: s.timestamp)
    if index == 0:
        return 0
    return timeline[index - 1].count
