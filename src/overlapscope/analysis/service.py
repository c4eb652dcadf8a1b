"""
Analysis service for overlap and duration statistics.

This module ties the analysis algorithms to the trace database: it streams
executions through the overlap sweep, stores the results, and loads samples
for the statistics, shape and histogram reports.
"""

import logging
import time

from dataclasses import dataclass

import numpy as np

from sqlalchemy.orm import Session

from overlapscope.analysis.binning import Segment, aggregate_and_segment
from overlapscope.analysis.conversions import ns_duration_to_seconds, ns_duration_to_unit
from overlapscope.analysis.filters import apply_work_hours_filter
from overlapscope.analysis.histogram import make_histogram_2d
from overlapscope.analysis.overlap import OverlapSweep, overlap_to_percent
from overlapscope.analysis.shape import rank_groups_by_shape
from overlapscope.analysis.statistics import compute_statistics
from overlapscope.analysis.types import (
    ActiveCountSample,
    AggregationSettings,
    GroupShapeSummary,
    Histogram2D,
    OverlapRecord,
    StatisticsRecord,
    TimeUnit,
)
from overlapscope.constants import TABLE_EXECUTIONS, AggregationMode
from overlapscope.constants import AnalysisConstants as AC
from overlapscope.database.store import ExecutionStore, TimeRange

logger = logging.getLogger(__name__)

__all__ = ["GroupStatistics", "OverlapAnalysisService", "OverlapRunSummary"]


@dataclass
class OverlapRunSummary:
    """Totals of one compute_overlap run."""

    intervals: int
    records_written: int
    samples_written: int
    max_active: int
    elapsed_seconds: float


@dataclass
class GroupStatistics:
    """Duration statistics (seconds) of one view or form."""

    group_id: int
    statistics: StatisticsRecord


class OverlapAnalysisService:
    """
    Service for running overlap analysis against the trace database.

    Example:
        >>> with session_scope() as session:
        ...     service = OverlapAnalysisService(session)
        ...     summary = service.compute_overlap()
        ...     ranking = service.overlap_shape_ranking()
    """

    def __init__(self, db_session: Session):
        self.db_session = db_session
        self.store = ExecutionStore(db_session)

    def compute_overlap(self, batch_size: int = AC.DEFAULT_BATCH_SIZE) -> OverlapRunSummary:
        """
        Recompute overlap records and the active-count timeline.

        Previous results are deleted first. Executions are streamed in
        (timestamp, ordinal) order and the sweep output is inserted batch_size
        rows at a time.

        Args:
            batch_size: Rows per fetch and per insert

        Returns:
            OverlapRunSummary with counts of what was written
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        started = time.perf_counter()
        total = self.store.count_executions()
        logger.info(f"Computing overlap for {total} executions")
        self.store.reset_overlap_tables()

        sweep = OverlapSweep()
        records: list[OverlapRecord] = []
        samples: list[ActiveCountSample] = []
        records_written = 0
        samples_written = 0
        max_active = 0
        intervals = 0

        def flush() -> None:
            nonlocal records_written, samples_written
            records_written += self.store.write_overlap_records(records)
            samples_written += self.store.write_active_counts(samples)
            records.clear()
            samples.clear()

        for interval in self.store.iter_intervals(batch_size):
            step = sweep.add(interval)
            records.extend(step.records)
            samples.extend(step.samples)
            max_active = max(max_active, sweep.active_count)
            intervals += 1

            if len(records) >= batch_size or len(samples) >= batch_size:
                flush()

        step = sweep.finish()
        records.extend(step.records)
        samples.extend(step.samples)
        flush()

        summary = OverlapRunSummary(
            intervals=intervals,
            records_written=records_written,
            samples_written=samples_written,
            max_active=max_active,
            elapsed_seconds=time.perf_counter() - started,
        )
        logger.info(
            f"Overlap computed for {summary.intervals} executions in "
            f"{summary.elapsed_seconds:.2f}s (max {summary.max_active} active)"
        )
        return summary

    def group_statistics(
        self,
        group_column: str,
        table: str = TABLE_EXECUTIONS,
        time_range: TimeRange | None = None,
    ) -> list[GroupStatistics]:
        """
        Duration statistics per view or form, in seconds.

        Returns:
            One entry per group, sorted by ascending Q3
        """
        by_group = self.store.load_samples_by_group(
            table, group_column, time_range=time_range
        )
        results = [
            GroupStatistics(
                group_id=group_id,
                statistics=compute_statistics(np.sort(ns_duration_to_seconds(durations))),
            )
            for group_id, durations in by_group.items()
        ]
        results.sort(key=lambda g: (g.statistics.q3, g.group_id))
        return results

    def overlap_shape_ranking(
        self,
        time_range: TimeRange | None = None,
        min_samples: int = AC.DEFAULT_MIN_PCA_SAMPLES,
    ) -> list[GroupShapeSummary]:
        """
        Rank views by the shape of their (duration, overlap %) distribution.

        Requires compute_overlap() to have been run.
        """
        return rank_groups_by_shape(
            self.store.load_overlap_samples(time_range), min_samples=min_samples
        )

    def duration_series(
        self,
        table: str = TABLE_EXECUTIONS,
        column: str = "wallclock_time_ns",
        time_range: TimeRange | None = None,
        aggregation: AggregationSettings | None = None,
        work_hours: bool = False,
        unit: TimeUnit | str | None = None,
        group_column: str | None = None,
        group_id: int | None = None,
    ) -> list[Segment]:
        """
        Load a duration series, optionally windowed, converted to unit.

        With aggregation set to the count mode the values are window
        populations and are not unit-converted.

        Returns:
            List of (timestamps_ns, values) segments
        """
        timestamps, values = self.store.load_samples(
            table,
            column,
            time_range=time_range,
            group_column=group_column,
            group_id=group_id,
        )
        timestamps, values = apply_work_hours_filter(timestamps, values, enabled=work_hours)
        segments = aggregate_and_segment(timestamps, values, aggregation)

        if aggregation is not None and aggregation.mode == AggregationMode.COUNT:
            return segments
        return [
            (segment_times, ns_duration_to_unit(segment_values, unit).tolist())
            for segment_times, segment_values in segments
        ]

    def active_count_series(
        self,
        time_range: TimeRange | None = None,
        aggregation: AggregationSettings | None = None,
        work_hours: bool = False,
    ) -> list[Segment]:
        """
        Load the active-count timeline, optionally windowed.

        Values are execution counts and are never unit-converted. Requires
        compute_overlap() to have been run.
        """
        timestamps, counts = self.store.load_active_counts(time_range)
        timestamps, counts = apply_work_hours_filter(timestamps, counts, enabled=work_hours)
        return aggregate_and_segment(timestamps, counts, aggregation)

    def overlap_histogram(
        self,
        view_id: int | None = None,
        time_range: TimeRange | None = None,
        x_bins: int = AC.DEFAULT_HISTOGRAM_BINS,
        y_bins: int = AC.DEFAULT_HISTOGRAM_BINS,
    ) -> Histogram2D:
        """
        Histogram of execution duration (seconds) against overlap percentage.

        Args:
            view_id: Restrict to one view (None = all views)
        """
        durations: list[int] = []
        overlaps: list[int] = []
        for view_durations, view_overlaps in self.store.load_overlap_samples(
            time_range, view_id=view_id
        ).values():
            durations.extend(view_durations)
            overlaps.extend(view_overlaps)

        return make_histogram_2d(
            ns_duration_to_seconds(durations),
            overlap_to_percent(durations, overlaps),
            x_bins=x_bins,
            y_bins=y_bins,
        )
