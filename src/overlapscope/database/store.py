"""
Read and write access to the trace tables used by the overlap analysis.

The analysis modules work on plain sequences; this module is the only place
that knows how those sequences are laid out in the database.
"""

import logging

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from sqlalchemy import Select, delete, func, insert, select
from sqlalchemy.orm import Session

from overlapscope.analysis.conversions import (
    datetime_to_ns,
    parse_datetime_ceil,
    parse_datetime_floor,
)
from overlapscope.analysis.types import ActiveCountSample, Interval, OverlapRecord
from overlapscope.constants import GROUP_COLUMNS, NS_PER_SECOND, SAMPLE_COLUMNS
from overlapscope.database import models

logger = logging.getLogger(__name__)

__all__ = ["ExecutionStore", "TimeRange"]

SAMPLE_MODELS: dict[str, type[models.Execution] | type[models.FormStartup]] = {
    models.Execution.__tablename__: models.Execution,
    models.FormStartup.__tablename__: models.FormStartup,
}


@dataclass(frozen=True)
class TimeRange:
    """
    Range of timestamps (ns): start inclusive, end exclusive. None leaves that
    side open.

    Built from partial dates, so "2023" as start and end covers all of 2023
    including its last fractional second.
    """

    start: int | None = None
    end: int | None = None

    @classmethod
    def from_strings(cls, start: str | None = None, end: str | None = None) -> "TimeRange":
        """
        Build a range from dates like "2023", "2023-05" or "2023-05-04 13:00".

        Raises:
            ValueError: If a date cannot be parsed
        """
        return cls(
            start=datetime_to_ns(parse_datetime_floor(start)) if start else None,
            end=datetime_to_ns(parse_datetime_ceil(end)) + NS_PER_SECOND if end else None,
        )

    def apply(self, stmt: Select, column) -> Select:  # type: ignore[type-arg]
        if self.start is not None:
            stmt = stmt.where(column >= self.start)
        if self.end is not None:
            stmt = stmt.where(column < self.end)
        return stmt


def _sample_model(table: str) -> type[models.Execution] | type[models.FormStartup]:
    try:
        return SAMPLE_MODELS[table]
    except KeyError:
        raise ValueError(
            f"Unknown sample table {table!r} (expected one of {sorted(SAMPLE_MODELS)})"
        ) from None


def _check_column(column: str, allowed: frozenset[str], kind: str) -> None:
    if column not in allowed:
        raise ValueError(f"Unknown {kind} column {column!r} (expected one of {sorted(allowed)})")


class ExecutionStore:
    """
    Tabular store for execution traces and derived overlap data.

    Example:
        >>> with session_scope() as session:
        ...     store = ExecutionStore(session)
        ...     for interval in store.iter_intervals():
        ...         ...
    """

    def __init__(self, db_session: Session):
        self.db_session = db_session

    # ------------------------------------------------------------------
    # Sweep input and output
    # ------------------------------------------------------------------

    def count_executions(self) -> int:
        return self.db_session.scalar(select(func.count()).select_from(models.Execution)) or 0

    def iter_intervals(self, batch_size: int = 10_000) -> Iterator[Interval]:
        """
        Stream every execution as an Interval, ordered by (timestamp, ordinal).

        Rows are fetched batch_size at a time.
        """
        stmt = (
            select(
                models.Execution.timestamp,
                models.Execution.ordinal,
                models.Execution.wallclock_time_ns,
            )
            .order_by(models.Execution.timestamp, models.Execution.ordinal)
            .execution_options(yield_per=batch_size)
        )
        for timestamp, ordinal, duration in self.db_session.execute(stmt):
            yield Interval(start_time=timestamp, duration=duration, ordinal=ordinal)

    def reset_overlap_tables(self) -> None:
        """Remove previously computed overlap records and active counts."""
        self.db_session.execute(delete(models.ExecutionOverlap))
        self.db_session.execute(delete(models.ActiveQueryCount))

    def write_overlap_records(self, records: Iterable[OverlapRecord]) -> int:
        rows = [
            {
                "timestamp": r.start_time,
                "ordinal": r.ordinal,
                "overlap": r.overlap,
                "overlap_count": r.overlap_count,
            }
            for r in records
        ]
        if rows:
            self.db_session.execute(insert(models.ExecutionOverlap), rows)
        return len(rows)

    def write_active_counts(self, samples: Iterable[ActiveCountSample]) -> int:
        rows = [{"timestamp": s.timestamp, "count": s.count} for s in samples]
        if rows:
            self.db_session.execute(insert(models.ActiveQueryCount), rows)
        return len(rows)

    # ------------------------------------------------------------------
    # Analysis input
    # ------------------------------------------------------------------

    def load_samples(
        self,
        table: str,
        column: str = "wallclock_time_ns",
        time_range: TimeRange | None = None,
        group_column: str | None = None,
        group_id: int | None = None,
    ) -> tuple[list[int], list[int]]:
        """
        Load a (timestamp, value) series ordered by timestamp.

        Args:
            table: Sample table name
            column: Value column
            time_range: Restrict to timestamps in this range
            group_column: Optional grouping column to filter on (view_id, form_id)
            group_id: Value group_column must have

        Returns:
            Tuple of (timestamps, values)
        """
        model = _sample_model(table)
        _check_column(column, SAMPLE_COLUMNS, "sample")

        stmt = select(model.timestamp, getattr(model, column))
        if group_column is not None and group_id is not None:
            _check_column(group_column, GROUP_COLUMNS, "group")
            stmt = stmt.where(getattr(model, group_column) == group_id)
        stmt = (time_range or TimeRange()).apply(stmt, model.timestamp)
        stmt = stmt.order_by(model.timestamp, model.ordinal)

        timestamps: list[int] = []
        values: list[int] = []
        for timestamp, value in self.db_session.execute(stmt):
            timestamps.append(timestamp)
            values.append(value)

        logger.debug(f"Loaded {len(timestamps)} samples of {table}.{column}")
        return timestamps, values

    def load_samples_by_group(
        self,
        table: str,
        group_column: str,
        column: str = "wallclock_time_ns",
        time_range: TimeRange | None = None,
    ) -> dict[int, list[int]]:
        """
        Load sample values grouped by a view or form ID, in timestamp order.

        Rows whose group column is NULL are ignored.
        """
        model = _sample_model(table)
        _check_column(column, SAMPLE_COLUMNS, "sample")
        _check_column(group_column, GROUP_COLUMNS, "group")
        group_attr = getattr(model, group_column, None)
        if group_attr is None:
            raise ValueError(f"Table {table!r} has no column {group_column!r}")

        stmt = select(group_attr, getattr(model, column)).where(group_attr.is_not(None))
        stmt = (time_range or TimeRange()).apply(stmt, model.timestamp)
        stmt = stmt.order_by(model.timestamp, model.ordinal)

        by_group: dict[int, list[int]] = {}
        for group_id, value in self.db_session.execute(stmt):
            by_group.setdefault(group_id, []).append(value)
        return by_group

    def _overlap_stmt(self, time_range: TimeRange | None) -> Select:  # type: ignore[type-arg]
        execution = models.Execution
        overlap = models.ExecutionOverlap
        stmt = select(
            execution.view_id, execution.wallclock_time_ns, overlap.overlap
        ).join(
            overlap,
            (execution.timestamp == overlap.timestamp)
            & (execution.ordinal == overlap.ordinal),
        )
        return (time_range or TimeRange()).apply(stmt, execution.timestamp)

    def load_overlap_samples_by_view(
        self, time_range: TimeRange | None = None
    ) -> dict[int, tuple[list[int], list[int]]]:
        """
        Load (durations, overlaps) per view for executions with computed overlap.

        Returns:
            View ID -> (wallclock durations ns, overlaps ns)
        """
        stmt = self._overlap_stmt(time_range).where(models.Execution.view_id.is_not(None))

        by_view: dict[int, tuple[list[int], list[int]]] = {}
        for view_id, duration, overlap in self.db_session.execute(stmt):
            durations, overlaps = by_view.setdefault(view_id, ([], []))
            durations.append(duration)
            overlaps.append(overlap)
        return by_view

    def load_overlap_samples_for_view(
        self, view_id: int, time_range: TimeRange | None = None
    ) -> tuple[list[int], list[int]]:
        """Load (durations, overlaps) for one view."""
        stmt = self._overlap_stmt(time_range).where(models.Execution.view_id == view_id)

        durations: list[int] = []
        overlaps: list[int] = []
        for _, duration, overlap in self.db_session.execute(stmt):
            durations.append(duration)
            overlaps.append(overlap)
        return durations, overlaps

    def load_active_counts(
        self, time_range: TimeRange | None = None
    ) -> tuple[list[int], list[int]]:
        """Load the active-count timeline as (timestamps, counts)."""
        model = models.ActiveQueryCount
        stmt = select(model.timestamp, model.count)
        stmt = (time_range or TimeRange()).apply(stmt, model.timestamp)
        stmt = stmt.order_by(model.timestamp, model.id)

        timestamps: list[int] = []
        counts: list[int] = []
        for timestamp, count in self.db_session.execute(stmt):
            timestamps.append(timestamp)
            counts.append(count)
        return timestamps, counts

    def load_overlap_samples(
        self, time_range: TimeRange | None = None, view_id: int | None = None
    ) -> dict[int, tuple[list[int], list[int]]]:
        """
        Load (durations, overlaps) for one view or for every view.

        Returns:
            View ID -> (wallclock durations ns, overlaps ns). With view_id set
            the mapping holds at most that view.
        """
        if view_id is None:
            return self.load_overlap_samples_by_view(time_range)
        durations, overlaps = self.load_overlap_samples_for_view(view_id, time_range)
        return {view_id: (durations, overlaps)} if durations else {}
