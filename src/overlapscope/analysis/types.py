"""Analysis type definitions."""

import re

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import numpy as np

from pydantic import BaseModel, ConfigDict, Field, model_validator

from overlapscope.constants import (
    NS_PER_DAY,
    NS_PER_HOUR,
    NS_PER_MICROSECOND,
    NS_PER_MILLISECOND,
    NS_PER_MINUTE,
    NS_PER_MONTH,
    NS_PER_SECOND,
    NS_PER_WEEK,
    NS_PER_YEAR,
    AggregationMode,
)

# ============================================================================
# Sweep Types
# ============================================================================


@dataclass(frozen=True, slots=True)
class Interval:
    """
    One timed execution, as delivered to the overlap sweep.

    Attributes:
        start_time: Start timestamp (ns since epoch)
        duration: Wall-clock duration (ns, >= 0)
        ordinal: Tie-breaker, unique among intervals sharing start_time
    """

    start_time: int
    duration: int
    ordinal: int = 0

    @property
    def end_time(self) -> int:
        return self.start_time + self.duration


@dataclass(frozen=True, slots=True)
class OverlapRecord:
    """
    Finalized overlap metrics for one interval.

    Attributes:
        start_time: Start timestamp of the interval (ns)
        ordinal: Ordinal of the interval
        end_time: End timestamp of the interval (ns)
        overlap: Sum of pairwise overlap with every partner (ns)
        overlap_count: Number of distinct intervals it overlapped
    """

    start_time: int
    ordinal: int
    end_time: int
    overlap: int
    overlap_count: int

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time


@dataclass(frozen=True, slots=True)
class ActiveCountSample:
    """Number of active intervals right after an insertion or expiry."""

    timestamp: int
    count: int


@dataclass
class SweepStep:
    """Output emitted by a single sweep call."""

    records: list[OverlapRecord] = field(default_factory=list)
    samples: list[ActiveCountSample] = field(default_factory=list)


@dataclass
class OverlapResult:
    """
    Complete output of an overlap sweep.

    Attributes:
        records: One record per input interval, in finalization (end time) order
        timeline: Active-count samples in non-decreasing timestamp order
    """

    records: list[OverlapRecord]
    timeline: list[ActiveCountSample]


# ============================================================================
# Statistics Types
# ============================================================================


class StatisticsRecord(BaseModel):
    """
    Summary statistics of a sorted sample set.

    An empty sample set yields count=0 with every other field at 0.0.
    """

    model_config = ConfigDict(frozen=True)

    count: int = Field(ge=0, description="Number of samples")
    min: float = Field(default=0.0, description="Smallest sample")
    max: float = Field(default=0.0, description="Largest sample")
    mean: float = Field(default=0.0, description="Arithmetic mean")
    std_dev: float = Field(default=0.0, ge=0, description="Population standard deviation")
    median: float = Field(default=0.0, description="Median (50th percentile)")
    q1: float = Field(default=0.0, description="First quartile")
    q3: float = Field(default=0.0, description="Third quartile")
    iqr: float = Field(default=0.0, ge=0, description="Interquartile range (q3 - q1)")


class ShapeRecord(BaseModel):
    """
    Principal axes of a 2D sample cloud.

    Attributes:
        eigenvectors: 2x2 matrix whose columns are the principal axes
        eigenvalues: Variance along each axis, matching eigenvector columns
        variance_ratio: Largest eigenvalue over the sum of eigenvalues
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    eigenvectors: np.ndarray
    eigenvalues: np.ndarray
    variance_ratio: float = Field(ge=0, le=1)

    @property
    def total_variance(self) -> float:
        return float(np.sum(self.eigenvalues))


class GroupShapeSummary(BaseModel):
    """PCA summary of duration vs overlap percentage for one group of executions."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    group_id: int = Field(description="View or form ID")
    sample_count: int = Field(ge=0, description="Executions analyzed")
    duration_statistics: StatisticsRecord = Field(
        description="Statistics of execution duration (ns)"
    )
    shape: ShapeRecord


class Histogram2D(BaseModel):
    """
    Two-dimensional histogram of paired samples.

    Attributes:
        x_labels: Lower edge of each x bin
        y_labels: Lower edge of each y bin
        counts: Sample counts indexed [x_bin][y_bin]
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    x_labels: np.ndarray
    y_labels: np.ndarray
    counts: np.ndarray

    @property
    def log_counts(self) -> np.ndarray:
        """ln(1 + count), emphasizing sparsely populated bins."""
        return np.log1p(self.counts)


# ============================================================================
# Time Windows
# ============================================================================


class TimeUnit(str, Enum):
    """Time units accepted in periods, durations and unit conversions."""

    NANOSECONDS = "ns"
    MICROSECONDS = "us"
    MILLISECONDS = "ms"
    SECONDS = "s"
    MINUTES = "m"
    HOURS = "h"
    DAYS = "D"
    WEEKS = "W"
    MONTHS = "M"
    YEARS = "Y"

    @property
    def nanoseconds(self) -> int:
        return _UNIT_NANOSECONDS[self]

    @property
    def is_fixed_width(self) -> bool:
        """Months and years only have an approximate length."""
        return self not in (TimeUnit.MONTHS, TimeUnit.YEARS)

    @classmethod
    def from_name(cls, name: str) -> "TimeUnit":
        """
        Look up a unit by symbol ("ms") or long name ("milliseconds").

        Symbols are case sensitive: "m" is minutes and "M" is months.

        Raises:
            ValueError: If the name is not a known unit
        """
        try:
            return cls(name)
        except ValueError:
            pass
        unit = _UNIT_LONG_NAMES.get(name.lower())
        if unit is None:
            raise ValueError(f"Unknown time unit: {name!r}")
        return unit


_UNIT_NANOSECONDS = {
    TimeUnit.NANOSECONDS: 1,
    TimeUnit.MICROSECONDS: NS_PER_MICROSECOND,
    TimeUnit.MILLISECONDS: NS_PER_MILLISECOND,
    TimeUnit.SECONDS: NS_PER_SECOND,
    TimeUnit.MINUTES: NS_PER_MINUTE,
    TimeUnit.HOURS: NS_PER_HOUR,
    TimeUnit.DAYS: NS_PER_DAY,
    TimeUnit.WEEKS: NS_PER_WEEK,
    TimeUnit.MONTHS: NS_PER_MONTH,
    TimeUnit.YEARS: NS_PER_YEAR,
}

_UNIT_LONG_NAMES = {
    "nanoseconds": TimeUnit.NANOSECONDS,
    "microseconds": TimeUnit.MICROSECONDS,
    "milliseconds": TimeUnit.MILLISECONDS,
    "seconds": TimeUnit.SECONDS,
    "minutes": TimeUnit.MINUTES,
    "hours": TimeUnit.HOURS,
    "days": TimeUnit.DAYS,
    "weeks": TimeUnit.WEEKS,
    "months": TimeUnit.MONTHS,
    "years": TimeUnit.YEARS,
}

QUANTITY_UNIT_REGEX = re.compile(r"^\s*(\d+)\s*([A-Za-z]+)\s*$")


class TimePeriod(BaseModel):
    """
    A fixed-width time window such as "1h" or "15m".

    Accepts either keyword fields or a string like "15 m" when validated.
    """

    model_config = ConfigDict(frozen=True)

    quantity: int = Field(gt=0, description="Number of units per window")
    unit: TimeUnit = Field(description="Window unit")

    @model_validator(mode="before")
    @classmethod
    def _parse_string(cls, data: Any) -> Any:
        if isinstance(data, str):
            match = QUANTITY_UNIT_REGEX.match(data)
            if match is None:
                raise ValueError(f"Invalid time period: {data!r}")
            return {
                "quantity": int(match.group(1)),
                "unit": TimeUnit.from_name(match.group(2)),
            }
        return data

    @classmethod
    def parse(cls, text: str) -> "TimePeriod":
        return cls.model_validate(text)

    @property
    def width_ns(self) -> int:
        """
        Width of one window in nanoseconds.

        Raises:
            ValueError: For calendar units (months, years) that have no fixed width
        """
        if not self.unit.is_fixed_width:
            raise ValueError(
                f"Time unit {self.unit.value!r} has no fixed width and cannot be "
                "used as an aggregation window"
            )
        return self.quantity * self.unit.nanoseconds

    def to_bucket(self, timestamp: int) -> int:
        """Map a timestamp (ns) to the index of the window containing it."""
        return int(timestamp) // self.width_ns

    def from_bucket(self, bucket: int) -> int:
        """Map a window index back to the timestamp at which the window starts."""
        return int(bucket) * self.width_ns

    def __str__(self) -> str:
        return f"{self.quantity}{self.unit.value}"


class AggregationSettings(BaseModel):
    """How a time series is reduced into fixed time windows."""

    model_config = ConfigDict(frozen=True)

    mode: AggregationMode = Field(description="Statistic reported per window")
    size: TimePeriod = Field(description="Window width")
    min_count: int | None = Field(
        default=None, ge=1, description="Drop windows with fewer samples"
    )
