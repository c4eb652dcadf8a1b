"""
Time unit conversions and timestamp parsing.

Timestamps are integer nanoseconds since the Unix epoch (UTC) and durations
integer nanoseconds. These helpers convert them for presentation and parse
the human-friendly forms accepted on the command line.
"""

import re

from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

import numpy as np

from overlapscope.analysis.numeric import as_float_array
from overlapscope.analysis.types import QUANTITY_UNIT_REGEX, TimeUnit
from overlapscope.constants import NS_PER_MILLISECOND, NS_PER_SECOND

__all__ = [
    "datetime_to_ns",
    "describe_value",
    "ns_duration_to_seconds",
    "ns_duration_to_unit",
    "ns_epoch_to_millis",
    "ns_to_datetime",
    "parse_datetime_ceil",
    "parse_datetime_floor",
    "parse_duration",
]

DATE_REGEX = re.compile(
    r"""
    ^(?P<year>\d{4})
    (?:-(?P<month>\d{2})
        (?:-(?P<day>\d{2})
            (?:\s(?P<hour>\d{2})
                (?::(?P<minute>\d{2})
                    (?::(?P<second>\d{2}))?
                )?
            )?
        )?
    )?$
    """,
    re.VERBOSE,
)

TIMESTAMP_REGEX = re.compile(r"^\s*(\d+)\s*$")

DATE_PARTS = ("month", "day", "hour", "minute", "second")

# Unit conversion for presentation only covers units with an exact length
PRESENTATION_UNITS = frozenset(
    {
        TimeUnit.NANOSECONDS,
        TimeUnit.MICROSECONDS,
        TimeUnit.MILLISECONDS,
        TimeUnit.SECONDS,
        TimeUnit.MINUTES,
        TimeUnit.HOURS,
    }
)


def ns_epoch_to_millis(timestamps: Sequence[int]) -> np.ndarray:
    """Convert epoch timestamps (ns) to epoch milliseconds, as used by plotting libraries."""
    return as_float_array(timestamps) / NS_PER_MILLISECOND


def ns_duration_to_seconds(durations: Sequence[Any]) -> np.ndarray:
    """Convert durations (ns) to seconds."""
    return as_float_array(durations) / NS_PER_SECOND


def ns_duration_to_unit(
    durations: Sequence[Any], unit: TimeUnit | str | None = None
) -> np.ndarray:
    """
    Convert durations (ns) to the given unit.

    Args:
        durations: Durations in nanoseconds
        unit: Target unit, hours or smaller. None converts to seconds.

    Raises:
        ValueError: For days and longer units
    """
    if unit is None:
        return ns_duration_to_seconds(durations)

    unit = TimeUnit.from_name(unit) if isinstance(unit, str) else unit
    if unit not in PRESENTATION_UNITS:
        raise ValueError(f"Unsupported unit for duration conversion: {unit.value!r}")
    return as_float_array(durations) / unit.nanoseconds


def parse_duration(text: str) -> int:
    """
    Parse a duration such as "15m", "2 hours" or "500ms" into nanoseconds.

    Months count as 30 days and years as 365 days.

    Raises:
        ValueError: If the text is not a quantity followed by a known unit
    """
    match = QUANTITY_UNIT_REGEX.match(text)
    if match is None:
        raise ValueError(f"Invalid duration: {text!r}")
    unit = TimeUnit.from_name(match.group(2))
    return int(match.group(1)) * unit.nanoseconds


def _parse_datetime(text: str, defaults: tuple[int, ...]) -> datetime:
    match = DATE_REGEX.match(text.strip())
    if match is None:
        raise ValueError(
            f"Invalid date: {text!r} (expected YYYY[-MM[-DD[ HH[:MM[:SS]]]]])"
        )

    values = list(defaults)
    for i, name in enumerate(DATE_PARTS):
        part = match.group(name)
        if part is None:
            break
        values[i] = int(part)

    month, day, hour, minute, second = values
    year = int(match.group("year"))
    if match.group("day") is None and day == 31:
        # Ceiling of a month: last day of that month
        next_month = datetime(year + month // 12, month % 12 + 1, 1)
        day = (next_month - timedelta(days=1)).day
    try:
        return datetime(year, month, day, hour, minute, second, tzinfo=UTC)
    except ValueError as e:
        raise ValueError(f"Invalid date: {text!r} ({e})") from e


def parse_datetime_floor(text: str) -> datetime:
    """
    Parse a date of any precision, filling missing fields with their minimum.

    "2023" -> 2023-01-01 00:00:00 UTC, "2023-05-04 13" -> 2023-05-04 13:00:00 UTC.
    """
    return _parse_datetime(text, (1, 1, 0, 0, 0))


def parse_datetime_ceil(text: str) -> datetime:
    """
    Parse a date of any precision, filling missing fields with their maximum.

    "2023" -> 2023-12-31 23:59:59 UTC, "2023-02" -> 2023-02-28 23:59:59 UTC.
    """
    return _parse_datetime(text, (12, 31, 23, 59, 59))


def datetime_to_ns(value: datetime) -> int:
    """Convert an aware datetime to nanoseconds since the epoch."""
    delta = value - datetime(1970, 1, 1, tzinfo=UTC)
    return (delta.days * 86_400 + delta.seconds) * NS_PER_SECOND + delta.microseconds * 1_000


def ns_to_datetime(timestamp: int) -> datetime:
    """Convert nanoseconds since the epoch to a UTC datetime (microsecond precision)."""
    seconds, nanoseconds = divmod(int(timestamp), NS_PER_SECOND)
    return datetime.fromtimestamp(seconds, tz=UTC) + timedelta(
        microseconds=nanoseconds // 1_000
    )


def describe_value(text: str) -> str:
    """
    Explain a value for someone writing queries against the trace database.

    Accepts a (partial) date, a duration with unit, or a raw nanosecond
    timestamp, and returns its counterpart.

    Raises:
        ValueError: If the text matches none of these forms
    """
    try:
        start = parse_datetime_floor(text)
    except ValueError:
        pass
    else:
        end = parse_datetime_ceil(text)
        if start == end:
            return str(datetime_to_ns(start))
        return f"{datetime_to_ns(start)} - {datetime_to_ns(end)}\n({start} - {end})"

    if QUANTITY_UNIT_REGEX.match(text):
        return f"{parse_duration(text)} nanoseconds"

    match = TIMESTAMP_REGEX.match(text)
    if match:
        return str(ns_to_datetime(int(match.group(1))))

    raise ValueError(f"Unable to parse {text!r} as a timestamp or a duration")
