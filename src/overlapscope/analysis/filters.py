"""Sample filters applied to time series before aggregation."""

from collections.abc import Sequence
from datetime import datetime, tzinfo
from typing import TypeVar

from overlapscope.constants import NS_PER_SECOND, WorkHours

V = TypeVar("V")


def is_work_hours(timestamp: int, tz: tzinfo | None = None) -> bool:
    """
    Check whether a timestamp falls within work hours.

    Work hours are 08:00-16:59 Monday to Friday.

    Args:
        timestamp: Nanoseconds since the epoch
        tz: Time zone to evaluate in (None = the machine's local time zone)

    Returns:
        True if the timestamp is within work hours
    """
    local = datetime.fromtimestamp(timestamp / NS_PER_SECOND, tz=tz)
    return (
        WorkHours.START_HOUR <= local.hour < WorkHours.END_HOUR
        and local.weekday() in WorkHours.WEEKDAYS
    )


def apply_work_hours_filter(
    timestamps: Sequence[int],
    values: Sequence[V],
    enabled: bool = True,
    tz: tzinfo | None = None,
) -> tuple[list[int], list[V]]:
    """
    Keep only the samples taken during work hours.

    Args:
        timestamps: Sample timestamps (ns)
        values: Sample values, parallel to timestamps
        enabled: When False the series is returned unchanged
        tz: Time zone to evaluate in (None = local time)

    Returns:
        Tuple of (timestamps, values) for the retained samples
    """
    if len(timestamps) != len(values):
        raise ValueError(
            f"timestamps and values must have the same length "
            f"({len(timestamps)} != {len(values)})"
        )
    if not enabled:
        return list(timestamps), list(values)

    kept = [
        (timestamp, value)
        for timestamp, value in zip(timestamps, values)
        if is_work_hours(timestamp, tz)
    ]
    return [t for t, _ in kept], [v for _, v in kept]
