"""
Command-line interface for overlapscope.

Provides commands for computing execution overlap and reporting duration
statistics from a trace database. Reports are written to stdout as CSV.
"""

import csv
import logging
import sys

from collections.abc import Iterable, Sequence
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from typing import Any

import click

from overlapscope.analysis.binning import Segment
from overlapscope.analysis.conversions import describe_value, ns_epoch_to_millis
from overlapscope.analysis.service import OverlapAnalysisService
from overlapscope.analysis.types import AggregationSettings, TimePeriod
from overlapscope.config import (
    get_config_path,
    get_database_path,
    get_setting,
    load_config,
    set_setting,
    unset_setting,
)
from overlapscope.constants import (
    SAMPLE_TABLES,
    TABLE_EXECUTIONS,
    TABLE_FORM_STARTUP,
    AggregationMode,
)
from overlapscope.constants import AnalysisConstants as AC
from overlapscope.database.session import init_database, session_scope
from overlapscope.database.store import TimeRange
from overlapscope.logging_config import setup_logging

logger = logging.getLogger(__name__)

try:
    __version__ = get_version("overlapscope")
except PackageNotFoundError:
    __version__ = "dev"

PRESENTATION_UNIT_CHOICES = ["ns", "us", "ms", "s", "m", "h"]


def open_database(db: str | None) -> str:
    """Initialize the database at the resolved path and return that path."""
    db_path = get_database_path(db)
    logger.debug(f"Using database {db_path}")
    init_database(db_path)
    return db_path


def parse_time_range(start: str | None, end: str | None) -> TimeRange:
    try:
        return TimeRange.from_strings(start, end)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--start' / '--end'") from e


def write_csv(header: Sequence[str], rows: Iterable[Sequence[Any]]) -> None:
    writer = csv.writer(sys.stdout, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)


def parse_config_value(raw: str) -> Any:
    """Interpret a command-line config value as bool, int, float or string."""
    lowered = raw.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    for convert in (int, float):
        try:
            return convert(raw)
        except ValueError:
            pass
    return raw


def db_option(f: Any) -> Any:
    return click.option("--db", type=click.Path(dir_okay=False), help="Database path")(f)


def time_range_options(f: Any) -> Any:
    f = click.option(
        "--end", help="End date (YYYY[-MM[-DD[ HH[:MM[:SS]]]]]), whole period included"
    )(f)
    f = click.option("--start", help="Start date (YYYY[-MM[-DD[ HH[:MM[:SS]]]]])")(f)
    return f


def series_options(f: Any) -> Any:
    f = click.option(
        "--epoch-ms", is_flag=True, help="Report timestamps as epoch milliseconds"
    )(f)
    f = click.option("--work-hours", is_flag=True, help="Only samples during work hours")(f)
    f = click.option(
        "--min-count", type=click.IntRange(min=1), help="Drop sparser windows"
    )(f)
    f = click.option("--window", help="Aggregation window, e.g. 15m or 1h")(f)
    f = click.option(
        "--aggregate",
        type=click.Choice([mode.value for mode in AggregationMode]),
        help="Statistic reported per window (requires --window)",
    )(f)
    return f


def parse_aggregation(
    aggregate: str | None, window: str | None, min_count: int | None
) -> AggregationSettings | None:
    if not (aggregate or window):
        return None
    if not (aggregate and window):
        raise click.UsageError("--aggregate and --window must be given together")
    try:
        period = TimePeriod.parse(window)
        if not period.unit.is_fixed_width:
            raise ValueError(f"{period} has no fixed width; use W or shorter units")
        return AggregationSettings(
            mode=AggregationMode(aggregate), size=period, min_count=min_count
        )
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--window'") from e


def write_segments(segments: Sequence[Segment], value_header: str, epoch_ms: bool) -> None:
    """Write (timestamps, values) segments as CSV, one row per sample."""
    write_csv(
        ["segment", "timestamp (ms)" if epoch_ms else "timestamp (ns)", value_header],
        (
            [index, timestamp, value]
            for index, (timestamps, values) in enumerate(segments)
            for timestamp, value in zip(
                ns_epoch_to_millis(timestamps).tolist() if epoch_ms else timestamps, values
            )
        ),
    )


@click.group()
@click.version_option(__version__, prog_name="overlapscope")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def cli(verbose: bool) -> None:
    """overlapscope: execution overlap and duration analysis"""
    setup_logging(verbose=verbose, console_format="%(levelname)s: %(message)s")


@cli.command("compute-overlap")
@db_option
@click.option("--batch-size", type=click.IntRange(min=1), help="Rows per fetch and insert")
def compute_overlap(db: str | None, batch_size: int | None) -> None:
    """Recompute overlap records and the active execution count timeline."""
    if batch_size is None:
        batch_size = int(get_setting("analysis", "batch_size", AC.DEFAULT_BATCH_SIZE))

    db_path = open_database(db)
    with session_scope() as session:
        summary = OverlapAnalysisService(session).compute_overlap(batch_size=batch_size)

    click.echo(
        f"✓ Computed overlap for {summary.intervals} executions in {db_path} "
        f"({summary.records_written} records, {summary.samples_written} active-count "
        f"samples, max {summary.max_active} concurrent, {summary.elapsed_seconds:.1f}s)",
        err=True,
    )


@cli.command("overlap-pca")
@db_option
@time_range_options
@click.option(
    "--min-samples",
    type=click.IntRange(min=2),
    help="Skip views with fewer executions",
)
def overlap_pca(
    db: str | None, start: str | None, end: str | None, min_samples: int | None
) -> None:
    """Rank views by how strongly duration follows overlap percentage."""
    time_range = parse_time_range(start, end)
    if min_samples is None:
        min_samples = int(
            get_setting("analysis", "min_pca_samples", AC.DEFAULT_MIN_PCA_SAMPLES)
        )

    open_database(db)
    with session_scope() as session:
        ranking = OverlapAnalysisService(session).overlap_shape_ranking(
            time_range, min_samples=min_samples
        )

    write_csv(
        ["view ID", "sample count", "Q3 (ms)", "variance ratio"],
        (
            [
                summary.group_id,
                summary.sample_count,
                f"{summary.duration_statistics.q3 / 1e6:.3f}",
                f"{summary.shape.variance_ratio:.6f}",
            ]
            for summary in ranking
        ),
    )


def _write_group_statistics(
    db: str | None,
    start: str | None,
    end: str | None,
    group_column: str,
    table: str,
    label: str,
) -> None:
    time_range = parse_time_range(start, end)
    open_database(db)
    with session_scope() as session:
        results = OverlapAnalysisService(session).group_statistics(
            group_column, table=table, time_range=time_range
        )

    write_csv(
        [label, "count", "min (s)", "q1 (s)", "median (s)", "q3 (s)", "iqr (s)",
         "max (s)", "mean (s)", "std dev (s)"],
        (
            [
                group.group_id,
                group.statistics.count,
                *(
                    f"{value:.6f}"
                    for value in (
                        group.statistics.min,
                        group.statistics.q1,
                        group.statistics.median,
                        group.statistics.q3,
                        group.statistics.iqr,
                        group.statistics.max,
                        group.statistics.mean,
                        group.statistics.std_dev,
                    )
                ),
            ]
            for group in results
        ),
    )


@cli.command("view-statistics")
@db_option
@time_range_options
def view_statistics(db: str | None, start: str | None, end: str | None) -> None:
    """Execution duration statistics per view, sorted by Q3."""
    _write_group_statistics(db, start, end, "view_id", TABLE_EXECUTIONS, "view ID")


@cli.command("form-statistics")
@db_option
@time_range_options
def form_statistics(db: str | None, start: str | None, end: str | None) -> None:
    """Form startup duration statistics per form, sorted by Q3."""
    _write_group_statistics(db, start, end, "form_id", TABLE_FORM_STARTUP, "form ID")


@cli.command()
@db_option
@time_range_options
@click.option(
    "--table",
    type=click.Choice(sorted(SAMPLE_TABLES)),
    default=TABLE_EXECUTIONS,
    show_default=True,
    help="Sample table",
)
@click.option("--view-id", type=int, help="Only executions of this view")
@click.option("--form-id", type=int, help="Only samples of this form")
@series_options
@click.option(
    "--unit",
    type=click.Choice(PRESENTATION_UNIT_CHOICES),
    default="s",
    show_default=True,
    help="Unit of reported durations",
)
def series(
    db: str | None,
    start: str | None,
    end: str | None,
    table: str,
    view_id: int | None,
    form_id: int | None,
    aggregate: str | None,
    window: str | None,
    min_count: int | None,
    work_hours: bool,
    epoch_ms: bool,
    unit: str,
) -> None:
    """Duration time series, optionally aggregated into windows."""
    if view_id is not None and form_id is not None:
        raise click.UsageError("--view-id and --form-id are mutually exclusive")
    if view_id is not None and table != TABLE_EXECUTIONS:
        raise click.UsageError(f"--view-id only applies to {TABLE_EXECUTIONS}")

    aggregation = parse_aggregation(aggregate, window, min_count)

    group_column, group_id = None, None
    if view_id is not None:
        group_column, group_id = "view_id", view_id
    elif form_id is not None:
        group_column, group_id = "form_id", form_id

    time_range = parse_time_range(start, end)
    open_database(db)
    with session_scope() as session:
        segments = OverlapAnalysisService(session).duration_series(
            table=table,
            time_range=time_range,
            aggregation=aggregation,
            work_hours=work_hours,
            unit=unit,
            group_column=group_column,
            group_id=group_id,
        )

    value_header = aggregate if aggregate == AggregationMode.COUNT.value else f"value ({unit})"
    write_segments(segments, value_header, epoch_ms)


@cli.command("active-count")
@db_option
@time_range_options
@series_options
def active_count(
    db: str | None,
    start: str | None,
    end: str | None,
    aggregate: str | None,
    window: str | None,
    min_count: int | None,
    work_hours: bool,
    epoch_ms: bool,
) -> None:
    """Concurrently active executions over time (run compute-overlap first)."""
    aggregation = parse_aggregation(aggregate, window, min_count)
    time_range = parse_time_range(start, end)
    open_database(db)
    with session_scope() as session:
        segments = OverlapAnalysisService(session).active_count_series(
            time_range=time_range, aggregation=aggregation, work_hours=work_hours
        )

    value_header = "active count" if aggregate is None else f"active count ({aggregate})"
    write_segments(segments, value_header, epoch_ms)


@cli.command("overlap-histogram")
@db_option
@time_range_options
@click.option("--view-id", type=int, help="Only executions of this view")
@click.option(
    "--x-bins",
    type=click.IntRange(min=1),
    default=AC.DEFAULT_HISTOGRAM_BINS,
    show_default=True,
    help="Duration bins",
)
@click.option(
    "--y-bins",
    type=click.IntRange(min=1),
    default=AC.DEFAULT_HISTOGRAM_BINS,
    show_default=True,
    help="Overlap percentage bins",
)
@click.option("--log", "log_scale", is_flag=True, help="Report ln(1 + count)")
def overlap_histogram(
    db: str | None,
    start: str | None,
    end: str | None,
    view_id: int | None,
    x_bins: int,
    y_bins: int,
    log_scale: bool,
) -> None:
    """Histogram of duration (s) against overlap (% of duration), non-empty bins only."""
    time_range = parse_time_range(start, end)
    open_database(db)
    with session_scope() as session:
        histogram = OverlapAnalysisService(session).overlap_histogram(
            view_id=view_id, time_range=time_range, x_bins=x_bins, y_bins=y_bins
        )

    values = histogram.log_counts if log_scale else histogram.counts
    write_csv(
        ["duration (s)", "overlap (%)", "log count" if log_scale else "count"],
        (
            [float(histogram.x_labels[i]), float(histogram.y_labels[j]), values[i, j].item()]
            for i in range(histogram.counts.shape[0])
            for j in range(histogram.counts.shape[1])
            if histogram.counts[i, j] > 0
        ),
    )


@cli.command("convert-unit")
@click.argument("value")
def convert_unit(value: str) -> None:
    """
    Convert between dates, durations and nanosecond timestamps.

    VALUE is a date ("2023-05-04 13:00"), a duration ("15m", "2 hours") or
    a nanosecond timestamp.
    """
    try:
        click.echo(describe_value(value))
    except ValueError as e:
        raise click.ClickException(str(e)) from e


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("show")
def show_config_cmd() -> None:
    """Show all configuration settings."""
    config_path = get_config_path()
    if not config_path.exists():
        click.echo(f"No config file: {config_path}")
        return

    click.echo(f"Config file: {config_path}\n")
    config_data = load_config()
    if not config_data:
        click.echo("Configuration is empty.")
        return

    for section, values in config_data.items():
        click.echo(f"[{section}]")
        if isinstance(values, dict):
            for key, value in values.items():
                click.echo(f"  {key} = {value!r}")


@config.command("set")
@click.argument("key")
@click.argument("value")
def set_config_cmd(key: str, value: str) -> None:
    """Set a setting, e.g. 'analysis.min_pca_samples 30'."""
    section, _, name = key.partition(".")
    if not section or not name:
        raise click.BadParameter("expected SECTION.KEY", param_hint="'KEY'")

    set_setting(section, name, parse_config_value(value))
    click.echo(f"✓ Set {section}.{name}")
    click.echo(f"  Config: {get_config_path()}")


@config.command("unset")
@click.argument("key")
def unset_config_cmd(key: str) -> None:
    """Remove a setting, e.g. 'database.path'."""
    section, _, name = key.partition(".")
    if not section or not name:
        raise click.BadParameter("expected SECTION.KEY", param_hint="'KEY'")

    if unset_setting(section, name):
        click.echo(f"✓ Removed {section}.{name}")
    else:
        click.echo(f"{section}.{name} was not set.")


if __name__ == "__main__":
    cli()
