"""
Constants for execution overlap analysis.

Time values throughout overlapscope are integer nanoseconds, either since the
Unix epoch (timestamps) or as plain spans (durations).
"""

from enum import Enum
from pathlib import Path

# ============================================================================
# Time Units
# ============================================================================

NS_PER_MICROSECOND = 1_000
NS_PER_MILLISECOND = 1_000_000
NS_PER_SECOND = 1_000_000_000
NS_PER_MINUTE = 60 * NS_PER_SECOND
NS_PER_HOUR = 60 * NS_PER_MINUTE
NS_PER_DAY = 24 * NS_PER_HOUR
NS_PER_WEEK = 7 * NS_PER_DAY
NS_PER_MONTH = 30 * NS_PER_DAY  # Approximate, used for unit conversion only
NS_PER_YEAR = 365 * NS_PER_DAY  # Approximate, used for unit conversion only


class AggregationMode(str, Enum):
    """Statistic reported for each aggregation bucket."""

    MEAN = "mean"
    MIN = "min"
    Q1 = "q1"
    MEDIAN = "median"
    Q3 = "q3"
    MAX = "max"
    COUNT = "count"


# ============================================================================
# Table Names
# ============================================================================

TABLE_EXECUTIONS = "item_view_executor_execute"
TABLE_FORM_STARTUP = "form_widget_startup"
TABLE_EXECUTION_OVERLAP = "item_view_executor_execute_overlap"
TABLE_ACTIVE_QUERY_COUNT = "active_query_count"

# Columns that may be used as sample values or grouping keys in queries built
# from user input.
SAMPLE_COLUMNS = frozenset({"wallclock_time_ns"})
GROUP_COLUMNS = frozenset({"view_id", "form_id"})
SAMPLE_TABLES = frozenset({TABLE_EXECUTIONS, TABLE_FORM_STARTUP})


class AnalysisConstants:
    """Defaults for the overlap and statistics analysis."""

    # Groups with fewer samples are skipped by the PCA ranking
    DEFAULT_MIN_PCA_SAMPLES = 20

    # Heatmap resolution of the duration vs overlap histogram
    DEFAULT_HISTOGRAM_BINS = 256

    # Rows per INSERT batch when sinking sweep output
    DEFAULT_BATCH_SIZE = 10_000

    # Sweep progress is logged every N intervals (DEBUG)
    SWEEP_PROGRESS_INTERVAL = 100_000


class WorkHours:
    """Work hours used by the work-hours filter (local time)."""

    START_HOUR = 8
    END_HOUR = 17  # Exclusive
    WEEKDAYS = frozenset({0, 1, 2, 3, 4})  # Monday-Friday


# ============================================================================
# Application Defaults
# ============================================================================

DEFAULT_APP_DIR = Path.home() / ".overlapscope"
DEFAULT_DATABASE_PATH = str(DEFAULT_APP_DIR / "trace.sqlite")

DEFAULT_LOG_DIR = DEFAULT_APP_DIR / "logs"
DEFAULT_LOG_FILE = "overlapscope.log"
DEFAULT_LOG_MAX_BYTES = 10 * 1024 * 1024  # 10 MB
DEFAULT_LOG_BACKUP_COUNT = 5
