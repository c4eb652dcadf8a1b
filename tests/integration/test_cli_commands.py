"""
Tests for CLI commands.

These tests verify the command-line interface functionality including:
- compute-overlap followed by the overlap reports
- statistics and series CSV output
- convert-unit and config management
"""

import csv
import io

import pytest

from click.testing import CliRunner

from overlapscope.cli import cli, parse_config_value
from overlapscope.constants import NS_PER_SECOND
from overlapscope.database import models
from overlapscope.database.session import cleanup_database, init_database, session_scope


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch, isolated_config):
    """Keep CLI tests away from the user's log directory and config file."""
    monkeypatch.setattr("overlapscope.cli.setup_logging", lambda **kwargs: None)


@pytest.fixture
def populated_test_db(temp_db):
    """Create a database with executions of two views and one form."""
    init_database(str(temp_db))

    with session_scope() as session:
        for i in range(30):
            session.add(
                models.Execution(
                    timestamp=i * NS_PER_SECOND,
                    ordinal=0,
                    wallclock_time_ns=(i % 5 + 1) * NS_PER_SECOND,
                    view_id=1 + i % 2,
                    form_id=9,
                )
            )
        session.add(
            models.FormStartup(timestamp=0, ordinal=0, wallclock_time_ns=NS_PER_SECOND, form_id=9)
        )

    cleanup_database()
    return temp_db


def _rows(output):
    return list(csv.reader(io.StringIO(output)))


class TestOverlapCommands:
    def test_compute_overlap_then_pca(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(cli, ["compute-overlap", "--db", str(populated_test_db)])

        assert result.exit_code == 0, result.output
        assert "Computed overlap for 30 executions" in result.output

        cleanup_database()
        result = cli_runner.invoke(
            cli, ["overlap-pca", "--db", str(populated_test_db), "--min-samples", "10"]
        )

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert rows[0] == ["view ID", "sample count", "Q3 (ms)", "variance ratio"]
        assert {row[0] for row in rows[1:]} == {"1", "2"}
        assert all(row[1] == "15" for row in rows[1:])
        assert all(0.5 <= float(row[3]) <= 1.0 for row in rows[1:])

    def test_overlap_histogram(self, cli_runner, populated_test_db):
        cli_runner.invoke(cli, ["compute-overlap", "--db", str(populated_test_db)])
        cleanup_database()

        result = cli_runner.invoke(
            cli,
            ["overlap-histogram", "--db", str(populated_test_db), "--x-bins", "4", "--y-bins", "4"],
        )

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert rows[0] == ["duration (s)", "overlap (%)", "count"]
        assert sum(int(row[2]) for row in rows[1:]) == 30

    def test_batch_size_from_config(self, cli_runner, populated_test_db):
        cli_runner.invoke(cli, ["config", "set", "analysis.batch_size", "4"])

        result = cli_runner.invoke(cli, ["compute-overlap", "--db", str(populated_test_db)])

        assert result.exit_code == 0, result.output


class TestStatisticsCommands:
    def test_view_statistics(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(cli, ["view-statistics", "--db", str(populated_test_db)])

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert rows[0][5:7] == ["q3 (s)", "iqr (s)"]
        assert rows[0][0] == "view ID"
        assert len(rows) == 3
        assert all(int(row[1]) == 15 for row in rows[1:])
        q3 = [float(row[5]) for row in rows[1:]]
        assert q3 == sorted(q3)
        assert all(
            float(row[6]) == pytest.approx(float(row[5]) - float(row[3])) for row in rows[1:]
        )

    def test_form_statistics(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(cli, ["form-statistics", "--db", str(populated_test_db)])

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert rows[1][:2] == ["9", "1"]
        assert float(rows[1][4]) == 1.0

    def test_invalid_date(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["view-statistics", "--db", str(populated_test_db), "--start", "May"]
        )

        assert result.exit_code != 0
        assert "Invalid date" in result.output


class TestSeriesCommand:
    def test_raw_series(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["series", "--db", str(populated_test_db), "--view-id", "1", "--unit", "ms"]
        )

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert rows[0] == ["segment", "timestamp (ns)", "value (ms)"]
        assert len(rows) == 16
        assert float(rows[1][2]) == 1000.0

    def test_aggregated_series(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli,
            [
                "series",
                "--db",
                str(populated_test_db),
                "--aggregate",
                "count",
                "--window",
                "10s",
            ],
        )

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert rows[0][2] == "count"
        assert [float(row[2]) for row in rows[1:]] == [10.0, 10.0, 10.0]

    def test_epoch_milliseconds(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["series", "--db", str(populated_test_db), "--view-id", "1", "--epoch-ms"]
        )

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert rows[0][1] == "timestamp (ms)"
        assert [float(row[1]) for row in rows[1:3]] == [0.0, 2000.0]

    def test_window_requires_aggregate(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli, ["series", "--db", str(populated_test_db), "--window", "1h"]
        )

        assert result.exit_code == 2

    def test_calendar_window_rejected(self, cli_runner, populated_test_db):
        result = cli_runner.invoke(
            cli,
            ["series", "--db", str(populated_test_db), "--aggregate", "mean", "--window", "1M"],
        )

        assert result.exit_code == 2
        assert "fixed width" in result.output


class TestActiveCountCommand:
    @pytest.fixture
    def computed_db(self, cli_runner, populated_test_db):
        cli_runner.invoke(cli, ["compute-overlap", "--db", str(populated_test_db)])
        cleanup_database()
        return populated_test_db

    def test_raw_timeline(self, cli_runner, computed_db):
        result = cli_runner.invoke(cli, ["active-count", "--db", str(computed_db)])

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert rows[0] == ["segment", "timestamp (ns)", "active count"]
        # One sample per start and one per expiry
        assert len(rows) == 61
        assert rows[1][1:] == ["0", "1.0"]
        assert float(rows[-1][2]) == 0.0

    def test_windowed_count(self, cli_runner, computed_db):
        result = cli_runner.invoke(
            cli,
            ["active-count", "--db", str(computed_db), "--aggregate", "count", "--window", "10s"],
        )

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert rows[0][2] == "active count (count)"
        assert sum(float(row[2]) for row in rows[1:]) == 60

    def test_windowed_max(self, cli_runner, computed_db):
        result = cli_runner.invoke(
            cli,
            ["active-count", "--db", str(computed_db), "--aggregate", "max", "--window", "10s"],
        )

        assert result.exit_code == 0, result.output
        rows = _rows(result.output)
        assert all(1.0 <= float(row[2]) <= 5.0 for row in rows[1:])


class TestConvertUnit:
    def test_duration(self, cli_runner):
        result = cli_runner.invoke(cli, ["convert-unit", "2 hours"])

        assert result.exit_code == 0
        assert result.output.strip() == f"{7200 * NS_PER_SECOND} nanoseconds"

    def test_unparseable(self, cli_runner):
        result = cli_runner.invoke(cli, ["convert-unit", "soon"])

        assert result.exit_code == 1
        assert "Unable to parse" in result.output


class TestConfigCommands:
    def test_show_without_file(self, cli_runner):
        result = cli_runner.invoke(cli, ["config", "show"])

        assert "No config file" in result.output

    def test_set_show_unset(self, cli_runner, isolated_config):
        result = cli_runner.invoke(cli, ["config", "set", "analysis.min_pca_samples", "30"])
        assert result.exit_code == 0
        assert isolated_config.exists()

        result = cli_runner.invoke(cli, ["config", "show"])
        assert "[analysis]" in result.output
        assert "min_pca_samples = 30" in result.output

        result = cli_runner.invoke(cli, ["config", "unset", "analysis.min_pca_samples"])
        assert "Removed" in result.output
        assert not isolated_config.exists()

    def test_set_requires_section(self, cli_runner):
        result = cli_runner.invoke(cli, ["config", "set", "batch_size", "3"])

        assert result.exit_code == 2

    @pytest.mark.parametrize(
        "raw,expected",
        [("30", 30), ("0.5", 0.5), ("true", True), ("~/trace.sqlite", "~/trace.sqlite")],
    )
    def test_parse_config_value(self, raw, expected):
        assert parse_config_value(raw) == expected
