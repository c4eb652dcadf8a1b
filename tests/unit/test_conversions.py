"""
Tests for unit conversions and timestamp parsing.
"""

from datetime import UTC, datetime

import pytest

from overlapscope.analysis.conversions import (
    datetime_to_ns,
    describe_value,
    ns_duration_to_seconds,
    ns_duration_to_unit,
    ns_epoch_to_millis,
    ns_to_datetime,
    parse_datetime_ceil,
    parse_datetime_floor,
    parse_duration,
)
from overlapscope.constants import NS_PER_HOUR, NS_PER_MINUTE, NS_PER_SECOND

NEW_YEAR_2023_NS = 1_672_531_200 * NS_PER_SECOND


class TestDurationConversion:
    def test_to_seconds(self):
        assert ns_duration_to_seconds([1_500_000_000, 0]).tolist() == [1.5, 0.0]

    def test_to_millis(self):
        assert ns_epoch_to_millis([NEW_YEAR_2023_NS]).tolist() == [1_672_531_200_000.0]

    @pytest.mark.parametrize(
        "unit,expected",
        [("ns", 1_500_000.0), ("us", 1_500.0), ("ms", 1.5), ("s", 0.0015)],
    )
    def test_to_unit(self, unit, expected):
        assert ns_duration_to_unit([1_500_000], unit).tolist() == [pytest.approx(expected)]

    def test_default_unit_is_seconds(self):
        assert ns_duration_to_unit([2 * NS_PER_SECOND]).tolist() == [2.0]

    @pytest.mark.parametrize("unit", ["D", "W", "M", "Y"])
    def test_long_units_rejected(self, unit):
        with pytest.raises(ValueError):
            ns_duration_to_unit([1], unit)


class TestParseDuration:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("15m", 15 * NS_PER_MINUTE),
            ("2 hours", 2 * NS_PER_HOUR),
            ("500ms", 500_000_000),
            ("1W", 7 * 24 * NS_PER_HOUR),
            ("1M", 30 * 24 * NS_PER_HOUR),
        ],
    )
    def test_valid(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "m", "15", "15 parsecs", "-1s"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)


class TestParseDatetime:
    def test_floor_year(self):
        assert parse_datetime_floor("2023") == datetime(2023, 1, 1, tzinfo=UTC)

    def test_ceil_year(self):
        assert parse_datetime_ceil("2023") == datetime(2023, 12, 31, 23, 59, 59, tzinfo=UTC)

    @pytest.mark.parametrize(
        "text,last_day", [("2023-02", 28), ("2024-02", 29), ("2023-04", 30), ("2023-12", 31)]
    )
    def test_ceil_month_end(self, text, last_day):
        assert parse_datetime_ceil(text).day == last_day

    def test_full_precision(self):
        expected = datetime(2023, 5, 4, 13, 7, 9, tzinfo=UTC)

        assert parse_datetime_floor("2023-05-04 13:07:09") == expected
        assert parse_datetime_ceil("2023-05-04 13:07:09") == expected

    def test_hour_precision(self):
        assert parse_datetime_floor("2023-05-04 13") == datetime(2023, 5, 4, 13, tzinfo=UTC)
        assert parse_datetime_ceil("2023-05-04 13") == datetime(
            2023, 5, 4, 13, 59, 59, tzinfo=UTC
        )

    @pytest.mark.parametrize("text", ["23", "2023-5", "2023-13", "2023-02-30", "yesterday"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_datetime_floor(text)

    def test_round_trip_ns(self):
        value = datetime(2023, 1, 1, tzinfo=UTC)

        assert datetime_to_ns(value) == NEW_YEAR_2023_NS
        assert ns_to_datetime(NEW_YEAR_2023_NS) == value


class TestDescribeValue:
    def test_exact_datetime(self):
        assert describe_value("2023-01-01 00:00:00") == str(NEW_YEAR_2023_NS)

    def test_partial_date_gives_range(self):
        text = describe_value("2023")

        assert text.startswith(f"{NEW_YEAR_2023_NS} - ")

    def test_duration(self):
        assert describe_value("15m") == f"{15 * NS_PER_MINUTE} nanoseconds"

    def test_timestamp(self):
        assert describe_value(str(NEW_YEAR_2023_NS)) == "2023-01-01 00:00:00+00:00"

    def test_unparseable(self):
        with pytest.raises(ValueError):
            describe_value("not a value")
