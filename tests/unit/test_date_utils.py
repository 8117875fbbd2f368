"""Tests for teamsync.core.date_utils."""

import datetime

import pytest

from teamsync.core.date_utils import (
    at_noon,
    format_iso_date,
    is_valid_time,
    month_bounds,
    month_prefix,
    parse_iso_date,
    previous_day,
)

pytestmark = pytest.mark.unit


class TestParseIsoDate:
    """Strict YYYY-MM-DD parsing."""

    def test_parses_zero_padded_date(self):
        assert parse_iso_date("2024-02-29") == datetime.date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["2024-2-29", "20240229", "2023-02-29", "", "2024-01-01T00:00"])
    def test_rejects_malformed_or_impossible_dates(self, value):
        with pytest.raises(ValueError):
            parse_iso_date(value)


class TestDayBefore:
    """Previous-day arithmetic with rollover."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("2024-03-01", "2024-02-29"),
            ("2023-03-01", "2023-02-28"),
            ("2024-01-01", "2023-12-31"),
            ("2024-05-16", "2024-05-15"),
        ],
    )
    def test_previous_day_handles_rollover(self, value, expected):
        assert format_iso_date(previous_day(parse_iso_date(value))) == expected


def test_is_valid_time_accepts_24h_clock_only():
    assert is_valid_time("00:00")
    assert is_valid_time("23:59")
    assert not is_valid_time("24:00")
    assert not is_valid_time("9:00")
    assert not is_valid_time("09:60")


def test_month_bounds_and_prefix():
    assert month_bounds(2024, 2) == (datetime.date(2024, 2, 1), datetime.date(2024, 2, 29))
    assert month_prefix(2024, 2) == "2024-02"
    with pytest.raises(ValueError):
        month_bounds(2024, 13)


@pytest.mark.parametrize("year", [0, -1, 10000])
def test_month_bounds_rejects_years_outside_date_range(year):
    with pytest.raises(ValueError, match="Invalid year"):
        month_bounds(year, 1)


def test_at_noon_keeps_the_date():
    assert at_noon(datetime.date(2024, 3, 10)) == datetime.datetime(2024, 3, 10, 12, 0)
