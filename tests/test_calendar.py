"""Tests for the calendar arithmetic library."""

import datetime

import pytest

from tzrules.calendar import (
    DAY,
    HOUR,
    MINUTE,
    datetime_from_raw,
    day_of_week_from_days,
    day_of_year_from_month,
    days_from_raw,
    days_until_year,
    hours_from_raw,
    is_leap_year,
    month_from_day_of_year,
    month_length,
    raw_from_datetime,
    trunc_div,
    year_day_from_days,
    year_from_raw,
)


@pytest.mark.parametrize(
    ("year", "expected"),
    [
        (2024, True),
        (2023, False),
        (2000, True),
        (1900, False),
        (-1, True),
        (-2, False),
        (-5, True),
        (-101, False),
        (-401, True),
    ],
)
def test_is_leap_year(year: int, expected: bool) -> None:
    """Test leap years including years before the epoch."""
    assert is_leap_year(year) == expected


def test_days_until_year() -> None:
    """Test the days until a year against the python calendar."""
    assert days_until_year(1) == 0
    assert days_until_year(2) == 365
    assert days_until_year(-1) == -366
    for year in range(1, 3000, 37):
        assert days_until_year(year) == datetime.date(year, 1, 1).toordinal() - 1


def test_year_day_from_days() -> None:
    """Test splitting days into a year and day of year."""
    for days in range(0, 800000, 997):
        date = datetime.date.fromordinal(days + 1)
        assert year_day_from_days(days) == (date.year, date.timetuple().tm_yday - 1)


@pytest.mark.parametrize(
    ("days", "expected"),
    [
        (-1, (-1, 365)),
        (-366, (-1, 0)),
        (-367, (-2, 364)),
    ],
)
def test_year_day_before_epoch(days: int, expected: tuple[int, int]) -> None:
    """Test days before the epoch skip year zero."""
    assert year_day_from_days(days) == expected
    year, day_of_year = expected
    assert days_until_year(year) + day_of_year == days


@pytest.mark.parametrize(
    ("day_of_year", "is_leap", "expected"),
    [
        (0, False, (1, 1)),
        (43, False, (2, 13)),
        (59, False, (3, 1)),
        (59, True, (2, 29)),
        (364, False, (12, 31)),
        (365, True, (12, 31)),
    ],
)
def test_month_from_day_of_year(
    day_of_year: int, is_leap: bool, expected: tuple[int, int]
) -> None:
    """Test converting a day of year to a month and day."""
    assert month_from_day_of_year(day_of_year, is_leap) == expected


def test_month_tables() -> None:
    """Test the start and length of months."""
    assert day_of_year_from_month(1, False) == 0
    assert day_of_year_from_month(3, False) == 59
    assert day_of_year_from_month(3, True) == 60
    assert day_of_year_from_month(12, True) == 335
    assert month_length(2, False) == 28
    assert month_length(2, True) == 29
    assert month_length(4, True) == 30


def test_day_of_week() -> None:
    """Test day of week numbering with Sunday as the first day."""
    assert day_of_week_from_days(0) == 2  # Monday
    assert day_of_week_from_days(-1) == 1  # Sunday
    for days in range(0, 5000, 13):
        date = datetime.date.fromordinal(days + 1)
        assert day_of_week_from_days(days) == date.isoweekday() % 7 + 1


def test_raw_conversions() -> None:
    """Test converting between raw instants and datetimes."""
    value = datetime.datetime(2024, 3, 10, 13, 45, 30, 123)
    raw = raw_from_datetime(value)
    assert datetime_from_raw(raw) == value
    assert hours_from_raw(raw) == 13
    assert year_from_raw(raw) == 2024
    assert days_from_raw(raw) == value.toordinal() - 1
    assert raw_from_datetime(datetime.datetime(1, 1, 2)) == DAY


def test_raw_before_epoch() -> None:
    """Test raw instants before the epoch belong to the previous day."""
    assert days_from_raw(-1) == -1
    assert hours_from_raw(-1) == 23
    assert hours_from_raw(-HOUR - MINUTE) == 22
    assert year_from_raw(-1) == -1


def test_trunc_div() -> None:
    """Test integer division rounding toward zero."""
    assert trunc_div(7, 2) == 3
    assert trunc_div(-7, 2) == -3
    assert trunc_div(-50, 15) == -3
