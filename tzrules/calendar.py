"""Calendar arithmetic used to resolve transition rules.

All values are based on the proleptic Gregorian calendar with an epoch of
the 1st of January of year 1. Day 0 is that date and a raw instant is the
signed number of microseconds elapsed since its midnight. Negative values
are dates before the epoch (BC).

Year numbering has no year zero: year -1 (1 BC) directly precedes year 1.
Year -1 is a leap year, as are -5, -9, etc.
"""

from __future__ import annotations

import bisect
import datetime

__all__ = [
    "MICROSECOND",
    "MILLISECOND",
    "SECOND",
    "MINUTE",
    "HOUR",
    "DAY",
    "is_leap_year",
    "days_until_year",
    "day_of_year_from_month",
    "month_from_day_of_year",
    "month_length",
    "year_day_from_days",
    "year_from_raw",
    "days_from_raw",
    "hours_from_raw",
    "day_of_week_from_days",
    "raw_from_datetime",
    "datetime_from_raw",
    "trunc_div",
]

MICROSECOND = 1
MILLISECOND = 1000 * MICROSECOND
SECOND = 1000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE
DAY = 24 * HOUR

DAYS_IN_400_YEARS = 365 * 400 + 97
DAYS_IN_100_YEARS = 365 * 100 + 24
DAYS_IN_4_YEARS = 365 * 4 + 1
DAYS_IN_YEAR = 365

# Day of year of the first day of each month
_MONTH_START = (0, 31, 59, 90, 120, 151, 181, 212, 243, 273, 304, 334)
_MONTH_START_LEAP = (0, 31, 60, 91, 121, 152, 182, 213, 244, 274, 305, 335)
_MONTH_LENGTH = (31, 28, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)


def is_leap_year(year: int) -> bool:
    """Return True if the year is a leap year."""
    if year < 0:
        year += 1
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def days_until_year(year: int) -> int:
    """Return the number of days from the epoch until the 1st of January of year.

    The result is negative for years BC, e.g. -366 for year -1.
    """
    if year < 0:
        year += 1
    prev = year - 1
    return prev * DAYS_IN_YEAR + prev // 4 - prev // 100 + prev // 400


def day_of_year_from_month(month: int, is_leap: bool) -> int:
    """Return the zero based day of year of the first day of the month (1-12)."""
    if is_leap:
        return _MONTH_START_LEAP[month - 1]
    return _MONTH_START[month - 1]


def month_from_day_of_year(day_of_year: int, is_leap: bool) -> tuple[int, int]:
    """Return the (month, day of month) tuple for a zero based day of year.

    For example day 43 is the 13th of February.
    """
    starts = _MONTH_START_LEAP if is_leap else _MONTH_START
    month = bisect.bisect_right(starts, day_of_year)
    return (month, day_of_year - starts[month - 1] + 1)


def month_length(month: int, is_leap: bool) -> int:
    """Return the number of days in the month (1-12)."""
    if month == 2 and is_leap:
        return 29
    return _MONTH_LENGTH[month - 1]


def year_day_from_days(days: int) -> tuple[int, int]:
    """Return the (year, zero based day of year) for days elapsed since the epoch.

    The days are split into 400, 100, 4 and 1 year periods. Floor division
    keeps the period arithmetic valid for negative values, which are mapped
    back to the BC year numbering at the end.
    """
    years400, remaining = divmod(days, DAYS_IN_400_YEARS)
    years100 = min(remaining // DAYS_IN_100_YEARS, 3)
    remaining -= years100 * DAYS_IN_100_YEARS
    years4, remaining = divmod(remaining, DAYS_IN_4_YEARS)
    years1 = min(remaining // DAYS_IN_YEAR, 3)
    remaining -= years1 * DAYS_IN_YEAR
    year = years400 * 400 + years100 * 100 + years4 * 4 + years1 + 1
    if year <= 0:
        # Astronomical year 0 is 1 BC
        year -= 1
    return (year, remaining)


def days_from_raw(raw: int) -> int:
    """Return the days elapsed since the epoch for a raw instant."""
    return raw // DAY


def year_from_raw(raw: int) -> int:
    """Return the year of a raw instant."""
    return year_day_from_days(days_from_raw(raw))[0]


def hours_from_raw(raw: int) -> int:
    """Return the hour of day (0-23) of a raw instant."""
    return (raw % DAY) // HOUR


def day_of_week_from_days(days: int) -> int:
    """Return the day of week (1 is Sunday, 7 is Saturday) for days since the epoch.

    Day 0 is a Monday. Python's modulo is always non-negative, so the same
    formula holds for days before the epoch.
    """
    return (days + 1) % 7 + 1


def raw_from_datetime(value: datetime.datetime) -> int:
    """Return the raw instant of the wall clock fields of a datetime (tzinfo ignored)."""
    days = value.toordinal() - 1
    return (
        days * DAY
        + value.hour * HOUR
        + value.minute * MINUTE
        + value.second * SECOND
        + value.microsecond
    )


def datetime_from_raw(raw: int) -> datetime.datetime:
    """Return a naive datetime for a raw instant, only valid for years 1-9999."""
    days, micros = divmod(raw, DAY)
    return datetime.datetime.fromordinal(days + 1) + datetime.timedelta(
        microseconds=micros
    )


def trunc_div(value: int, unit: int) -> int:
    """Integer division rounding toward zero."""
    quotient = abs(value) // unit
    return -quotient if value < 0 else quotient
