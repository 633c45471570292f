"""Tests for time zone information."""

import datetime

import pytest
from pydantic import ValidationError

from tzrules.adjustment import (
    CENTRAL_EUROPE,
    NO_DST,
    OFFSET_UNIT_MINUTES,
    DSTAdjustment,
)
from tzrules.calendar import raw_from_datetime
from tzrules.rule import fixed_rule
from tzrules.timezone import EMPTY, TimeZone, TimezoneInfo, parse_tz_string

CET = "CET-1CEST,M3.5.0,M10.5.0/3"


def raw(*args: int) -> int:
    """Return the raw instant for the datetime fields."""
    return raw_from_datetime(datetime.datetime(*args))


@pytest.mark.parametrize(
    ("time_zone", "total_minutes", "hours", "minutes"),
    [
        (TimeZone(), 0, 0, 0),
        (TimeZone.from_hours(1), 60, 1, 0),
        (TimeZone.from_hours(5, 30), 330, 5, 30),
        (TimeZone.from_hours(-3, -30), -210, -3, -30),
        (TimeZone.from_total_minutes(50), 45, 0, 45),
        (TimeZone.from_total_minutes(-50), -45, 0, -45),
        (TimeZone.from_total_minutes(-570), -570, -9, -30),
    ],
)
def test_time_zone(
    time_zone: TimeZone, total_minutes: int, hours: int, minutes: int
) -> None:
    """Test the fields of a fixed offset."""
    assert time_zone.total_minutes == total_minutes
    assert time_zone.hours == hours
    assert time_zone.minutes == minutes
    assert time_zone.duration.total_minutes == total_minutes


def test_time_zone_units() -> None:
    """Test the offset is stored in units of 15 minutes."""
    assert TimeZone.from_hours(5, 45).offset == 23
    assert TimeZone.from_hours(-1).offset == -4
    rule = fixed_rule(2, 100)
    for minutes in (-50, 45, 330):
        assert (
            TimeZone.from_total_minutes(minutes).offset
            == DSTAdjustment.from_total_minutes(rule, rule, minutes).offset
        )
    assert TimeZone(offset=1).total_minutes == OFFSET_UNIT_MINUTES


def test_empty() -> None:
    """Test the empty time zone is UTC without daylight saving time."""
    assert EMPTY.time_zone.total_minutes == 0
    assert EMPTY.dst == NO_DST
    assert EMPTY.no_dst
    assert EMPTY.abbreviation(False) == "<+00>"
    assert EMPTY.abbreviation(True) == "<+00>"
    assert EMPTY.to_posix() == "<+00>+0"


def test_names() -> None:
    """Test display names are limited in length."""
    info = parse_tz_string(CET).model_copy(
        update={"key_name": "Europe/Prague", "standard_name": "Central European"}
    )
    assert info.key_name == "Europe/Prague"
    assert info.to_posix() == "CET-1CEST,M3.5.0/2,M10.5.0/3"
    TimezoneInfo(daylight_name="x" * 44)
    with pytest.raises(ValidationError):
        TimezoneInfo(daylight_name="x" * 45)


def test_frozen() -> None:
    """Test time zone information can't be modified."""
    info = parse_tz_string(CET)
    with pytest.raises(ValidationError):
        info.key_name = "Europe/Prague"  # type: ignore[misc]


@pytest.mark.parametrize(
    ("value", "is_dst", "offset", "abbreviation"),
    [
        (raw(2024, 1, 15, 12), False, 60, "CET"),
        (raw(2024, 3, 31, 1, 59), False, 60, "CET"),
        (raw(2024, 3, 31, 2), True, 120, "CEST"),
        (raw(2024, 7, 1), True, 120, "CEST"),
        (raw(2024, 10, 27, 1, 59), True, 120, "CEST"),
        (raw(2024, 10, 27, 2), False, 60, "CET"),
    ],
)
def test_dst_state(value: int, is_dst: bool, offset: int, abbreviation: str) -> None:
    """Test the state of a time zone at instants in standard time."""
    info = parse_tz_string(CET)
    assert info.dst == CENTRAL_EUROPE
    assert info.is_dst(value) == is_dst
    assert info.utc_offset_minutes(value) == offset
    assert info.abbreviation(info.is_dst(value)) == abbreviation


@pytest.mark.parametrize(
    ("utc", "local"),
    [
        (raw(2024, 7, 1, 12), raw(2024, 7, 1, 14)),
        (raw(2024, 1, 1, 12), raw(2024, 1, 1, 13)),
        (raw(2024, 3, 31, 0, 59), raw(2024, 3, 31, 1, 59)),
        (raw(2024, 3, 31, 1), raw(2024, 3, 31, 3)),
        (raw(2024, 10, 27, 0, 30), raw(2024, 10, 27, 2, 30)),
        (raw(2024, 10, 27, 1, 30), raw(2024, 10, 27, 2, 30)),
    ],
)
def test_local_from_utc(utc: int, local: int) -> None:
    """Test converting UTC instants to local wall time."""
    assert parse_tz_string(CET).local_from_utc(utc) == local


def test_synthesized_daylight_abbreviation() -> None:
    """Test the abbreviation of a zone without names."""
    info = TimezoneInfo(time_zone=TimeZone.from_hours(-3), dst=CENTRAL_EUROPE)
    assert info.abbreviation(False) == "<-03>"
    assert info.abbreviation(True) == "<-02>"
    fixed = TimezoneInfo(time_zone=TimeZone.from_hours(9, 30))
    assert fixed.abbreviation(True) == "<+0930>"
