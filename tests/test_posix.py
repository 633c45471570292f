"""Tests for parsing and writing POSIX TZ strings."""

import pytest
from pydantic import ValidationError

from tzrules.adjustment import CENTRAL_EUROPE, REGIONS
from tzrules.compat import enable_strict_posix, is_strict_posix_enabled
from tzrules.exceptions import PosixParseError, TzRulesError
from tzrules.posix import format_offset, numeric_abbreviation, split_transition_time
from tzrules.rule import DayOfWeek, Month, WeekOfMonth, date_rule, fixed_rule, floating_rule
from tzrules.timezone import EMPTY, TimeZone, TimezoneInfo, parse_tz_string

CST = "CST6CDT,M3.2.0,M11.1.0"


def test_parse_cst() -> None:
    """Test parsing a time zone with daylight saving time rules."""
    result = TimezoneInfo.from_posix(CST)
    assert result.ok
    assert result.position == len(CST)
    info = result.info
    assert info.standard_abbreviation == "CST"
    assert info.daylight_abbreviation == "CDT"
    assert info.time_zone.total_minutes == -360
    assert info.dst.dst_offset_total_minutes == 60
    assert info.time_zone.total_minutes + info.dst.dst_offset_total_minutes == -300
    assert info.dst.start == floating_rule(
        2, Month.MARCH, DayOfWeek.SUNDAY, WeekOfMonth.SECOND
    )
    assert info.dst.end == floating_rule(
        2, Month.NOVEMBER, DayOfWeek.SUNDAY, WeekOfMonth.FIRST
    )


def test_write_cst() -> None:
    """Test writing a time zone with daylight saving time rules."""
    info = parse_tz_string(CST)
    assert info.to_posix() == "CST+6CDT,M3.2.0/2,M11.1.0/2"
    assert parse_tz_string(info.to_posix()) == info


def test_numeric_abbreviation() -> None:
    """Test a quoted abbreviation is preserved."""
    result = TimezoneInfo.from_posix("<-04>4")
    assert result.ok
    assert result.position == 6
    assert result.info.standard_abbreviation == "<-04>"
    assert result.info.time_zone.total_minutes == -240
    assert result.info.no_dst
    assert result.info.to_posix() == "<-04>+4"


@pytest.mark.parametrize(
    ("text", "minutes"),
    [
        ("EST5", -300),
        ("EST+5", -300),
        ("JST-9", 540),
        ("EX05:30", -330),
        ("EX05:30:20", -330),
        ("IST-5:30", 330),
        ("XXX-0:30", 30),
        ("<+0545>-5:45", 345),
        ("<-0130>1:30", -90),
        ("UTC0", 0),
    ],
)
def test_standard_offset(text: str, minutes: int) -> None:
    """Test the standard offset is inverted from the POSIX sign."""
    result = TimezoneInfo.from_posix(text)
    assert result.ok
    assert result.position == len(text)
    assert result.info.time_zone.total_minutes == minutes
    assert result.info.no_dst


def test_standard_offset_truncated() -> None:
    """Test the standard offset has a 15 minute resolution."""
    info = parse_tz_string("XXX-0:50")
    assert info.time_zone.total_minutes == 45


@pytest.mark.parametrize("text", ["EST5EDT", "EST5EDT4", "EST5EDT+4"])
def test_implied_rules(text: str) -> None:
    """Test a daylight abbreviation without rules uses the default rules."""
    info = parse_tz_string(text)
    assert info.dst.dst_offset_total_minutes == 60
    assert info.to_posix() == "EST+5EDT,M3.2.0/2,M11.1.0/2"


def test_explicit_dst_offset() -> None:
    """Test a daylight offset that is not one hour."""
    info = parse_tz_string("LHST-10:30LHDT-11,M10.1.0,M4.1.0")
    assert info.time_zone.total_minutes == 630
    assert info.dst.dst_offset_total_minutes == 30
    assert info.to_posix() == "LHST-10:30LHDT-11,M10.1.0/2,M4.1.0/2"


def test_southern_hemisphere() -> None:
    """Test parsing rules where DST wraps across the new year."""
    info = parse_tz_string("NZST-12NZDT,M9.5.0,M4.1.0/3")
    assert info.time_zone.total_minutes == 720
    assert info.dst.start == floating_rule(
        2, Month.SEPTEMBER, DayOfWeek.SUNDAY, WeekOfMonth.LAST
    )
    assert info.dst.end == floating_rule(
        3, Month.APRIL, DayOfWeek.SUNDAY, WeekOfMonth.FIRST
    )


def test_julian_rules() -> None:
    """Test Julian days where February 29th is never counted."""
    info = parse_tz_string("EST5EDT,J60,J300")
    assert info.dst.start == date_rule(2, Month.MARCH, 1)
    assert info.dst.end == date_rule(2, Month.OCTOBER, 27)
    assert info.to_posix() == "EST+5EDT,J60/2,J300/2"


def test_day_of_year_rules() -> None:
    """Test zero based days of the year."""
    info = parse_tz_string("EST5EDT,59,300/0")
    assert info.dst.start == fixed_rule(2, 59)
    assert info.dst.end == fixed_rule(0, 300)
    assert info.to_posix() == "EST+5EDT,59/2,300/0"


def test_negative_transition_time() -> None:
    """Test a negative transition time moves the rule to the previous day."""
    text = "<-03>3<-02>,M3.5.0/-2,M10.5.0/-1"
    info = parse_tz_string(text)
    assert info.standard_abbreviation == "<-03>"
    assert info.daylight_abbreviation == "<-02>"
    assert info.dst.start == floating_rule(
        22, Month.MARCH, DayOfWeek.SUNDAY, WeekOfMonth.LAST, -1
    )
    assert info.dst.end == floating_rule(
        23, Month.OCTOBER, DayOfWeek.SUNDAY, WeekOfMonth.LAST, -1
    )
    assert info.to_posix() == "<-03>+3<-02>,M3.5.0/-2,M10.5.0/-1"


def test_transition_time_over_a_day() -> None:
    """Test a transition time beyond 24 hours moves the rule to the next day."""
    info = parse_tz_string("IST-2IDT,M3.4.4/26,M10.5.0")
    assert info.dst.start == floating_rule(
        2, Month.MARCH, DayOfWeek.THURSDAY, WeekOfMonth.FOURTH, 1
    )
    assert info.to_posix() == "IST-2IDT,M3.4.4/26,M10.5.0/2"


@pytest.mark.parametrize(
    ("minutes", "expected"),
    [
        (0, (0, 0)),
        (120, (2, 0)),
        (150, (2, 0)),
        (26 * 60, (2, 1)),
        (167 * 60, (23, 6)),
        (-60, (23, -1)),
        (-24 * 60, (0, -1)),
        (-46 * 60, (2, -2)),
        (-167 * 60, (1, -7)),
    ],
)
def test_split_transition_time(minutes: int, expected: tuple[int, int]) -> None:
    """Test splitting a transition time into an hour and days offset."""
    assert split_transition_time(minutes) == expected


@pytest.mark.parametrize(
    ("text", "position"),
    [
        ("", 0),
        ("XYZ", -3),
        ("1EST", 0),
        ("EST+", -3),
        ("EST1234", -6),
        ("EST5:", -4),
        ("EST5:-30", -4),
        ("<+01", 0),
        ("EST25", -3),
        ("EST5 junk", -4),
        ("EST5EDT,M13.1.0,M11.1.0", -8),
        ("EST5EDT,M3.6.0,M11.1.0", -8),
        ("EST5EDT,M3.2.7,M11.1.0", -8),
        ("EST5EDT,M3.2.00,M11.1.0", -14),
        ("EST5EDT,J0,J100", -8),
        ("EST5EDT,J366,J100", -8),
        ("EST5EDT,366,100", -8),
        ("EST5EDT,M3.2.0", -14),
        ("EST5EDT,M3.2.0,", -15),
        ("EST5EDT,M3.2.0/200,M11.1.0", -15),
        ("EST5EDT,", -8),
    ],
)
def test_invalid(text: str, position: int) -> None:
    """Test the position of the error in an invalid string."""
    result = TimezoneInfo.from_posix(text)
    assert not result.ok
    assert result.position == position
    with pytest.raises(PosixParseError):
        parse_tz_string(text)


@pytest.mark.parametrize("text", ["", "XYZ", "1EST", "EST+", "<+01"])
def test_invalid_is_empty(text: str) -> None:
    """Test nothing is kept when the standard time can't be parsed."""
    result = TimezoneInfo.from_posix(text)
    assert result.position <= 0
    assert result.info == EMPTY


def test_partial_result() -> None:
    """Test fields read before an error are kept."""
    result = TimezoneInfo.from_posix("CST6CDT,M3.2.0")
    assert not result.ok
    assert result.info.standard_abbreviation == "CST"
    assert result.info.daylight_abbreviation == "CDT"
    assert result.info.time_zone.total_minutes == -360
    assert result.info.no_dst


def test_trailing_text() -> None:
    """Test text after a complete string."""
    text = CST + " junk"
    result = TimezoneInfo.from_posix(text)
    assert result.ok
    assert result.position == len(CST)
    with pytest.raises(PosixParseError, match="trailing") as exc_info:
        parse_tz_string(text)
    assert exc_info.value.position == len(CST)
    assert exc_info.value.detailed_error == " junk"


def test_parse_error() -> None:
    """Test the exception raised for an invalid string."""
    with pytest.raises(PosixParseError, match="standard offset") as exc_info:
        parse_tz_string("XYZ")
    assert exc_info.value.position == 3
    assert isinstance(exc_info.value, ValueError)
    assert isinstance(exc_info.value, TzRulesError)


def test_strict_mode() -> None:
    """Test strict parsing rejects short names and missing rules."""
    assert TimezoneInfo.from_posix("EX5").ok
    assert TimezoneInfo.from_posix("EST5EDT").ok
    with enable_strict_posix():
        assert is_strict_posix_enabled()
        assert TimezoneInfo.from_posix("EX5").position == 0
        assert TimezoneInfo.from_posix("<+1>-1").position == 0
        result = TimezoneInfo.from_posix("EST5EDT")
        assert result.position == -7
        assert result.info.daylight_abbreviation == "EDT"
        assert result.info.no_dst
        assert TimezoneInfo.from_posix(CST).ok
    assert not is_strict_posix_enabled()


def test_abbreviation_too_long() -> None:
    """Test abbreviations are limited to 7 characters."""
    assert not TimezoneInfo.from_posix("ABCDEFGH5").ok
    with pytest.raises(ValidationError):
        TimezoneInfo(standard_abbreviation="ABCDEFGH")


@pytest.mark.parametrize(
    ("minutes", "offset", "abbreviation"),
    [
        (0, "+0", "<+00>"),
        (60, "+1", "<+01>"),
        (-240, "-4", "<-04>"),
        (330, "+5:30", "<+0530>"),
        (-570, "-9:30", "<-0930>"),
        (5, "+0:05", "<+0005>"),
    ],
)
def test_format_helpers(minutes: int, offset: str, abbreviation: str) -> None:
    """Test formatting offsets and synthesized abbreviations."""
    assert format_offset(minutes) == offset
    assert numeric_abbreviation(minutes) == abbreviation


def test_synthesized_abbreviations() -> None:
    """Test writing a time zone without abbreviations."""
    assert TimezoneInfo(time_zone=TimeZone.from_hours(5, 30)).to_posix() == (
        "<+0530>-5:30"
    )
    assert TimezoneInfo(time_zone=TimeZone.from_hours(-4)).to_posix() == "<-04>+4"
    info = TimezoneInfo(time_zone=TimeZone.from_hours(1), dst=CENTRAL_EUROPE)
    assert info.to_posix() == "<+01>-1<+02>,M3.5.0/2,M10.5.0/3"
    assert parse_tz_string(info.to_posix()).dst == CENTRAL_EUROPE


@pytest.mark.parametrize("name", list(REGIONS))
def test_region_round_trip(name: str) -> None:
    """Test every predefined region survives writing and parsing."""
    info = TimezoneInfo(
        time_zone=TimeZone.from_hours(1),
        dst=REGIONS[name],
        standard_abbreviation="STD",
        daylight_abbreviation="DST",
    )
    parsed = parse_tz_string(info.to_posix())
    assert parsed == info
    assert parsed.dst.next_transition(0) == info.dst.next_transition(0)


def test_write_buffer() -> None:
    """Test writing into a buffer with enough capacity."""
    info = parse_tz_string(CST)
    expected = info.to_posix().encode()
    buffer = bytearray(64)
    end = info.write_posix(buffer)
    assert end == len(expected)
    assert bytes(buffer[:end]) == expected
    assert buffer[end] == 0


def test_write_buffer_exact() -> None:
    """Test a buffer with room for the string and its terminator."""
    info = parse_tz_string(CST)
    expected = info.to_posix().encode()
    buffer = bytearray(len(expected) + 1)
    assert info.write_posix(buffer) == len(expected)
    assert bytes(buffer) == expected + b"\x00"


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, b""),
        (1, b"\x00"),
        (4, b"CST\x00"),
        (5, b"CST\x00"),
        (10, b"CST+6CDT\x00"),
        (17, b"CST+6CDT\x00"),
        (18, b"CST+6CDT,M3.2.0/2\x00"),
    ],
)
def test_write_buffer_truncated(size: int, expected: bytes) -> None:
    """Test the string is cut after the last complete token."""
    info = parse_tz_string(CST)
    buffer = bytearray(b"\xff" * 32)
    end = info.write_posix(buffer, size)
    assert end == max(len(expected) - 1, 0)
    assert bytes(buffer[: len(expected)]) == expected
    assert bytes(buffer[len(expected) :]) == b"\xff" * (32 - len(expected))


def test_write_buffer_size_exceeds_buffer() -> None:
    """Test the size is limited to the length of the buffer."""
    info = parse_tz_string(CST)
    buffer = bytearray(5)
    assert info.write_posix(buffer, 100) == 3
    assert bytes(buffer) == b"CST\x00\x00"


def test_negative_dst_offset() -> None:
    """Test a daylight offset behind standard time."""
    text = "IST-1GMT0,M10.5.0,M3.5.0/1"
    result = TimezoneInfo.from_posix(text)
    assert result.ok
    assert result.position == len(text)
    info = result.info
    assert info.time_zone.total_minutes == 60
    assert info.dst.dst_offset_total_minutes == -60
    assert info.dst.start == floating_rule(
        2, Month.OCTOBER, DayOfWeek.SUNDAY, WeekOfMonth.LAST
    )
    assert info.dst.end == floating_rule(
        1, Month.MARCH, DayOfWeek.SUNDAY, WeekOfMonth.LAST
    )
    assert info.to_posix() == "IST-1GMT+0,M10.5.0/2,M3.5.0/1"
    assert parse_tz_string(info.to_posix()) == info


def test_negative_dst_offset_synthesized_abbreviations() -> None:
    """Test writing a negative daylight offset without abbreviations."""
    dst = parse_tz_string("IST-1GMT0,M10.5.0,M3.5.0/1").dst
    info = TimezoneInfo(time_zone=TimeZone.from_hours(1), dst=dst)
    assert info.to_posix() == "<+01>-1<+00>+0,M10.5.0/2,M3.5.0/1"
    parsed = parse_tz_string(info.to_posix())
    assert parsed.time_zone == info.time_zone
    assert parsed.dst == dst
    assert parsed.daylight_abbreviation == "<+00>"
