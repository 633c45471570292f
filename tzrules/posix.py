"""Grammar helpers for POSIX TZ strings.

The TZ environment variable format describes a time zone and its daylight
saving rules:

  std offset [dst [offset] [,start[/time],end[/time]]]

  - std, dst: Abbreviation of the time zone, either up to seven letters
    (e.g. CET) or a quoted form within angle brackets (e.g. <+0530>). POSIX
    requires at least three characters, which is only enforced in strict
    mode (see `tzrules.compat`).
  - offset: Time added to local time to get UTC, [+|-]hh[:mm[:ss]]. This is
    the inverse of the usual UTC offset, e.g. CET-1 is one hour east of UTC.
    The dst offset defaults to one hour ahead of standard time.
  - When a dst abbreviation has no rules, strict mode reports an error at the
    end of the abbreviation. Otherwise the rules default to M3.2.0,M11.1.0.
  - start & end: When DST starts and ends, in one of the formats:
      Jn: A julian day between 1 and 365, Feb 29th is never counted.
      n: A zero based day between 0 and 365, Feb 29th is counted in leap years.
      Mm.w.d:
          m: Month between 1 and 12
          w: Between 1 and 5. Week 1 is the first week d occurs, 5 is the last
          d: Between 0 (Sunday) and 6 (Saturday)
    The time is in local time and defaults to 02:00:00. It may be negative or
    exceed a day, which moves the transition to another day.

The reader here extracts the fields of the grammar and the writer renders
them back, the `TimezoneInfo` model assembles them.
"""

from __future__ import annotations

import logging
import re

from .calendar import day_of_year_from_month, month_from_day_of_year
from .compat import is_strict_posix_enabled
from .exceptions import PosixParseError
from .rule import (
    MAX_DAYS_OFFSET,
    MIN_DAYS_OFFSET,
    DateRule,
    DayOfWeek,
    FixedRule,
    FloatingRule,
    Month,
    TransitionRule,
    WeekOfMonth,
    date_rule,
    fixed_rule,
    floating_rule,
)

__all__ = [
    "PosixReader",
    "BufferWriter",
    "DEFAULT_START_RULE",
    "DEFAULT_END_RULE",
    "format_offset",
    "numeric_abbreviation",
    "format_rule",
    "split_transition_time",
]

_LOGGER = logging.getLogger(__name__)

MIN_STRICT_ABBREVIATION_LENGTH = 3
MAX_OFFSET_MINUTES = 900
MAX_TRANSITION_TIME_MINUTES = 7 * 24 * 60
DEFAULT_TRANSITION_HOUR = 2
DEFAULT_DST_MINUTES = 60

DEFAULT_START_RULE = floating_rule(
    DEFAULT_TRANSITION_HOUR, Month.MARCH, DayOfWeek.SUNDAY, WeekOfMonth.SECOND
)
DEFAULT_END_RULE = floating_rule(
    DEFAULT_TRANSITION_HOUR, Month.NOVEMBER, DayOfWeek.SUNDAY, WeekOfMonth.FIRST
)

_ABBREVIATION_REGEX = re.compile(
    r"<(?P<quoted>[A-Za-z0-9+\-]{1,5})>|(?P<name>[A-Za-z_]{1,7})"
)
_OFFSET_REGEX = re.compile(
    r"(?P<sign>[+-]?)(?P<hours>\d{1,3})"
    r"(?::(?P<minutes>\d{1,2})(?::(?P<seconds>\d{1,2}))?)?"
)
_RULE_DATE_REGEX = re.compile(
    r"J(?P<julian>\d{1,3})"
    r"|M(?P<month>\d{1,2})\.(?P<week>\d)\.(?P<weekday>\d)"
    r"|(?P<day>\d{1,3})"
)
_OFFSET_START = frozenset("+-0123456789")
_UNEXPECTED_AFTER_NUMBER = frozenset("+-:0123456789")


def split_transition_time(minutes: int) -> tuple[int, int]:
    """Split a signed transition time into an hour of day and a days offset.

    Minutes are discarded. A negative time counts back from midnight, e.g.
    -1 hour is 23:00 on the previous day.
    """
    hours = abs(minutes) // 60
    hour = hours % 24
    days = hours // 24
    if minutes < 0:
        days = -days
        if hour > 0:
            days -= 1
        hour = (24 - hour) % 24
    return (hour, days)


class PosixReader:
    """Reads the fields of a POSIX TZ string.

    Fields are stored on the reader as soon as they are complete, so the
    values read before a syntax error remain available to the caller. The
    standard abbreviation is only stored together with the standard offset
    and the transition rules are only stored as a pair.
    """

    def __init__(self, text: str) -> None:
        """Initialize PosixReader."""
        self._text = text
        self.pos = 0
        self.standard_abbreviation = ""
        self.standard_offset_minutes = 0
        self.daylight_abbreviation = ""
        self.dst_offset_minutes = 0
        self.start: TransitionRule | None = None
        self.end: TransitionRule | None = None

    def read(self) -> None:
        """Read the whole string, raising PosixParseError on a syntax error."""
        standard_abbreviation = self._read_abbreviation("standard")
        offset_pos = self.pos
        offset = self._read_offset("standard offset")
        if abs(offset) >= MAX_OFFSET_MINUTES:
            raise PosixParseError(
                f"Standard offset out of range: {offset} minutes",
                position=offset_pos,
                detailed_error=self._text,
            )
        self.standard_abbreviation = standard_abbreviation
        self.standard_offset_minutes = -offset
        if self._at_end():
            return

        self.daylight_abbreviation = self._read_abbreviation("daylight")
        if not self._at_end() and self._text[self.pos] in _OFFSET_START:
            offset_pos = self.pos
            dst_posix = self._read_offset("daylight offset")
            if abs(dst_posix) >= MAX_OFFSET_MINUTES:
                raise PosixParseError(
                    f"Daylight offset out of range: {dst_posix} minutes",
                    position=offset_pos,
                    detailed_error=self._text,
                )
            # Offset of DST relative to standard time
            self.dst_offset_minutes = -dst_posix - self.standard_offset_minutes
        else:
            self.dst_offset_minutes = DEFAULT_DST_MINUTES

        if self._at_end() or self._text[self.pos] != ",":
            if is_strict_posix_enabled():
                raise PosixParseError(
                    "Expected transition rules after the daylight abbreviation",
                    position=self.pos,
                    detailed_error=self._text,
                )
            _LOGGER.debug(
                "No transition rules for %s, using defaults", self.daylight_abbreviation
            )
            self.start = DEFAULT_START_RULE
            self.end = DEFAULT_END_RULE
            return
        self.pos += 1
        start = self._read_rule()
        self._expect(",", "Expected end transition rule")
        end = self._read_rule()
        self.start = start
        self.end = end

    def _at_end(self) -> bool:
        return self.pos >= len(self._text)

    def _error(self, message: str) -> PosixParseError:
        return PosixParseError(
            f"{message} at position {self.pos}",
            position=self.pos,
            detailed_error=self._text[self.pos :],
        )

    def _expect(self, char: str, message: str) -> None:
        if self._at_end() or self._text[self.pos] != char:
            raise self._error(message)
        self.pos += 1

    def _check_not_followed_by_number(self) -> None:
        if not self._at_end() and self._text[self.pos] in _UNEXPECTED_AFTER_NUMBER:
            raise self._error("Unexpected number")

    def _read_abbreviation(self, name: str) -> str:
        if not (match := _ABBREVIATION_REGEX.match(self._text, self.pos)):
            raise self._error(f"Expected {name} abbreviation")
        inner = match.group("quoted") or match.group("name")
        if is_strict_posix_enabled() and len(inner) < MIN_STRICT_ABBREVIATION_LENGTH:
            raise self._error(f"Abbreviation '{inner}' is too short")
        self.pos = match.end()
        return match.group(0)

    def _read_offset(self, name: str) -> int:
        """Read [+|-]hh[:mm[:ss]] returning signed minutes, seconds are dropped."""
        if not (match := _OFFSET_REGEX.match(self._text, self.pos)):
            raise self._error(f"Expected {name}")
        self.pos = match.end()
        self._check_not_followed_by_number()
        minutes = int(match.group("hours")) * 60 + int(match.group("minutes") or 0)
        if match.group("sign") == "-":
            return -minutes
        return minutes

    def _read_rule(self) -> TransitionRule:
        if not (match := _RULE_DATE_REGEX.match(self._text, self.pos)):
            raise self._error("Expected transition rule")
        rule_pos = self.pos
        self.pos = match.end()
        self._check_not_followed_by_number()
        rule: TransitionRule
        if (julian := match.group("julian")) is not None:
            day = int(julian)
            if not 1 <= day <= 365:
                raise self._rule_error("Julian day out of range", rule_pos, julian)
            month, day_of_month = month_from_day_of_year(day - 1, False)
            rule = date_rule(DEFAULT_TRANSITION_HOUR, month, day_of_month)
        elif (month_value := match.group("month")) is not None:
            month = int(month_value)
            week = int(match.group("week"))
            weekday = int(match.group("weekday"))
            if not 1 <= month <= 12 or not 1 <= week <= 5 or not 0 <= weekday <= 6:
                raise self._rule_error("Invalid month rule", rule_pos, match.group(0))
            rule = floating_rule(DEFAULT_TRANSITION_HOUR, month, weekday + 1, week)
        else:
            day = int(match.group("day"))
            if day > 365:
                raise self._rule_error("Day of year out of range", rule_pos, str(day))
            rule = fixed_rule(DEFAULT_TRANSITION_HOUR, day)

        if self._at_end() or self._text[self.pos] != "/":
            return rule
        self.pos += 1
        time_pos = self.pos
        minutes = self._read_offset("transition time")
        if abs(minutes) >= MAX_TRANSITION_TIME_MINUTES:
            raise self._rule_error(
                "Transition time out of range", time_pos, str(minutes)
            )
        hour, days = split_transition_time(minutes)
        if not MIN_DAYS_OFFSET <= days <= MAX_DAYS_OFFSET:
            raise self._rule_error("Transition day out of range", time_pos, str(days))
        return rule.with_transition_time(hour).with_days_offset(days)

    def _rule_error(self, message: str, position: int, value: str) -> PosixParseError:
        return PosixParseError(
            f"{message}: {value}", position=position, detailed_error=self._text
        )


class BufferWriter:
    """Writes ASCII tokens into a caller owned buffer of limited capacity.

    A token is either written completely or not at all. Once a token does
    not fit, all following tokens are dropped. The capacity includes the
    space for the NUL terminator.
    """

    def __init__(self, buffer: bytearray, size: int | None = None) -> None:
        """Initialize BufferWriter."""
        self._buffer = buffer
        self._capacity = len(buffer) if size is None else min(size, len(buffer))
        self.pos = 0
        self.truncated = False

    def write(self, token: str) -> bool:
        """Write a token, returning False if it did not fit."""
        data = token.encode("ascii")
        if self.truncated or self.pos + len(data) + 1 > self._capacity:
            self.truncated = True
            return False
        self._buffer[self.pos : self.pos + len(data)] = data
        self.pos += len(data)
        return True

    def terminate(self) -> int:
        """NUL terminate the buffer and return the index of the terminator."""
        if self._capacity > 0:
            self._buffer[self.pos] = 0
        return self.pos


def format_offset(minutes: int) -> str:
    """Format signed minutes as a POSIX offset, e.g. +5 or -5:30."""
    sign = "-" if minutes < 0 else "+"
    hours, mins = divmod(abs(minutes), 60)
    if mins:
        return f"{sign}{hours}:{mins:02}"
    return f"{sign}{hours}"


def numeric_abbreviation(minutes: int) -> str:
    """Return a quoted abbreviation for a UTC offset, e.g. <+01> or <-0330>."""
    sign = "-" if minutes < 0 else "+"
    hours, mins = divmod(abs(minutes), 60)
    if mins:
        return f"<{sign}{hours:02}{mins:02}>"
    return f"<{sign}{hours:02}>"


def _format_rule_date(rule: TransitionRule) -> str:
    if isinstance(rule, DateRule):
        day = day_of_year_from_month(rule.month, False) + rule.day_of_month
        return f"J{day}"
    if isinstance(rule, FloatingRule):
        return f"M{int(rule.month)}.{int(rule.week_of_month)}.{rule.day_of_week - 1}"
    if isinstance(rule, FixedRule):
        return str(rule.day_of_year)
    raise ValueError(f"Rule has no POSIX form: {rule.rule_type.name}")


def format_rule(rule: TransitionRule) -> str:
    """Format a rule as a POSIX rule with an explicit time, e.g. ,M3.2.0/2."""
    hours = rule.days_offset * 24 + rule.transition_time
    return f",{_format_rule_date(rule)}/{hours}"
