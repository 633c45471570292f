"""Time zone information and the POSIX TZ string codec.

A `TimezoneInfo` combines a fixed UTC offset with a `DSTAdjustment` and the
display names of the zone. It can be read from and written to the POSIX TZ
string format, see `tzrules.posix` for the grammar.

Parsing never raises. `TimezoneInfo.from_posix` returns the parsed value with
the number of characters consumed, or a non-positive position where the
input could not be parsed. Use `parse_tz_string` to raise on invalid input.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Self

from pydantic import BaseModel, ConfigDict, Field

from .adjustment import NO_DST, OFFSET_UNIT_MINUTES, DSTAdjustment
from .calendar import MINUTE, trunc_div
from .duration import Duration
from .exceptions import PosixParseError
from .posix import (
    DEFAULT_DST_MINUTES,
    BufferWriter,
    PosixReader,
    format_offset,
    format_rule,
    numeric_abbreviation,
)

__all__ = [
    "TimeZone",
    "TimezoneInfo",
    "PosixParseResult",
    "EMPTY",
    "parse_tz_string",
]

_LOGGER = logging.getLogger(__name__)

MAX_NAME_LENGTH = 44
MAX_ABBREVIATION_LENGTH = 7


class TimeZone(BaseModel):
    """A fixed UTC offset with a resolution of 15 minutes."""

    model_config = ConfigDict(frozen=True)

    offset: int = 0
    """Offset added to UTC to get local time, in units of 15 minutes."""

    @classmethod
    def from_hours(cls, hours: int, minutes: int = 0) -> Self:
        """Create a time zone from an offset in hours and minutes."""
        return cls.from_total_minutes(hours * 60 + minutes)

    @classmethod
    def from_total_minutes(cls, minutes: int) -> Self:
        """Create a time zone from an offset in minutes, truncated to 15 minutes."""
        return cls(offset=trunc_div(minutes, OFFSET_UNIT_MINUTES))

    @property
    def total_minutes(self) -> int:
        return self.offset * OFFSET_UNIT_MINUTES

    @property
    def hours(self) -> int:
        return trunc_div(self.total_minutes, 60)

    @property
    def minutes(self) -> int:
        """Minutes part of the offset, with the same sign as the hours."""
        return self.total_minutes - self.hours * 60

    @property
    def duration(self) -> Duration:
        return Duration.from_minutes(self.total_minutes)


class PosixParseResult(NamedTuple):
    """The result of parsing a POSIX TZ string."""

    info: TimezoneInfo
    """The parsed time zone, with the fields read before any error."""

    position: int
    """Characters consumed on success, otherwise the negated error position."""

    @property
    def ok(self) -> bool:
        return self.position > 0


class TimezoneInfo(BaseModel):
    """A time zone with its daylight saving rules and names."""

    model_config = ConfigDict(frozen=True)

    time_zone: TimeZone = TimeZone()
    """The standard offset from UTC."""

    dst: DSTAdjustment = NO_DST
    """The daylight saving time rules."""

    standard_name: str = Field(default="", max_length=MAX_NAME_LENGTH)
    """Display name of standard time, e.g. Central European Standard Time."""

    daylight_name: str = Field(default="", max_length=MAX_NAME_LENGTH)
    """Display name of daylight time."""

    key_name: str = Field(default="", max_length=MAX_NAME_LENGTH)
    """Identifier of the zone, e.g. Europe/Prague."""

    standard_abbreviation: str = Field(default="", max_length=MAX_ABBREVIATION_LENGTH)
    """Abbreviation of standard time, e.g. CET or <+01>."""

    daylight_abbreviation: str = Field(default="", max_length=MAX_ABBREVIATION_LENGTH)
    """Abbreviation of daylight time, e.g. CEST."""

    @classmethod
    def from_posix(cls, text: str) -> PosixParseResult:
        """Parse a POSIX TZ string such as CET-1CEST,M3.5.0,M10.5.0/3."""
        reader = PosixReader(text)
        try:
            reader.read()
        except PosixParseError as err:
            _LOGGER.debug("Failed to parse POSIX TZ string '%s': %s", text, err)
            return PosixParseResult(cls._from_reader(reader), -err.position)
        return PosixParseResult(cls._from_reader(reader), reader.pos)

    @classmethod
    def _from_reader(cls, reader: PosixReader) -> Self:
        dst = NO_DST
        if reader.start is not None and reader.end is not None:
            dst = DSTAdjustment.from_total_minutes(
                reader.start, reader.end, reader.dst_offset_minutes
            )
        return cls(
            time_zone=TimeZone.from_total_minutes(reader.standard_offset_minutes),
            dst=dst,
            standard_abbreviation=reader.standard_abbreviation,
            daylight_abbreviation=reader.daylight_abbreviation,
        )

    def _posix_tokens(self) -> list[str]:
        std_minutes = self.time_zone.total_minutes
        tokens = [
            self.standard_abbreviation or numeric_abbreviation(std_minutes),
            format_offset(-std_minutes),
        ]
        if self.dst.no_dst:
            return tokens
        dst_minutes = self.dst.dst_offset_total_minutes
        tokens.append(
            self.daylight_abbreviation or numeric_abbreviation(std_minutes + dst_minutes)
        )
        if dst_minutes != DEFAULT_DST_MINUTES:
            tokens.append(format_offset(-std_minutes - dst_minutes))
        tokens.append(format_rule(self.dst.start))
        tokens.append(format_rule(self.dst.end))
        return tokens

    def write_posix(self, buffer: bytearray, size: int | None = None) -> int:
        """Write the POSIX TZ string into a buffer, returning the terminator index.

        The size is the capacity of the buffer including the NUL terminator
        and defaults to the length of the buffer. When the string does not
        fit, it is cut after the last complete token.
        """
        writer = BufferWriter(buffer, size)
        for token in self._posix_tokens():
            if not writer.write(token):
                _LOGGER.debug("Buffer too small for POSIX TZ token '%s'", token)
                break
        return writer.terminate()

    def to_posix(self) -> str:
        """Return the POSIX TZ string."""
        return "".join(self._posix_tokens())

    @property
    def no_dst(self) -> bool:
        return self.dst.no_dst

    def is_dst(self, raw: int) -> bool:
        """Return True if DST is in effect at a raw instant in standard time."""
        return self.dst.check_dst_region(raw)

    def utc_offset_minutes(self, raw: int) -> int:
        """Return the total UTC offset in effect at a raw instant in standard time."""
        minutes = self.time_zone.total_minutes
        if self.is_dst(raw):
            minutes += self.dst.dst_offset_total_minutes
        return minutes

    def local_from_utc(self, raw_utc: int) -> int:
        """Return the raw local wall time for a raw UTC instant."""
        raw = raw_utc + self.time_zone.total_minutes * MINUTE
        if self.is_dst(raw):
            raw += self.dst.dst_offset_total_minutes * MINUTE
        return raw

    def abbreviation(self, is_dst: bool) -> str:
        """Return the abbreviation, or a quoted offset when there is none."""
        minutes = self.time_zone.total_minutes
        if is_dst and not self.dst.no_dst:
            return self.daylight_abbreviation or numeric_abbreviation(
                minutes + self.dst.dst_offset_total_minutes
            )
        return self.standard_abbreviation or numeric_abbreviation(minutes)


EMPTY = TimezoneInfo()


def parse_tz_string(text: str) -> TimezoneInfo:
    """Parse a complete POSIX TZ string, raising PosixParseError if invalid."""
    reader = PosixReader(text)
    reader.read()
    if reader.pos != len(text):
        raise PosixParseError(
            f"Unexpected trailing characters at position {reader.pos}",
            position=reader.pos,
            detailed_error=text[reader.pos :],
        )
    return TimezoneInfo._from_reader(reader)
