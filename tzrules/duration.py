"""A signed duration with microsecond resolution.

Durations are used for timezone and DST offsets. The value is stored as a
raw count of microseconds and the unit helpers convert from and to the
larger units. Text rendering is limited to the ISO 8601 duration format
(e.g. `-P1DT2H30M`).
"""

from __future__ import annotations

import datetime
import re
from dataclasses import dataclass
from typing import NamedTuple

from .calendar import (
    DAY,
    HOUR,
    MICROSECOND,
    MILLISECOND,
    MINUTE,
    SECOND,
    trunc_div,
)

__all__ = [
    "Duration",
    "DurationComponents",
]

_DATE_PART = r"(\d+)D"
_TIME_PART = r"T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)(?:\.(\d{1,6}))?S)?"
_WEEKS_PART = r"(\d+)W"
_DURATION_REGEX = re.compile(
    f"([-+]?)P(?:{_WEEKS_PART}|(?:{_DATE_PART})?(?:{_TIME_PART})?)"
)


class DurationComponents(NamedTuple):
    """The absolute fields of a duration along with its sign."""

    negative: bool
    days: int
    hours: int
    minutes: int
    seconds: int
    milliseconds: int
    microseconds: int


@dataclass(frozen=True, order=True)
class Duration:
    """A signed count of microseconds."""

    raw: int = 0

    @classmethod
    def from_days(cls, days: int) -> Duration:
        return cls(days * DAY)

    @classmethod
    def from_hours(cls, hours: int) -> Duration:
        return cls(hours * HOUR)

    @classmethod
    def from_minutes(cls, minutes: int) -> Duration:
        return cls(minutes * MINUTE)

    @classmethod
    def from_seconds(cls, seconds: int) -> Duration:
        return cls(seconds * SECOND)

    @classmethod
    def from_milliseconds(cls, milliseconds: int) -> Duration:
        return cls(milliseconds * MILLISECOND)

    @classmethod
    def from_microseconds(cls, microseconds: int) -> Duration:
        return cls(microseconds * MICROSECOND)

    @classmethod
    def from_timedelta(cls, value: datetime.timedelta) -> Duration:
        """Create a duration from a python timedelta."""
        return cls((value.days * 86400 + value.seconds) * SECOND + value.microseconds)

    def to_timedelta(self) -> datetime.timedelta:
        """Return the duration as a python timedelta."""
        return datetime.timedelta(microseconds=self.raw)

    @property
    def is_negative(self) -> bool:
        return self.raw < 0

    @property
    def total_days(self) -> int:
        """Whole days in the duration, truncated toward zero."""
        return trunc_div(self.raw, DAY)

    @property
    def total_hours(self) -> int:
        """Whole hours in the duration, truncated toward zero."""
        return trunc_div(self.raw, HOUR)

    @property
    def total_minutes(self) -> int:
        """Whole minutes in the duration, truncated toward zero."""
        return trunc_div(self.raw, MINUTE)

    @property
    def total_seconds(self) -> int:
        """Whole seconds in the duration, truncated toward zero."""
        return trunc_div(self.raw, SECOND)

    def components(self) -> DurationComponents:
        """Split the absolute value of the duration into its fields."""
        value = abs(self.raw)
        days, value = divmod(value, DAY)
        hours, value = divmod(value, HOUR)
        minutes, value = divmod(value, MINUTE)
        seconds, value = divmod(value, SECOND)
        milliseconds, microseconds = divmod(value, MILLISECOND)
        return DurationComponents(
            self.raw < 0, days, hours, minutes, seconds, milliseconds, microseconds
        )

    def __add__(self, other: object) -> Duration:
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration(self.raw + other.raw)

    def __sub__(self, other: object) -> Duration:
        if not isinstance(other, Duration):
            return NotImplemented
        return Duration(self.raw - other.raw)

    def __neg__(self) -> Duration:
        return Duration(-self.raw)

    def __abs__(self) -> Duration:
        return Duration(abs(self.raw))

    def __bool__(self) -> bool:
        return self.raw != 0

    def isoformat(self) -> str:
        """Serialize the duration as an ISO 8601 duration string."""
        parts = []
        comp = self.components()
        if comp.negative:
            parts.append("-")
        parts.append("P")
        if comp.days:
            parts.append(f"{comp.days}D")
        fraction = comp.milliseconds * 1000 + comp.microseconds
        if comp.hours or comp.minutes or comp.seconds or fraction:
            parts.append("T")
            if comp.hours:
                parts.append(f"{comp.hours}H")
            if comp.minutes:
                parts.append(f"{comp.minutes}M")
            if fraction:
                parts.append(f"{comp.seconds}.{fraction:06}".rstrip("0") + "S")
            elif comp.seconds:
                parts.append(f"{comp.seconds}S")
        if parts[-1] == "P":
            parts.append("T0S")
        return "".join(parts)

    @classmethod
    def fromisoformat(cls, value: str) -> Duration:
        """Parse an ISO 8601 duration string."""
        match = _DURATION_REGEX.fullmatch(value)
        # At least one component is required, "P" and "PT" are not durations
        if not match or not any(match.groups()[1:]):
            raise ValueError(f"Expected value to match DURATION pattern: {value}")
        sign, weeks, days, hours, minutes, seconds, fraction = match.groups()
        if weeks:
            raw = int(weeks) * 7 * DAY
        else:
            raw = (
                int(days or 0) * DAY
                + int(hours or 0) * HOUR
                + int(minutes or 0) * MINUTE
                + int(seconds or 0) * SECOND
                + int((fraction or "").ljust(6, "0"))
            )
        if sign == "-":
            raw = -raw
        return cls(raw)

    def __str__(self) -> str:
        return self.isoformat()
