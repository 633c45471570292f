"""A `datetime.tzinfo` implementation backed by a `TimezoneInfo`.

The rules of the time zone are applied for all time, there is no
historical information. Ambiguous and missing wall times around a
transition are resolved with the PEP 495 `fold` attribute: in the repeated
hour after DST ends, fold=0 is the DST occurrence and fold=1 the standard
one. In the skipped hour when DST starts, fold=0 uses the standard offset
and fold=1 the DST offset.

A negative DST offset (e.g. Europe/Dublin, IST-1GMT0) moves the repeated
hour to the start of DST and the skipped hour to its end. fold=0 is still
the earlier reading of the wall time: standard time in the repeated hour
and DST in the skipped one.
"""

from __future__ import annotations

import datetime
import logging

from .calendar import MINUTE, datetime_from_raw, raw_from_datetime
from .timezone import TimezoneInfo, parse_tz_string

__all__ = [
    "TzInfo",
]

_LOGGER = logging.getLogger(__name__)

_ZERO = datetime.timedelta(0)


class TzInfo(datetime.tzinfo):
    """An implementation of tzinfo based on a TimezoneInfo."""

    def __init__(self, info: TimezoneInfo) -> None:
        """Initialize TzInfo."""
        self._info = info

    @classmethod
    def from_posix(cls, text: str) -> TzInfo:
        """Create a new instance from a POSIX TZ string."""
        return cls(parse_tz_string(text))

    @property
    def info(self) -> TimezoneInfo:
        return self._info

    def _is_dst(self, dt: datetime.datetime) -> bool:
        """Return True if the wall time of the datetime is in DST."""
        if self._info.no_dst:
            return False
        raw = raw_from_datetime(dt)
        offset = self._info.dst.dst_offset_total_minutes * MINUTE
        as_dst = self._info.is_dst(raw - offset)
        as_std = not self._info.is_dst(raw)
        if as_dst != as_std:
            return as_dst
        # With a negative offset the clocks go back when DST starts, so
        # standard time is the first occurrence of a repeated wall time and
        # DST is in effect before a skipped one.
        dst_first = offset > 0
        if as_dst:
            # Repeated wall time
            return (dt.fold == 0) == dst_first
        # Skipped wall time
        return (dt.fold == 1) == dst_first

    def utcoffset(self, dt: datetime.datetime | None) -> datetime.timedelta:
        """Return offset of local time from UTC, as a timedelta object."""
        result = self._info.time_zone.duration.to_timedelta()
        if dt is None:
            return result
        if dst_offset := self.dst(dt):
            result += dst_offset
        return result

    def dst(self, dt: datetime.datetime | None) -> datetime.timedelta | None:
        """Return the daylight saving time (DST) adjustment, if applicable."""
        if dt is None:
            return None
        if self._is_dst(dt):
            return self._info.dst.dst_offset.to_timedelta()
        return _ZERO

    def tzname(self, dt: datetime.datetime | None) -> str | None:
        """Return the abbreviation of the time zone for the datetime."""
        if dt is None:
            return None
        return self._info.abbreviation(self._is_dst(dt))

    def fromutc(self, dt: datetime.datetime) -> datetime.datetime:
        """Convert a datetime in UTC to local time, setting fold when ambiguous."""
        if dt.tzinfo is not self:
            raise ValueError("fromutc: dt.tzinfo is not self")
        std_raw = raw_from_datetime(dt) + self._info.time_zone.total_minutes * MINUTE
        offset = self._info.dst.dst_offset_total_minutes * MINUTE
        fold = 0
        if self._info.is_dst(std_raw):
            local_raw = std_raw + offset
            # Second occurrence when the clocks went back as DST started
            if offset < 0 and not self._info.is_dst(local_raw):
                fold = 1
        else:
            local_raw = std_raw
            # Second occurrence when the clocks went back as DST ended
            if offset > 0 and self._info.is_dst(local_raw - offset):
                fold = 1
        _LOGGER.debug("Converted %s from UTC with fold=%d", dt, fold)
        return datetime_from_raw(local_raw).replace(tzinfo=self, fold=fold)

    def __str__(self) -> str:
        """Return the string representation of the timezone."""
        return self._info.key_name or self._info.to_posix()

    def __repr__(self) -> str:
        """Return the string representation of the timezone."""
        return f"TzInfo({self._info.to_posix()})"
