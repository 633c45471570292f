"""Daylight saving time adjustments.

A `DSTAdjustment` combines a start rule (standard time to DST) and an end
rule (DST to standard time) with the amount of time added while DST is in
effect. The start rule is expressed in standard time and the end rule in
DST-shifted time, matching how the POSIX TZ grammar and most regional
legislation describe the transitions.

When the start of DST precedes its end within a calendar year, DST occupies
the middle of the year (northern hemisphere). Otherwise DST wraps across the
new year (southern hemisphere). The two patterns flip the activity test.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import NamedTuple, Self

from pydantic import BaseModel, ConfigDict

from .calendar import (
    DAY,
    HOUR,
    MINUTE,
    days_until_year,
    is_leap_year,
    trunc_div,
    year_from_raw,
)
from .duration import Duration
from .rule import (
    NO_DST_RULE,
    DayOfWeek,
    Month,
    RuleType,
    TransitionRule,
    WeekOfMonth,
    floating_rule,
)

__all__ = [
    "DSTAdjustment",
    "NextTransition",
    "NO_DST",
    "NORTH_AMERICA",
    "CUBA",
    "MEXICO",
    "WESTERN_EUROPE",
    "CENTRAL_EUROPE",
    "EASTERN_EUROPE",
    "GREENLAND",
    "MOLDOVA",
    "ISRAEL",
    "LEBANON",
    "PALESTINE",
    "SYRIA",
    "JORDAN",
    "CHILE",
    "PARAGUAY",
    "AUSTRALIA",
    "AUSTRALIA_LORD_HOWE_ISLAND",
    "NEW_ZEALAND",
    "REGIONS",
]

_LOGGER = logging.getLogger(__name__)

OFFSET_UNIT_MINUTES = 15


class NextTransition(NamedTuple):
    """The instant of the next transition and the state it switches to."""

    instant: int
    """Raw instant in standard time, or 0 if there is no next transition."""

    next_is_dst: bool
    """True if DST starts at the instant, False if it ends."""


class _YearContext(NamedTuple):
    """Both transitions of one year resolved to days and instants."""

    days_until: int
    is_leap: bool
    start_day: int
    end_day: int
    start_instant: int
    end_instant: int


class DSTAdjustment(BaseModel):
    """A pair of transition rules and the offset applied between them."""

    model_config = ConfigDict(frozen=True)

    start: TransitionRule = NO_DST_RULE
    """Rule for the transition into DST, in standard time."""

    end: TransitionRule = NO_DST_RULE
    """Rule for the transition out of DST, in DST-shifted time."""

    offset: int = 0
    """Time added during DST in units of 15 minutes."""

    is_dst: bool = False
    """Whether DST is the presently observed state, informational only."""

    @classmethod
    def from_hours(
        cls,
        start: TransitionRule,
        end: TransitionRule,
        hours: int,
        minutes: int = 0,
        is_dst: bool = False,
    ) -> Self:
        """Create an adjustment with an offset in hours and minutes."""
        return cls.from_total_minutes(start, end, hours * 60 + minutes, is_dst)

    @classmethod
    def from_total_minutes(
        cls,
        start: TransitionRule,
        end: TransitionRule,
        minutes: int,
        is_dst: bool = False,
    ) -> Self:
        """Create an adjustment with an offset in minutes, truncated to 15 minutes."""
        return cls(
            start=start,
            end=end,
            offset=trunc_div(minutes, OFFSET_UNIT_MINUTES),
            is_dst=is_dst,
        )

    @property
    def no_dst(self) -> bool:
        """Return True if the adjustment never applies DST."""
        return (
            self.start.rule_type == RuleType.NO_DST
            or self.end.rule_type == RuleType.NO_DST
            or self.offset == 0
        )

    @property
    def dst_offset_total_minutes(self) -> int:
        return self.offset * OFFSET_UNIT_MINUTES

    @property
    def dst_offset_hours(self) -> int:
        return trunc_div(self.dst_offset_total_minutes, 60)

    @property
    def dst_offset_minutes(self) -> int:
        """Minutes part of the offset, with the same sign as the hours."""
        return self.dst_offset_total_minutes - self.dst_offset_hours * 60

    @property
    def dst_offset(self) -> Duration:
        return Duration.from_minutes(self.dst_offset_total_minutes)

    def with_offset_minutes(self, minutes: int) -> Self:
        """Return a copy with a new offset in minutes, truncated to 15 minutes."""
        return self.model_copy(
            update={"offset": trunc_div(minutes, OFFSET_UNIT_MINUTES)}
        )

    def with_is_dst(self, is_dst: bool) -> Self:
        """Return a copy with a new presently observed state."""
        return self.model_copy(update={"is_dst": is_dst})

    def with_start(self, start: TransitionRule) -> Self:
        return self.model_copy(update={"start": start})

    def with_end(self, end: TransitionRule) -> Self:
        return self.model_copy(update={"end": end})

    def _resolve_year(self, year: int) -> _YearContext:
        days_until = days_until_year(year)
        is_leap = is_leap_year(year)
        start_day = self.start.resolve_day_of_year(days_until, is_leap)
        end_day = self.end.resolve_day_of_year(days_until, is_leap)
        return _YearContext(
            days_until,
            is_leap,
            start_day,
            end_day,
            (days_until + start_day) * DAY + self.start.transition_time * HOUR,
            (days_until + end_day) * DAY + self.end.transition_time * HOUR,
        )

    def check_dst_region(self, raw: int) -> bool:
        """Return True if DST is in effect at a raw instant in standard time.

        The end rule is compared against the instant shifted by the DST
        offset since it is expressed in DST-shifted time. Both rules are
        resolved for the year of the unshifted instant.
        """
        if self.no_dst:
            return False
        ctx = self._resolve_year(year_from_raw(raw))
        over_start = raw >= ctx.start_instant
        over_end = raw + self.dst_offset_total_minutes * MINUTE >= ctx.end_instant
        if ctx.start_day < ctx.end_day:
            return over_start != over_end
        return over_start == over_end

    def next_transition(self, raw: int) -> NextTransition:
        """Return the first transition after a raw instant in standard time.

        The returned instant is in standard time as well: the end transition
        is shifted back by the DST offset, so `check_dst_region` changes its
        result exactly at the returned instant. Returns an instant of 0 when
        there is no DST or when DST covers the whole year.
        """
        if self.no_dst:
            return NextTransition(0, False)
        year = year_from_raw(raw)
        ctx = self._resolve_year(year)
        offset = self.dst_offset_total_minutes * MINUTE
        over_start = raw >= ctx.start_instant
        over_end = raw + offset >= ctx.end_instant

        start_minutes = (
            ctx.start_day * 24 + self.start.transition_time
        ) * 60
        end_minutes = (
            ctx.end_day * 24 + self.end.transition_time
        ) * 60 - self.dst_offset_total_minutes
        minutes_per_year = (366 if ctx.is_leap else 365) * 24 * 60

        next_year = year + 1
        if next_year == 0:
            next_year = 1

        if ctx.start_day < ctx.end_day:
            if end_minutes - start_minutes >= minutes_per_year:
                _LOGGER.debug("DST covers the whole year %d", year)
                return NextTransition(0, False)
            if not over_start:
                return NextTransition(ctx.start_instant, True)
            if not over_end:
                return NextTransition(ctx.end_instant - offset, False)
            return NextTransition(self.start.date_of_transition_raw(next_year), True)

        if start_minutes - end_minutes >= minutes_per_year:
            _LOGGER.debug("DST covers the whole year %d", year)
            return NextTransition(0, False)
        if not over_end:
            return NextTransition(ctx.end_instant - offset, False)
        if not over_start:
            return NextTransition(ctx.start_instant, True)
        return NextTransition(
            self.end.date_of_transition_raw(next_year) - offset, False
        )


def _region(
    start: tuple[int, Month, DayOfWeek, WeekOfMonth, int],
    end: tuple[int, Month, DayOfWeek, WeekOfMonth, int],
    hours: int = 1,
    minutes: int = 0,
) -> DSTAdjustment:
    return DSTAdjustment.from_hours(
        floating_rule(*start), floating_rule(*end), hours, minutes
    )


_SUN = DayOfWeek.SUNDAY
_THU = DayOfWeek.THURSDAY
_FRI = DayOfWeek.FRIDAY
_SAT = DayOfWeek.SATURDAY
_FIRST = WeekOfMonth.FIRST
_SECOND = WeekOfMonth.SECOND
_FOURTH = WeekOfMonth.FOURTH
_LAST = WeekOfMonth.LAST

NO_DST = DSTAdjustment()

NORTH_AMERICA = _region(
    (2, Month.MARCH, _SUN, _SECOND, 0), (2, Month.NOVEMBER, _SUN, _FIRST, 0)
)
CUBA = _region(
    (0, Month.MARCH, _SUN, _SECOND, 0), (1, Month.NOVEMBER, _SUN, _FIRST, 0)
)
MEXICO = _region(
    (2, Month.APRIL, _SUN, _FIRST, 0), (2, Month.OCTOBER, _SUN, _LAST, 0)
)
WESTERN_EUROPE = _region(
    (1, Month.MARCH, _SUN, _LAST, 0), (2, Month.OCTOBER, _SUN, _LAST, 0)
)
CENTRAL_EUROPE = _region(
    (2, Month.MARCH, _SUN, _LAST, 0), (3, Month.OCTOBER, _SUN, _LAST, 0)
)
EASTERN_EUROPE = _region(
    (3, Month.MARCH, _SUN, _LAST, 0), (4, Month.OCTOBER, _SUN, _LAST, 0)
)
GREENLAND = _region(
    (22, Month.MARCH, _SUN, _LAST, -1), (23, Month.OCTOBER, _SUN, _LAST, -1)
)
MOLDOVA = _region(
    (2, Month.MARCH, _SUN, _LAST, 0), (3, Month.OCTOBER, _SUN, _LAST, 0)
)
ISRAEL = _region(
    (2, Month.MARCH, _SUN, _LAST, -2), (2, Month.OCTOBER, _SUN, _LAST, 0)
)
LEBANON = _region(
    (0, Month.MARCH, _SUN, _LAST, -2), (0, Month.OCTOBER, _SUN, _LAST, 0)
)
PALESTINE = _region(
    (0, Month.MARCH, _SUN, _LAST, -2), (1, Month.OCTOBER, _FRI, _LAST, 0)
)
SYRIA = _region(
    (0, Month.MARCH, _FRI, _LAST, -2), (0, Month.OCTOBER, _FRI, _LAST, 0)
)
JORDAN = _region(
    (0, Month.FEBRUARY, _THU, _LAST, -2), (1, Month.OCTOBER, _FRI, _LAST, 0)
)
CHILE = _region(
    (0, Month.SEPTEMBER, _SAT, _FIRST, -2), (0, Month.APRIL, _SAT, _FIRST, 0)
)
PARAGUAY = _region(
    (0, Month.OCTOBER, _SUN, _FIRST, -2), (0, Month.MARCH, _SUN, _FOURTH, 0)
)
AUSTRALIA = _region(
    (2, Month.OCTOBER, _SUN, _FIRST, -2), (3, Month.APRIL, _SUN, _FIRST, 0)
)
AUSTRALIA_LORD_HOWE_ISLAND = _region(
    (2, Month.OCTOBER, _SUN, _FIRST, -2),
    (2, Month.APRIL, _SUN, _FIRST, 0),
    hours=0,
    minutes=30,
)
NEW_ZEALAND = _region(
    (2, Month.SEPTEMBER, _SUN, _LAST, -2), (2, Month.APRIL, _SUN, _FIRST, 0)
)

REGIONS: MappingProxyType[str, DSTAdjustment] = MappingProxyType(
    {
        "north_america": NORTH_AMERICA,
        "cuba": CUBA,
        "mexico": MEXICO,
        "western_europe": WESTERN_EUROPE,
        "central_europe": CENTRAL_EUROPE,
        "eastern_europe": EASTERN_EUROPE,
        "greenland": GREENLAND,
        "moldova": MOLDOVA,
        "israel": ISRAEL,
        "lebanon": LEBANON,
        "palestine": PALESTINE,
        "syria": SYRIA,
        "jordan": JORDAN,
        "chile": CHILE,
        "paraguay": PARAGUAY,
        "australia": AUSTRALIA,
        "australia_lord_howe_island": AUSTRALIA_LORD_HOWE_ISLAND,
        "new_zealand": NEW_ZEALAND,
    }
)
"""The predefined regional adjustments keyed by region name."""
