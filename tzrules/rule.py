"""Transition rules describing when in a year a DST transition happens.

A rule is one of four variants:

  Fixed: A zero based day of the year (0-365), leap days counted.
  Date: A day of a month, e.g. the 15th of March.
  Floating: The nth occurrence of a weekday in a month, e.g. the second
    Sunday of March or the last Sunday of October.
  NoDST: No rule at all.

Every variant carries the hour of day (0-23) the transition takes effect and
a signed number of days added to the resolved date. Rules can be packed into
a 24-bit integer for compact storage:

  bits  0-1   rule type
  bits  2-11  variant payload
                Fixed: day of year [2:11]
                Date: month [2:5], day of month [6:11]
                Floating: month [2:5], day of week [6:8], week of month [9:11]
  bits 12-14  days offset magnitude
  bit  15     days offset sign
  bits 16-21  hour of day

The days offset uses a sign-magnitude encoding where a negative value v is
stored as the magnitude -1-v, so the representable range is -8 to +7.
Values outside of that range are truncated when packed.
"""

from __future__ import annotations

import abc
import datetime
import enum
import logging
from typing import Annotated, Literal, Self, Union

from dateutil import rrule
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .calendar import (
    DAY,
    HOUR,
    day_of_week_from_days,
    day_of_year_from_month,
    days_until_year,
    is_leap_year,
    month_length,
)

__all__ = [
    "RuleType",
    "Month",
    "DayOfWeek",
    "WeekOfMonth",
    "FixedRule",
    "DateRule",
    "FloatingRule",
    "NoDSTRule",
    "TransitionRule",
    "NO_DST_RULE",
    "MIN_DAYS_OFFSET",
    "MAX_DAYS_OFFSET",
    "fixed_rule",
    "date_rule",
    "floating_rule",
    "encode_days_offset",
    "decode_days_offset",
    "pack_rule",
    "unpack_rule",
]

_LOGGER = logging.getLogger(__name__)

MIN_DAYS_OFFSET = -8
MAX_DAYS_OFFSET = 7

_TYPE_MASK = 0x3
_DAY_OF_YEAR_SHIFT = 2
_DAY_OF_YEAR_MASK = 0x3FF
_MONTH_SHIFT = 2
_MONTH_MASK = 0xF
_DAY_OF_MONTH_SHIFT = 6
_DAY_OF_MONTH_MASK = 0x3F
_DAY_OF_WEEK_SHIFT = 6
_DAY_OF_WEEK_MASK = 0x7
_WEEK_OF_MONTH_SHIFT = 9
_WEEK_OF_MONTH_MASK = 0x7
_DAYS_OFFSET_SHIFT = 12
_DAYS_OFFSET_MAGNITUDE_MASK = 0x7
_DAYS_OFFSET_SIGN = 0x8
_HOUR_SHIFT = 16
_HOUR_MASK = 0x3F


class RuleType(enum.IntEnum):
    """The variant of a transition rule, as stored in the packed type tag."""

    FIXED = 0
    DATE = 1
    FLOATING = 2
    NO_DST = 3


class Month(enum.IntEnum):
    """Month of the year."""

    JANUARY = 1
    FEBRUARY = 2
    MARCH = 3
    APRIL = 4
    MAY = 5
    JUNE = 6
    JULY = 7
    AUGUST = 8
    SEPTEMBER = 9
    OCTOBER = 10
    NOVEMBER = 11
    DECEMBER = 12


class DayOfWeek(enum.IntEnum):
    """Day of the week, starting with Sunday."""

    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7

    @property
    def rrule_weekday(self) -> rrule.weekday:
        """Return the dateutil weekday, which starts the week on Monday."""
        return rrule.weekdays[(self.value - 2) % 7]


class WeekOfMonth(enum.IntEnum):
    """Occurrence of a weekday within a month."""

    FIRST = 1
    SECOND = 2
    THIRD = 3
    FOURTH = 4
    LAST = 5


def encode_days_offset(value: int) -> int:
    """Encode a signed days offset into the 4-bit sign-magnitude field."""
    if value < 0:
        return _DAYS_OFFSET_SIGN | ((-1 - value) & _DAYS_OFFSET_MAGNITUDE_MASK)
    return value & _DAYS_OFFSET_MAGNITUDE_MASK


def decode_days_offset(field: int) -> int:
    """Decode the 4-bit sign-magnitude field into a signed days offset."""
    magnitude = field & _DAYS_OFFSET_MAGNITUDE_MASK
    if field & _DAYS_OFFSET_SIGN:
        return -magnitude - 1
    return magnitude


class _BaseRule(BaseModel):
    """Fields shared by all rule variants, never instantiated directly."""

    model_config = ConfigDict(frozen=True)

    transition_time: int = 0
    """Hour of the day (0-23) in local time when the transition takes effect."""

    days_offset: int = 0
    """Number of days added to the resolved date, between -8 and 7."""

    @field_validator("transition_time", mode="before")
    @classmethod
    def _normalize_hour(cls, value: int) -> int:
        """Normalize the hour to a 24 hour clock."""
        return int(value) % 24

    @property
    @abc.abstractmethod
    def rule_type(self) -> RuleType:
        """The variant of the rule."""

    def with_days_offset(self, days_offset: int) -> Self:
        """Return a copy of the rule with a new days offset."""
        return self.model_copy(update={"days_offset": days_offset})

    def with_transition_time(self, hour: int) -> Self:
        """Return a copy of the rule taking effect at a new hour of the day."""
        return self.model_copy(update={"transition_time": hour % 24})

    @abc.abstractmethod
    def resolve_day_of_year(self, days_until_first_day_of_year: int, is_leap: bool) -> int:
        """Return the zero based day of year of the transition.

        The caller provides the days from the epoch to the 1st of January of
        the year and whether it is a leap year, so a rule can be resolved
        without recomputing the calendar context.
        """

    def day_of_year_of_transition(self, year: int) -> int:
        """Return the zero based day of year of the transition in the year."""
        return self.resolve_day_of_year(days_until_year(year), is_leap_year(year))

    def date_of_transition_raw(self, year: int) -> int:
        """Return the raw instant of the transition in the year."""
        days = days_until_year(year) + self.day_of_year_of_transition(year)
        return days * DAY + self.transition_time * HOUR

    def pack(self) -> int:
        """Return the rule packed into its 24-bit storage form."""
        return (
            int(self.rule_type)
            | self._pack_payload()
            | encode_days_offset(self.days_offset) << _DAYS_OFFSET_SHIFT
            | (self.transition_time & _HOUR_MASK) << _HOUR_SHIFT
        )

    def _pack_payload(self) -> int:
        return 0

    def as_rrule(self, dtstart: datetime.datetime | None = None) -> rrule.rrule:
        """Return a yearly recurrence rule for this transition."""
        if self.days_offset:
            raise ValueError(
                f"Rule with a days offset can't be a recurrence rule: {self.days_offset}"
            )
        if dtstart:
            dtstart = dtstart.replace(
                hour=0, minute=0, second=0, microsecond=0
            ) + datetime.timedelta(hours=self.transition_time)
        return rrule.rrule(freq=rrule.YEARLY, dtstart=dtstart, **self._rrule_kwargs())

    @property
    def rrule_str(self) -> str:
        """Return a recurrence rule string for this transition."""
        if self.days_offset:
            raise ValueError(
                f"Rule with a days offset can't be a recurrence rule: {self.days_offset}"
            )
        return ";".join(["FREQ=YEARLY", *self._rrule_parts()])

    def _rrule_kwargs(self) -> dict[str, object]:
        raise ValueError(f"Rule has no recurrence: {self.rule_type.name}")

    def _rrule_parts(self) -> list[str]:
        raise ValueError(f"Rule has no recurrence: {self.rule_type.name}")


class FixedRule(_BaseRule):
    """A transition on a zero based day of the year, leap days counted."""

    kind: Literal["fixed"] = "fixed"

    day_of_year: int = Field(ge=0, le=365)
    """Zero based day of the year, between 0 and 365."""

    @property
    def rule_type(self) -> RuleType:
        return RuleType.FIXED

    def resolve_day_of_year(self, days_until_first_day_of_year: int, is_leap: bool) -> int:
        return self.day_of_year + self.days_offset

    def _pack_payload(self) -> int:
        return (self.day_of_year & _DAY_OF_YEAR_MASK) << _DAY_OF_YEAR_SHIFT

    def _rrule_kwargs(self) -> dict[str, object]:
        return {"byyearday": self.day_of_year + 1}

    def _rrule_parts(self) -> list[str]:
        return [f"BYYEARDAY={self.day_of_year + 1}"]


class DateRule(_BaseRule):
    """A transition on a day of a month."""

    kind: Literal["date"] = "date"

    month: Month
    """The month of the transition."""

    day_of_month: int = Field(ge=1, le=31)
    """Day of the month, between 1 and 31."""

    @property
    def rule_type(self) -> RuleType:
        return RuleType.DATE

    def resolve_day_of_year(self, days_until_first_day_of_year: int, is_leap: bool) -> int:
        month_start = day_of_year_from_month(self.month, is_leap)
        return month_start + self.day_of_month - 1 + self.days_offset

    def _pack_payload(self) -> int:
        return (self.month & _MONTH_MASK) << _MONTH_SHIFT | (
            self.day_of_month & _DAY_OF_MONTH_MASK
        ) << _DAY_OF_MONTH_SHIFT

    def _rrule_kwargs(self) -> dict[str, object]:
        return {"bymonth": int(self.month), "bymonthday": self.day_of_month}

    def _rrule_parts(self) -> list[str]:
        return [f"BYMONTH={int(self.month)}", f"BYMONTHDAY={self.day_of_month}"]


class FloatingRule(_BaseRule):
    """A transition on the nth occurrence of a weekday in a month."""

    kind: Literal["floating"] = "floating"

    month: Month
    """The month of the transition."""

    day_of_week: DayOfWeek
    """The weekday of the transition."""

    week_of_month: WeekOfMonth
    """Which occurrence of the weekday in the month, or the last one."""

    @property
    def rule_type(self) -> RuleType:
        return RuleType.FLOATING

    def resolve_day_of_year(self, days_until_first_day_of_year: int, is_leap: bool) -> int:
        month_start = day_of_year_from_month(self.month, is_leap)
        first_day_of_week = day_of_week_from_days(
            days_until_first_day_of_year + month_start
        )
        weekday_offset = (self.day_of_week - first_day_of_week) % 7
        day = (self.week_of_month - 1) * 7 + weekday_offset
        if day >= month_length(self.month, is_leap):
            # No fifth occurrence this month, use the fourth
            day = 3 * 7 + weekday_offset
        return month_start + day + self.days_offset

    def _pack_payload(self) -> int:
        return (
            (self.month & _MONTH_MASK) << _MONTH_SHIFT
            | (self.day_of_week & _DAY_OF_WEEK_MASK) << _DAY_OF_WEEK_SHIFT
            | (self.week_of_month & _WEEK_OF_MONTH_MASK) << _WEEK_OF_MONTH_SHIFT
        )

    @property
    def _rrule_occurrence(self) -> int:
        """Return the byday modifier for the week of the month."""
        if self.week_of_month == WeekOfMonth.LAST:
            return -1
        return int(self.week_of_month)

    def _rrule_kwargs(self) -> dict[str, object]:
        return {
            "bymonth": int(self.month),
            "byweekday": self.day_of_week.rrule_weekday(self._rrule_occurrence),
        }

    def _rrule_parts(self) -> list[str]:
        return [
            f"BYMONTH={int(self.month)}",
            f"BYDAY={self._rrule_occurrence}{self.day_of_week.rrule_weekday}",
        ]


class NoDSTRule(_BaseRule):
    """The absence of a transition."""

    kind: Literal["no_dst"] = "no_dst"

    @property
    def rule_type(self) -> RuleType:
        return RuleType.NO_DST

    def resolve_day_of_year(self, days_until_first_day_of_year: int, is_leap: bool) -> int:
        return 0

    def date_of_transition_raw(self, year: int) -> int:
        return 0


TransitionRule = Annotated[
    Union[FixedRule, DateRule, FloatingRule, NoDSTRule],
    Field(discriminator="kind"),
]

_RULE_ADAPTER: TypeAdapter[TransitionRule] = TypeAdapter(TransitionRule)

_KINDS = {
    RuleType.FIXED: "fixed",
    RuleType.DATE: "date",
    RuleType.FLOATING: "floating",
    RuleType.NO_DST: "no_dst",
}

NO_DST_RULE = NoDSTRule()


def fixed_rule(hour: int, day_of_year: int, days_offset: int = 0) -> FixedRule:
    """Create a rule for a zero based day of the year."""
    return FixedRule(
        transition_time=hour, day_of_year=day_of_year, days_offset=days_offset
    )


def date_rule(
    hour: int, month: int, day_of_month: int, days_offset: int = 0
) -> DateRule:
    """Create a rule for a day of a month shifted by a number of days."""
    return DateRule(
        transition_time=hour,
        month=month,
        day_of_month=day_of_month,
        days_offset=days_offset,
    )


def floating_rule(
    hour: int,
    month: int,
    day_of_week: int,
    week_of_month: int,
    days_offset: int = 0,
) -> FloatingRule:
    """Create a rule for the nth occurrence of a weekday in a month."""
    return FloatingRule(
        transition_time=hour,
        month=month,
        day_of_week=day_of_week,
        week_of_month=week_of_month,
        days_offset=days_offset,
    )


def pack_rule(rule: TransitionRule) -> int:
    """Pack a rule into its 24-bit storage form."""
    return rule.pack()


def unpack_rule(value: int) -> TransitionRule:
    """Unpack a rule from its 24-bit storage form.

    A payload outside of the valid range for its variant, such as month 13,
    raises a pydantic ValidationError.
    """
    rule_type = RuleType(value & _TYPE_MASK)
    fields: dict[str, object] = {
        "kind": _KINDS[rule_type],
        "transition_time": (value >> _HOUR_SHIFT) & _HOUR_MASK,
        "days_offset": decode_days_offset(value >> _DAYS_OFFSET_SHIFT),
    }
    if rule_type == RuleType.FIXED:
        fields["day_of_year"] = (value >> _DAY_OF_YEAR_SHIFT) & _DAY_OF_YEAR_MASK
    elif rule_type == RuleType.DATE:
        fields["month"] = (value >> _MONTH_SHIFT) & _MONTH_MASK
        fields["day_of_month"] = (value >> _DAY_OF_MONTH_SHIFT) & _DAY_OF_MONTH_MASK
    elif rule_type == RuleType.FLOATING:
        fields["month"] = (value >> _MONTH_SHIFT) & _MONTH_MASK
        fields["day_of_week"] = (value >> _DAY_OF_WEEK_SHIFT) & _DAY_OF_WEEK_MASK
        fields["week_of_month"] = (
            value >> _WEEK_OF_MONTH_SHIFT
        ) & _WEEK_OF_MONTH_MASK
    _LOGGER.debug("Unpacked rule 0x%06x as %s", value, fields)
    return _RULE_ADAPTER.validate_python(fields)
