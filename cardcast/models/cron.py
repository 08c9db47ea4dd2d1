"""Validated cron expressions and the schedule units built from them.

Expressions follow the standard five-field crontab dialect:

* weekdays count from Sunday (``0``) to Saturday (``6``)
* ``N/step`` means ``N-max/step``
* ``?`` is a synonym for ``*``
* when both day-of-month and day-of-week are restricted, a day matching
  either field fires

The ``@yearly``, ``@annually``, ``@monthly``, ``@weekly``, ``@daily``,
``@midnight`` and ``@hourly`` descriptors, ``@every <duration>`` and a leading
``CRON_TZ=<zone>`` (or ``TZ=<zone>``) are accepted as well.

Every field is expanded to the explicit values it selects before it reaches
APScheduler, whose own weekday numbering starts on Monday.

Usage
-----
>>> expr = parse_cron("0  9 * * 1-5")
>>> str(expr)
'0 9 * * 1-5'
>>> parse_cron(str(expr)) == expr
True

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ
import zoneinfo

from apscheduler.triggers.combining import OrTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from cardcast.common.time import parse_duration
from cardcast.models.errors import InvalidCronError

if typ.TYPE_CHECKING:
    import datetime as dt

    from apscheduler.triggers.base import BaseTrigger

_CRON_FIELDS = 5
_EVERY = "@every "
_TZ_PREFIXES = ("CRON_TZ=", "TZ=")
_DESCRIPTORS = {
    "@yearly": "0 0 1 1 *",
    "@annually": "0 0 1 1 *",
    "@monthly": "0 0 1 * *",
    "@weekly": "0 0 * * 0",
    "@daily": "0 0 * * *",
    "@midnight": "0 0 * * *",
    "@hourly": "0 * * * *",
}

_WEEKDAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")
_MONTH_NAMES = (
    "jan",
    "feb",
    "mar",
    "apr",
    "may",
    "jun",
    "jul",
    "aug",
    "sep",
    "oct",
    "nov",
    "dec",
)


@dc.dataclass(frozen=True, slots=True)
class _Bounds:
    name: str
    low: int
    high: int
    names: tuple[str, ...] = ()

    def value(self, token: str) -> int:
        lowered = token.lower()
        if lowered in self.names:
            return self.names.index(lowered) + self.low
        if not token.isdigit():
            msg = f"failed to parse {self.name} value {token!r}"
            raise ValueError(msg)
        return int(token)


_MINUTE = _Bounds("minute", 0, 59)
_HOUR = _Bounds("hour", 0, 23)
_DAY = _Bounds("day of month", 1, 31)
_MONTH = _Bounds("month", 1, 12, _MONTH_NAMES)
_WEEKDAY = _Bounds("day of week", 0, 6, _WEEKDAY_NAMES)


@dc.dataclass(frozen=True, slots=True)
class CronField:
    """The values one crontab field selects.

    ``wildcard`` is set when some part of the field is a bare ``*`` or ``?``
    (a step of one at most); only then does the day-of-month/day-of-week pair
    combine with AND instead of OR.
    """

    values: frozenset[int]
    wildcard: bool


def _expand_field(field: str, bounds: _Bounds) -> CronField:
    """Expand one crontab field into the values it selects.

    >>> sorted(_expand_field("*/2", _WEEKDAY).values)
    [0, 2, 4, 6]
    >>> sorted(_expand_field("1-5/2", _WEEKDAY).values)
    [1, 3, 5]

    Raises
    ------
    ValueError
        If a part is malformed, out of range or has a zero step.

    """
    values: set[int] = set()
    wildcard = False
    for part in field.split(","):
        base, slash, step_text = part.partition("/")
        low_text, dash, high_text = base.partition("-")
        part_wildcard = base in {"*", "?"}
        if part_wildcard:
            start, end = bounds.low, bounds.high
        else:
            start = bounds.value(low_text)
            end = bounds.value(high_text) if dash else start
        step = 1
        if slash:
            if not step_text.isdigit():
                msg = f"failed to parse step {step_text!r} in {part!r}"
                raise ValueError(msg)
            step = int(step_text)
            if not dash:
                end = bounds.high
            if step > 1:
                part_wildcard = False
        if start < bounds.low or end > bounds.high:
            msg = (
                f"{bounds.name} {part!r} is outside {bounds.low}-{bounds.high}"
            )
            raise ValueError(msg)
        if start > end:
            msg = f"{bounds.name} range {part!r} starts after it ends"
            raise ValueError(msg)
        if step == 0:
            msg = f"step of {part!r} must be positive"
            raise ValueError(msg)
        values.update(range(start, end + 1, step))
        wildcard = wildcard or part_wildcard
    return CronField(frozenset(values), wildcard)


def _numbers(field: CronField) -> str:
    if field.wildcard:
        return "*"
    return ",".join(str(value) for value in sorted(field.values))


def _weekdays(field: CronField) -> str:
    if field.wildcard:
        return "*"
    return ",".join(_WEEKDAY_NAMES[value] for value in sorted(field.values))


@dc.dataclass(frozen=True, slots=True)
class CronSchedule:
    """The five expanded fields of a crontab line."""

    minute: CronField
    hour: CronField
    day: CronField
    month: CronField
    day_of_week: CronField

    @classmethod
    def parse(cls, fields: str) -> CronSchedule:
        """Expand a five-field crontab line.

        Raises
        ------
        ValueError
            If the line does not have five fields or any field is invalid.

        """
        parts = fields.split()
        if len(parts) != _CRON_FIELDS:
            msg = f"expected {_CRON_FIELDS} fields, got {len(parts)}"
            raise ValueError(msg)
        minute, hour, day, month, day_of_week = parts
        return cls(
            minute=_expand_field(minute, _MINUTE),
            hour=_expand_field(hour, _HOUR),
            day=_expand_field(day, _DAY),
            month=_expand_field(month, _MONTH),
            day_of_week=_expand_field(day_of_week, _WEEKDAY),
        )

    def _cron_trigger(
        self, *, day: str, day_of_week: str, timezone: dt.tzinfo | None
    ) -> CronTrigger:
        return CronTrigger(
            minute=_numbers(self.minute),
            hour=_numbers(self.hour),
            day=day,
            month=_numbers(self.month),
            day_of_week=day_of_week,
            timezone=timezone,
        )

    def trigger(self, timezone: dt.tzinfo | None = None) -> BaseTrigger:
        """Build a trigger firing on this schedule.

        When both day fields are restricted a day matching either one fires,
        so the trigger is the union of a day-of-month and a day-of-week
        trigger.
        """
        if self.day.wildcard or self.day_of_week.wildcard:
            return self._cron_trigger(
                day=_numbers(self.day),
                day_of_week=_weekdays(self.day_of_week),
                timezone=timezone,
            )
        return OrTrigger(
            [
                self._cron_trigger(
                    day=_numbers(self.day), day_of_week="*", timezone=timezone
                ),
                self._cron_trigger(
                    day="*",
                    day_of_week=_weekdays(self.day_of_week),
                    timezone=timezone,
                ),
            ]
        )


def _split_zone(text: str) -> tuple[zoneinfo.ZoneInfo | None, str]:
    if not text.startswith(_TZ_PREFIXES):
        return None, text
    assignment, _, rest = text.partition(" ")
    _, _, key = assignment.partition("=")
    try:
        zone = zoneinfo.ZoneInfo(key)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError) as exc:
        msg = f"unknown time zone {key!r}"
        raise ValueError(msg) from exc
    return zone, rest


def _every_seconds(text: str) -> int:
    # Intervals are truncated to whole seconds, never below one.
    delta = parse_duration(text.removeprefix(_EVERY))
    return max(int(delta.total_seconds()), 1)


@dc.dataclass(frozen=True, slots=True)
class CronExpression:
    """A cron line that has passed validation.

    Construct instances with :func:`parse_cron`; the expression is stored with
    whitespace collapsed so equal schedules compare equal.
    """

    expression: str

    def __str__(self) -> str:
        """Return the normalised cron line."""
        return self.expression

    def trigger(self, timezone: dt.tzinfo | None = None) -> BaseTrigger:
        """Build an APScheduler trigger firing on this schedule.

        A ``CRON_TZ=`` prefix on the expression takes precedence over
        ``timezone``.
        """
        zone, text = _split_zone(self.expression)
        tz = zone or timezone
        if text.startswith(_EVERY):
            return IntervalTrigger(seconds=_every_seconds(text), timezone=tz)
        return CronSchedule.parse(_DESCRIPTORS.get(text, text)).trigger(tz)


def _validate(text: str) -> None:
    _, body = _split_zone(text)
    if body.startswith(_EVERY):
        _every_seconds(body)
    elif body.startswith("@"):
        if body not in _DESCRIPTORS:
            msg = f"unrecognized descriptor {body!r}"
            raise ValueError(msg)
    else:
        CronSchedule.parse(body)


def parse_cron(raw: str) -> CronExpression:
    """Validate ``raw`` as a cron line.

    Parameters
    ----------
    raw
        Crontab expression such as ``"*/15 8-18 * * 1-5"`` or a descriptor
        such as ``"@daily"``.

    Returns
    -------
    CronExpression
        The normalised, validated expression.

    Raises
    ------
    InvalidCronError
        If ``raw`` does not have exactly five fields, a field is out of range
        or malformed, or a descriptor or time zone is unknown.

    """
    normalized = " ".join(raw.split())
    try:
        _validate(normalized)
    except ValueError as exc:
        raise InvalidCronError(raw, str(exc)) from exc
    return CronExpression(normalized)


@dc.dataclass(frozen=True, slots=True)
class ScheduleUnit:
    """An active cron line paired with the event name it emits."""

    cron: CronExpression
    name: str
