"""Helper functions available to every report template.

Each helper is registered as a Jinja global. Helpers whose names Jinja does not
already use as filters are registered as filters too, so the two spellings
below are equivalent::

    {{ subDays(now(), 1) | date("%Y-%m-%d") }}
    {{ now() | subDays(1) | date("%Y-%m-%d") }}

Date helpers accept ``datetime``/``date`` values or ISO 8601 strings.
"""

from __future__ import annotations

import collections
import datetime as dt
import typing as typ

import msgspec
from markupsafe import Markup, escape as html_escape

from cardcast.common.time import localnow, parse_duration

if typ.TYPE_CHECKING:
    import collections.abc as cabc

_MARKDOWN_V2_SPECIAL = "_*[]()~`>#+-=|{}.!"
_MARKDOWN_V2_TABLE = str.maketrans({ch: f"\\{ch}" for ch in _MARKDOWN_V2_SPECIAL})

_RU_MONTHS_GENITIVE = (
    "января",
    "февраля",
    "марта",
    "апреля",
    "мая",
    "июня",
    "июля",
    "августа",
    "сентября",
    "октября",
    "ноября",
    "декабря",
)
_RU_MONTHS_NOMINATIVE = (
    "январь",
    "февраль",
    "март",
    "апрель",
    "май",
    "июнь",
    "июль",
    "август",
    "сентябрь",
    "октябрь",
    "ноябрь",
    "декабрь",
)

_EMPTY_MARKERS = ("", "null")


def escape_markdown_v2(text: object) -> str:
    r"""Backslash-escape Telegram MarkdownV2 control characters.

    >>> escape_markdown_v2("1.5 (approx)")
    '1\\.5 \\(approx\\)'

    """
    return str(text).translate(_MARKDOWN_V2_TABLE)


def _as_datetime(value: object) -> dt.datetime:
    match value:
        case dt.datetime():
            return value
        case dt.date():
            return dt.datetime(
                value.year, value.month, value.day, tzinfo=localnow().tzinfo
            )
        case str():
            return dt.datetime.fromisoformat(value.strip())
    msg = f"expected a date or timestamp, got {type(value).__name__}"
    raise TypeError(msg)


def _as_number(value: object) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def _group_thousands(digits: str) -> str:
    return f"{int(digits):,}".replace(",", " ")


def _shift_months(value: dt.datetime, months: int) -> dt.datetime:
    index = value.year * 12 + value.month - 1 + months
    year, month = divmod(index, 12)
    month += 1
    day = min(value.day, _days_in_month(year, month))
    return value.replace(year=year, month=month, day=day)


def _days_in_month(year: int, month: int) -> int:
    if month == 12:  # noqa: PLR2004
        return 31
    return (dt.date(year, month + 1, 1) - dt.date(year, month, 1)).days


# Strings


def upper(value: object) -> str:
    """Return ``value`` upper-cased."""
    return str(value).upper()


def lower(value: object) -> str:
    """Return ``value`` lower-cased."""
    return str(value).lower()


def trim(value: object) -> str:
    """Strip surrounding whitespace."""
    return str(value).strip()


def contains(value: object, needle: str) -> bool:
    """Return whether ``needle`` occurs in ``value``."""
    return needle in str(value)


def has_prefix(value: object, prefix: str) -> bool:
    """Return whether ``value`` starts with ``prefix``."""
    return str(value).startswith(prefix)


def has_suffix(value: object, suffix: str) -> bool:
    """Return whether ``value`` ends with ``suffix``."""
    return str(value).endswith(suffix)


def split(value: object, sep: str) -> list[str]:
    """Split ``value`` on every ``sep``."""
    return str(value).split(sep)


def replace(value: object, old: str, new: str) -> str:
    """Replace every ``old`` with ``new``."""
    return str(value).replace(old, new)


# Numbers


def money(value: object) -> str:
    """Format a number with two decimals; non-numbers give ``"0.00"``."""
    number = _as_number(value)
    return "0.00" if number is None else f"{number:.2f}"


def format_money(value: object) -> str:
    """Format a number as ``"1 234 567.89"``."""
    number = _as_number(value)
    if number is None:
        return "0.00"
    whole, cents = f"{abs(number):.2f}".split(".")
    sign = "-" if number < 0 else ""
    return f"{sign}{_group_thousands(whole)}.{cents}"


def format_number(value: object) -> str:
    """Format the integer part of a number as ``"1 234 567"``."""
    number = _as_number(value)
    if number is None:
        return "0"
    whole = int(number)
    sign = "-" if whole < 0 else ""
    return f"{sign}{_group_thousands(str(abs(whole)))}"


def percent(part: object, total: object) -> float:
    """Return ``part`` as a percentage of ``total`` (0 when total is 0)."""
    numerator = _as_number(part) or 0.0
    denominator = _as_number(total) or 0.0
    if denominator == 0:
        return 0.0
    return numerator / denominator * 100


# Dates


def now() -> dt.datetime:
    """Return the current local time."""
    return localnow()


def date(value: object, fmt: str = "%Y-%m-%d") -> str:
    """Format a date or timestamp with ``strftime`` directives."""
    return _as_datetime(value).strftime(fmt)


def add_days(value: object, days: int) -> dt.datetime:
    """Shift by ``days`` calendar days."""
    return _as_datetime(value) + dt.timedelta(days=int(days))


def sub_days(value: object, days: int) -> dt.datetime:
    """Shift back by ``days`` calendar days."""
    return _as_datetime(value) - dt.timedelta(days=int(days))


def diff_days(first: object, second: object) -> int:
    """Return whole days from ``second`` to ``first``, truncated toward zero."""
    delta = _as_datetime(first) - _as_datetime(second)
    return int(delta.total_seconds() / 86400)


def add_duration(value: object, duration: str) -> dt.datetime:
    """Shift by a duration string such as ``"2h30m"``."""
    return _as_datetime(value) + parse_duration(duration)


def yesterday(value: object) -> dt.datetime:
    """Shift back by one day."""
    return _as_datetime(value) - dt.timedelta(days=1)


def last_month(value: object) -> dt.datetime:
    """Shift back one calendar month, clamping to the month's last day."""
    return _shift_months(_as_datetime(value), -1)


def last_year(value: object) -> dt.datetime:
    """Shift back one calendar year, clamping 29 February to the 28th."""
    return _shift_months(_as_datetime(value), -12)


def start_of_day(value: object) -> dt.datetime:
    """Return midnight of the same day."""
    return _as_datetime(value).replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_month(value: object) -> dt.datetime:
    """Return midnight of the first day of the month."""
    return start_of_day(_as_datetime(value).replace(day=1))


def end_of_month(value: object) -> dt.datetime:
    """Return the last microsecond of the month."""
    first_of_next = _shift_months(start_of_month(value), 1)
    return first_of_next - dt.timedelta(microseconds=1)


def start_of_year(value: object) -> dt.datetime:
    """Return midnight of 1 January."""
    return start_of_day(_as_datetime(value).replace(month=1, day=1))


def end_of_year(value: object) -> dt.datetime:
    """Return the last microsecond of 31 December."""
    first_of_next = start_of_year(value).replace(year=_as_datetime(value).year + 1)
    return first_of_next - dt.timedelta(microseconds=1)


def format_date_short(value: object) -> str:
    """Format as ``"25.01.2026"``."""
    return _as_datetime(value).strftime("%d.%m.%Y")


def format_date_time(value: object) -> str:
    """Format as ``"25.01.2026 15:30"``."""
    return _as_datetime(value).strftime("%d.%m.%Y %H:%M")


def format_ru_date(value: object) -> str:
    """Format as ``"25 января 2026"``."""
    moment = _as_datetime(value)
    return f"{moment.day:02d} {_RU_MONTHS_GENITIVE[moment.month - 1]} {moment.year}"


def format_ru_month_year(value: object) -> str:
    """Format as ``"январь 2026"``."""
    moment = _as_datetime(value)
    return f"{_RU_MONTHS_NOMINATIVE[moment.month - 1]} {moment.year}"


def format_ru_date_time(value: object) -> str:
    """Format as ``"25 января 2026, 15:30"``."""
    moment = _as_datetime(value)
    return f"{format_ru_date(moment)}, {moment.hour:02d}:{moment.minute:02d}"


def month_ru(value: object) -> str:
    """Return the month name in the nominative case."""
    return _RU_MONTHS_NOMINATIVE[_as_datetime(value).month - 1]


def month_ru_genitive(value: object) -> str:
    """Return the month name in the genitive case."""
    return _RU_MONTHS_GENITIVE[_as_datetime(value).month - 1]


def month_name_ru(number: int) -> str:
    """Return the nominative month name for ``1``-``12``, else ``""``."""
    if 1 <= number <= len(_RU_MONTHS_NOMINATIVE):
        return _RU_MONTHS_NOMINATIVE[number - 1]
    return ""


def month_name_ru_genitive(number: int) -> str:
    """Return the genitive month name for ``1``-``12``, else ``""``."""
    if 1 <= number <= len(_RU_MONTHS_GENITIVE):
        return _RU_MONTHS_GENITIVE[number - 1]
    return ""


# Collections


def get(mapping: cabc.Mapping[str, object] | None, key: str) -> object:
    """Return ``mapping[key]`` or ``None``."""
    return None if mapping is None else mapping.get(key)


def get_or(
    mapping: cabc.Mapping[str, object] | None, key: str, default: object
) -> object:
    """Return ``mapping[key]`` unless it is missing or null."""
    if mapping is None:
        return default
    value = mapping.get(key)
    return default if value is None else value


def has_key(mapping: cabc.Mapping[str, object] | None, key: str) -> bool:
    """Return whether ``key`` is present."""
    return mapping is not None and key in mapping


def keys(mapping: cabc.Mapping[str, object] | None) -> list[str]:
    """Return the mapping's keys."""
    return [] if mapping is None else list(mapping)


def values(mapping: cabc.Mapping[str, object] | None) -> list[object]:
    """Return the mapping's values."""
    return [] if mapping is None else list(mapping.values())


def first(items: cabc.Iterable[object] | None) -> object:
    """Return the first element, or first key of a mapping, or ``None``."""
    if items is None:
        return None
    return next(iter(items), None)


def last(items: cabc.Iterable[object] | None) -> object:
    """Return the last element, or last key of a mapping, or ``None``."""
    if items is None:
        return None
    tail = collections.deque(items, maxlen=1)
    return tail[0] if tail else None


def size(value: object) -> int:
    """Return the length of a list, mapping or string; ``0`` otherwise."""
    if isinstance(value, str | list | tuple | dict):
        return len(value)
    return 0


def is_empty(value: object) -> bool:
    """Return whether ``value`` is null, ``"null"`` or an empty container."""
    if value is None:
        return True
    if isinstance(value, str):
        return value in _EMPTY_MARKERS
    if isinstance(value, list | tuple | dict):
        return not value
    return False


def to_json(value: object) -> str:
    """Encode ``value`` as compact JSON."""
    return msgspec.json.encode(value).decode("utf-8")


def parse_json(text: str) -> object:
    """Decode a JSON document."""
    return msgspec.json.decode(text)


def parse_json_map(text: str) -> dict[str, object] | None:
    """Decode a JSON object; empty input and ``"null"`` give ``None``."""
    if text in _EMPTY_MARKERS:
        return None
    return msgspec.json.decode(text, type=dict[str, typ.Any])


def ternary(condition: object, when_true: object, when_false: object) -> object:
    """Return ``when_true`` if ``condition`` holds, else ``when_false``."""
    return when_true if condition else when_false


def coalesce(*candidates: object) -> object:
    """Return the first candidate that is not null, empty or ``"null"``."""
    for candidate in candidates:
        if candidate is not None and candidate not in _EMPTY_MARKERS:
            return candidate
    return None


def is_zero(value: object) -> bool:
    """Return whether ``value`` is zero, null, ``""`` or ``"0"``."""
    if value is None:
        return True
    if isinstance(value, str):
        return value in ("", "0")
    if isinstance(value, int | float) and not isinstance(value, bool):
        return value == 0
    return False


def not_empty(value: object) -> bool:
    """Return whether ``value`` is a non-empty string other than ``"null"``."""
    return value is not None and str(value) not in _EMPTY_MARKERS


# HTML


def safe(value: object) -> Markup:
    """Mark ``value`` as trusted HTML."""
    return Markup(str(value))  # noqa: S704


def escape_html(value: object) -> Markup:
    """Escape HTML special characters."""
    return html_escape(str(value))


def bold(value: object) -> Markup:
    """Wrap ``value`` in ``<b>``."""
    return Markup("<b>%s</b>") % str(value)


def italic(value: object) -> Markup:
    """Wrap ``value`` in ``<i>``."""
    return Markup("<i>%s</i>") % str(value)


def code(value: object) -> Markup:
    """Wrap ``value`` in ``<code>``."""
    return Markup("<code>%s</code>") % str(value)


HELPERS: cabc.Mapping[str, cabc.Callable[..., object]] = {
    "upper": upper,
    "lower": lower,
    "trim": trim,
    "contains": contains,
    "hasPrefix": has_prefix,
    "hasSuffix": has_suffix,
    "split": split,
    "replace": replace,
    "escape": escape_markdown_v2,
    "escapeHTML": escape_html,
    "bold": bold,
    "italic": italic,
    "code": code,
    "safe": safe,
    "money": money,
    "formatMoney": format_money,
    "formatNumber": format_number,
    "percent": percent,
    "now": now,
    "date": date,
    "addDays": add_days,
    "subDays": sub_days,
    "diffDays": diff_days,
    "addDuration": add_duration,
    "yesterday": yesterday,
    "lastMonth": last_month,
    "lastYear": last_year,
    "startOfDay": start_of_day,
    "startOfMonth": start_of_month,
    "endOfMonth": end_of_month,
    "startOfYear": start_of_year,
    "endOfYear": end_of_year,
    "formatDateDMY": format_date_short,
    "formatDateShort": format_date_short,
    "formatDateTime": format_date_time,
    "formatRuDate": format_ru_date,
    "formatRuMonthYear": format_ru_month_year,
    "formatRuDateTime": format_ru_date_time,
    "monthRu": month_ru,
    "monthRuGenitive": month_ru_genitive,
    "monthNameRu": month_name_ru,
    "monthNameRuGenitive": month_name_ru_genitive,
    "get": get,
    "getOr": get_or,
    "hasKey": has_key,
    "keys": keys,
    "values": values,
    "first": first,
    "last": last,
    "size": size,
    "isEmpty": is_empty,
    "toJson": to_json,
    "parseJson": parse_json,
    "parseJsonMap": parse_json_map,
    "ternary": ternary,
    "coalesce": coalesce,
    "isZero": is_zero,
    "notEmpty": not_empty,
}


def default_value(fallback: object, value: object) -> object:
    """Return ``value`` unless it is null, empty or ``"null"``."""
    if value is None or value in _EMPTY_MARKERS:
        return fallback
    return value


# Jinja's own ``default`` filter already takes the value first; only the
# call form is added here, with the fallback leading.
GLOBAL_ONLY: cabc.Mapping[str, cabc.Callable[..., object]] = {
    "default": default_value,
}
