"""Common time utilities."""

from __future__ import annotations

import datetime as dt
import re

_DURATION_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": dt.timedelta(microseconds=0.001),
    "us": dt.timedelta(microseconds=1),
    "µs": dt.timedelta(microseconds=1),
    "ms": dt.timedelta(milliseconds=1),
    "s": dt.timedelta(seconds=1),
    "m": dt.timedelta(minutes=1),
    "h": dt.timedelta(hours=1),
}


def localnow() -> dt.datetime:
    """Return an aware timestamp in the host's local zone.

    Report templates compute calendar dates ("yesterday", "start of month")
    relative to the zone the reports are read in, not UTC.
    """
    return dt.datetime.now().astimezone()


def parse_duration(value: str) -> dt.timedelta:
    """Parse a duration such as ``"1h30m"``, ``"-45s"`` or ``"250ms"``.

    Raises
    ------
    ValueError
        If ``value`` is not a sequence of number-unit pairs.

    """
    text = value.strip()
    sign = 1
    if text and text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return dt.timedelta(0)
    total = dt.timedelta(0)
    position = 0
    for match in _DURATION_RE.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if not text or position != len(text):
        msg = f"invalid duration {value!r}"
        raise ValueError(msg)
    return sign * total
