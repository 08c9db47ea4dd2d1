"""Conversion of fetch results into CEL values, plus extra list functions.

The interpreter only understands its own ``celtypes`` values, so rows are
converted recursively before evaluation. Timestamps become CEL timestamps,
which makes ``row["created"] > timestamp("2025-01-01T00:00:00Z")`` work.
"""

from __future__ import annotations

import datetime as dt
import typing as typ

from celpy import celtypes

if typ.TYPE_CHECKING:
    import collections.abc as cabc


def to_cel(value: object) -> celtypes.Value:
    """Convert a decoded JSON-like value into its CEL counterpart.

    Raises
    ------
    TypeError
        If ``value`` holds a type with no CEL representation.

    """
    match value:
        case None:
            return None
        case bool():
            return celtypes.BoolType(value)
        case int():
            return celtypes.IntType(value)
        case float():
            return celtypes.DoubleType(value)
        case str():
            return celtypes.StringType(value)
        case dt.datetime():
            aware = value if value.tzinfo else value.replace(tzinfo=dt.UTC)
            return celtypes.TimestampType(aware)
        case dict():
            items = typ.cast("dict[object, object]", value)
            return celtypes.MapType(
                {to_cel(key): to_cel(item) for key, item in items.items()}
            )
        case list() | tuple():
            return celtypes.ListType([to_cel(item) for item in value])
    msg = f"cannot convert {type(value).__name__} to a CEL value"
    raise TypeError(msg)


def _flatten(value: celtypes.ListType) -> celtypes.ListType:
    """Flatten one level of nested lists."""
    flat: list[celtypes.Value] = []
    for item in value:
        if isinstance(item, celtypes.ListType):
            flat.extend(item)
        else:
            flat.append(item)
    return celtypes.ListType(flat)


def _distinct(value: celtypes.ListType) -> celtypes.ListType:
    """Drop repeated elements, keeping the first occurrence."""
    unique: list[celtypes.Value] = []
    for item in value:
        if item not in unique:
            unique.append(item)
    return celtypes.ListType(unique)


def _sort(value: celtypes.ListType) -> celtypes.ListType:
    """Return the list in ascending order."""
    return celtypes.ListType(sorted(value))


EXTRA_FUNCTIONS: cabc.Mapping[str, cabc.Callable[..., celtypes.Value]] = {
    "flatten": _flatten,
    "distinct": _distinct,
    "sort": _sort,
}
