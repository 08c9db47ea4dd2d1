"""Flatten row maps into header-first matrices for tabular renderers."""

from __future__ import annotations

import datetime as dt
import typing as typ

import msgspec

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.models import Matrix, RowMap

_FLOAT_INT_LIMIT = 1e21


def columns_for(
    rows: cabc.Sequence[RowMap], order: cabc.Sequence[str] | None
) -> list[str]:
    """Return the declared column order, else the first row's sorted keys."""
    if order:
        return list(order)
    return sorted(rows[0]) if rows else []


def rows_to_matrix(
    rows: cabc.Sequence[RowMap], order: cabc.Sequence[str] | None = None
) -> list[list[typ.Any]]:
    """Project ``rows`` onto a header row followed by one list per row.

    Fields missing from a row become ``None``. An empty row list yields an
    empty matrix, even when an order is declared.
    """
    if not rows:
        return []
    columns = columns_for(rows, order)
    matrix: list[list[typ.Any]] = [list(columns)]
    matrix.extend([row.get(column) for column in columns] for row in rows)
    return matrix


def cell_text(value: object) -> str:
    """Return the display string of a dynamically typed cell value."""
    match value:
        case None:
            return ""
        case bool():
            return "true" if value else "false"
        case float() if value.is_integer() and abs(value) < _FLOAT_INT_LIMIT:
            return str(int(value))
        case dt.datetime() | dt.date():
            return value.isoformat()
        case dict() | list():
            return msgspec.json.encode(value).decode("utf-8")
        case _:
            return str(value)


def to_text_matrix(matrix: cabc.Iterable[cabc.Iterable[object]]) -> Matrix:
    """Convert every cell of ``matrix`` with :func:`cell_text`."""
    return [[cell_text(cell) for cell in row] for row in matrix]
