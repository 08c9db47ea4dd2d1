"""XLSX workbook rendering with typed cells and striped tables.

Every fetched card becomes one worksheet. Cell text is typed in a fixed
order: integer, float, boolean, then six date/time layouts, falling back to
the raw string. The header row always stays textual so it can label the
worksheet table.
"""

from __future__ import annotations

import datetime as dt
import io
import math
import re
import typing as typ
import unicodedata

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from cardcast.exporters.matrix import cell_text

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from openpyxl.worksheet.worksheet import Worksheet

    from cardcast.models import Matrix

SHEET_NAME_LIMIT = 31
SHEET_PREFIX = "Sheet_"
TABLE_STYLE = "TableStyleMedium9"
MIN_COLUMN_WIDTH = 10.0
WIDTH_FACTOR = 1.2
NIL_MARKER = "<nil>"

_FORBIDDEN_SHEET_CHARS = re.compile(r"[:\\/?*\[\] \-]")
_TABLE_NAME_CHARS = re.compile(r"\W")
_INT_RE = re.compile(r"[+-]?\d+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|[+-]?(?:inf|nan)", re.IGNORECASE
)
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1
_BOOLEANS = {
    "1": True,
    "t": True,
    "T": True,
    "true": True,
    "TRUE": True,
    "True": True,
    "0": False,
    "f": False,
    "F": False,
    "false": False,
    "FALSE": False,
    "False": False,
}
_DATETIME_LAYOUTS = (
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M:%S",
    "%d.%m.%Y",
    "%d.%m.%Y %H:%M:%S",
)

type CellValue = int | float | bool | dt.datetime | dt.date | str | None


def _is_sheet_initial(char: str) -> bool:
    if char == "_":
        return True
    return char.isalpha() and unicodedata.name(char, "").startswith(
        ("LATIN", "CYRILLIC")
    )


def sanitize_sheet_name(name: str) -> str:
    """Make ``name`` a valid worksheet title.

    Forbidden characters and spaces become ``_``; titles that are empty or do
    not begin with a Latin or Cyrillic letter (or ``_``) gain a ``Sheet_``
    prefix; the result is cut to 31 characters. The function is idempotent.

    >>> sanitize_sheet_name("2024 sales")
    'Sheet_2024_sales'

    """
    cleaned = _FORBIDDEN_SHEET_CHARS.sub("_", name)
    if not cleaned or not _is_sheet_initial(cleaned[0]):
        cleaned = f"{SHEET_PREFIX}{cleaned}"
    return cleaned[:SHEET_NAME_LIMIT]


def _parse_datetime(text: str) -> dt.datetime | dt.date | None:
    for layout in _DATETIME_LAYOUTS:
        try:
            parsed = dt.datetime.strptime(text, layout)  # noqa: DTZ007
        except ValueError:
            continue
        if layout == "%Y-%m-%d" or layout == "%d.%m.%Y":  # noqa: PLR1714
            return parsed.date()
        # Worksheets store naive wall-clock values.
        return parsed.replace(tzinfo=None)
    return None


def detect_cell_value(text: str) -> CellValue:
    """Convert a cell's display string into the value the worksheet stores.

    >>> detect_cell_value("42"), detect_cell_value("true"), detect_cell_value("<nil>")
    (42, True, None)

    """
    if text in ("", NIL_MARKER):
        return None
    if _INT_RE.fullmatch(text):
        number = int(text)
        if _INT64_MIN <= number <= _INT64_MAX:
            return number
    if _FLOAT_RE.fullmatch(text):
        value = float(text)
        if math.isfinite(value):
            return value
    if text in _BOOLEANS:
        return _BOOLEANS[text]
    parsed = _parse_datetime(text)
    if parsed is not None:
        return parsed
    return text


def _unique_title(base: str, used: set[str]) -> str:
    title = base
    counter = 1
    while title.casefold() in used:
        suffix = f"_{counter}"
        title = f"{base[: SHEET_NAME_LIMIT - len(suffix)]}{suffix}"
        counter += 1
    used.add(title.casefold())
    return title


def _column_widths(matrix: Matrix) -> list[float]:
    widths = [0] * len(matrix[0])
    for row in matrix:
        for index, cell in enumerate(row[: len(widths)]):
            widths[index] = max(widths[index], len(cell))
    return [max(MIN_COLUMN_WIDTH, WIDTH_FACTOR * width) for width in widths]


def _write_sheet(sheet: Worksheet, matrix: Matrix, table_name: str) -> None:
    header, *rows = matrix
    sheet.append(list(header))
    for row in rows:
        sheet.append([detect_cell_value(cell) for cell in row])

    last_column = get_column_letter(len(header))
    last_row = max(len(matrix), 2)
    table = Table(displayName=table_name, ref=f"A1:{last_column}{last_row}")
    table.tableStyleInfo = TableStyleInfo(
        name=TABLE_STYLE,
        showFirstColumn=False,
        showLastColumn=False,
        showRowStripes=True,
        showColumnStripes=False,
    )
    sheet.add_table(table)

    for index, width in enumerate(_column_widths(matrix), start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width


def build_workbook(
    sheets: cabc.Mapping[str, cabc.Sequence[cabc.Sequence[object]]],
) -> bytes:
    """Render one worksheet per non-empty matrix and return the XLSX bytes.

    Parameters
    ----------
    sheets
        Header-first matrices keyed by card title, in sheet order.

    Returns
    -------
    bytes
        The serialised workbook.

    """
    workbook = Workbook()
    placeholder = workbook.active
    used: set[str] = set()
    for position, (key, raw_matrix) in enumerate(sheets.items(), start=1):
        matrix = [[cell_text(cell) for cell in row] for row in raw_matrix]
        if not matrix or not matrix[0]:
            continue
        title = _unique_title(sanitize_sheet_name(key), used)
        sheet = workbook.create_sheet(title)
        table_name = f"Table{position}_{_TABLE_NAME_CHARS.sub('_', title)}"
        _write_sheet(sheet, matrix, table_name)

    # A workbook must keep at least one sheet.
    if placeholder is not None and len(workbook.worksheets) > 1:
        workbook.remove(placeholder)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
