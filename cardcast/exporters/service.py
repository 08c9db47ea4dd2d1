"""Dispatch an export request to the renderer for its format.

Renderers are synchronous and CPU bound, so ``ReportExporter.export`` runs
them in a worker thread. Artifact names come from the export's filename
template (rendered once, with no data bound), falling back to the report
name. Formats that produce one artifact per card (CSV, PNG) insert the card
title before the extension when more than one card was fetched.

Usage
-----
>>> exporter = ReportExporter()
>>> files = await exporter.export(data, ExportSpec(ExportFormat.CSV), report_name="r")
>>> [item.name for item in files]
['r.csv']

"""

from __future__ import annotations

import asyncio
import csv
import io
import typing as typ

from cardcast.exporters.errors import ExportError, RenderError, UnsupportedFormatError
from cardcast.exporters.matrix import rows_to_matrix, to_text_matrix
from cardcast.exporters.pdf import render_pdf, table_page
from cardcast.exporters.png import render_table_png
from cardcast.exporters.templating import (
    render_html,
    render_name,
    render_text,
    template_context,
)
from cardcast.exporters.xlsx import build_workbook
from cardcast.logging import get_logger, log_debug, log_warning
from cardcast.models import ExportFormat, FileSet, ImageSet, TextData

if typ.TYPE_CHECKING:
    from cardcast.models import ExportSpec, FetchResult, Matrix, ReportData

logger = get_logger(__name__)

EXTENSIONS: dict[ExportFormat, str] = {
    ExportFormat.HTML: ".html",
    ExportFormat.PDF: ".pdf",
    ExportFormat.CSV: ".csv",
    ExportFormat.XLSX: ".xlsx",
    ExportFormat.PNG: ".png",
}


def artifact_stem(spec: ExportSpec, report_name: str) -> str:
    """Return the rendered artifact name without its format extension."""
    name = render_name(spec.filename, report_name)
    extension = EXTENSIONS.get(spec.format, "")
    if extension and name.lower().endswith(extension):
        name = name[: -len(extension)]
    return name


def sheet_artifact_name(stem: str, key: str, extension: str, *, multiple: bool) -> str:
    """Name one card's artifact; ``name_key.ext`` only when several exist."""
    return f"{stem}_{key}{extension}" if multiple else f"{stem}{extension}"


def _matrices(data: FetchResult, spec: ExportSpec) -> dict[str, Matrix]:
    matrices: dict[str, Matrix] = {}
    for key, rows in data.items():
        matrix = to_text_matrix(rows_to_matrix(rows, spec.order.get(key)))
        if not matrix:
            log_warning(logger, "Card %s returned no rows; skipping its sheet", key)
            continue
        matrices[key] = matrix
    return matrices


def _csv_bytes(matrix: Matrix) -> bytes:
    buffer = io.StringIO()
    csv.writer(buffer).writerows(matrix)
    return buffer.getvalue().encode("utf-8")


def _require_template(spec: ExportSpec) -> str:
    if not spec.template:
        msg = f"{spec.format} export requires a template"
        raise ExportError(msg)
    return spec.template


def export_text(data: FetchResult, spec: ExportSpec) -> TextData:
    """Render the export template into a Telegram HTML message."""
    return TextData(body=render_text(_require_template(spec), template_context(data)))


def export_html(data: FetchResult, spec: ExportSpec, report_name: str) -> FileSet:
    """Render the export template into an ``.html`` document."""
    body = render_html(_require_template(spec), template_context(data))
    files = FileSet()
    files.add(body.encode("utf-8"), f"{artifact_stem(spec, report_name)}.html")
    return files


def export_csv(data: FetchResult, spec: ExportSpec, report_name: str) -> FileSet:
    """Write one CSV file per card, header row first."""
    stem = artifact_stem(spec, report_name)
    matrices = _matrices(data, spec)
    files = FileSet()
    for key, matrix in matrices.items():
        name = sheet_artifact_name(stem, key, ".csv", multiple=len(matrices) > 1)
        files.add(_csv_bytes(matrix), name)
    return files


def export_xlsx(data: FetchResult, spec: ExportSpec, report_name: str) -> FileSet:
    """Write every card into one workbook, one worksheet per card."""
    sheets = {
        key: rows_to_matrix(rows, spec.order.get(key)) for key, rows in data.items()
    }
    try:
        content = build_workbook(sheets)
    except (ValueError, TypeError) as exc:
        raise RenderError(ExportFormat.XLSX, str(exc)) from exc
    files = FileSet()
    files.add(content, f"{artifact_stem(spec, report_name)}.xlsx")
    return files


def export_png(data: FetchResult, spec: ExportSpec, report_name: str) -> ImageSet:
    """Draw one titled table image per card."""
    stem = artifact_stem(spec, report_name)
    matrices = _matrices(data, spec)
    images = ImageSet()
    for key, matrix in matrices.items():
        try:
            content = render_table_png(matrix, title=key)
        except (ValueError, OSError) as exc:
            raise RenderError(ExportFormat.PNG, str(exc)) from exc
        name = sheet_artifact_name(stem, key, ".png", multiple=len(matrices) > 1)
        images.add(content, name)
    return images


def export_pdf(data: FetchResult, spec: ExportSpec, report_name: str) -> FileSet:
    """Render the template (or one table page per card) into a PDF."""
    if spec.template:
        pages = [render_html(spec.template, template_context(data))]
    else:
        pages = [
            table_page(key, matrix) for key, matrix in _matrices(data, spec).items()
        ]
    files = FileSet()
    files.add(render_pdf(pages), f"{artifact_stem(spec, report_name)}.pdf")
    return files


def export_report(data: FetchResult, spec: ExportSpec, report_name: str) -> ReportData:
    """Render ``data`` in the format ``spec`` requests.

    Raises
    ------
    TemplateError
        If a content or filename template fails.
    ExportError
        If the format is unknown or its renderer fails.

    """
    match spec.format:
        case ExportFormat.TEXT:
            return export_text(data, spec)
        case ExportFormat.HTML:
            return export_html(data, spec, report_name)
        case ExportFormat.CSV:
            return export_csv(data, spec, report_name)
        case ExportFormat.XLSX:
            return export_xlsx(data, spec, report_name)
        case ExportFormat.PNG:
            return export_png(data, spec, report_name)
        case ExportFormat.PDF:
            return export_pdf(data, spec, report_name)
    raise UnsupportedFormatError(str(spec.format))


class ReportExporter:
    """Async front for :func:`export_report`."""

    async def export(
        self, data: FetchResult, spec: ExportSpec, *, report_name: str
    ) -> ReportData:
        """Render one export off the event loop."""
        log_debug(logger, "Exporting report %s as %s", report_name, spec.format)
        return await asyncio.to_thread(export_report, data, spec, report_name)
