"""Report renderers for every export format.

Public API
----------
ReportExporter, export_report
    Dispatch an ``ExportSpec`` to its renderer.
render_text, render_html, render_name, template_context
    Jinja2 rendering with the report helper library.
sanitize_sheet_name, detect_cell_value, build_workbook
    XLSX building blocks.
render_table_png
    Table image rendering.
render_pdf
    HTML-to-PDF conversion.
ExportError, TemplateError, RenderError, UnsupportedFormatError
    Failure kinds.

"""

from cardcast.exporters.errors import (
    ExportError,
    RenderError,
    TemplateError,
    UnsupportedFormatError,
)
from cardcast.exporters.matrix import cell_text, rows_to_matrix, to_text_matrix
from cardcast.exporters.pdf import render_pdf
from cardcast.exporters.png import render_table_png
from cardcast.exporters.service import ReportExporter, export_report
from cardcast.exporters.templating import (
    render_html,
    render_name,
    render_text,
    template_context,
)
from cardcast.exporters.xlsx import (
    build_workbook,
    detect_cell_value,
    sanitize_sheet_name,
)

__all__ = [
    "ExportError",
    "RenderError",
    "ReportExporter",
    "TemplateError",
    "UnsupportedFormatError",
    "build_workbook",
    "cell_text",
    "detect_cell_value",
    "export_report",
    "render_html",
    "render_name",
    "render_pdf",
    "render_table_png",
    "render_text",
    "rows_to_matrix",
    "sanitize_sheet_name",
    "template_context",
    "to_text_matrix",
]
