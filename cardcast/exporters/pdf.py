"""Assemble HTML pages into one PDF document with xhtml2pdf.

Every input buffer starts a new page. Full HTML documents are reduced to
their ``<body>`` content and their ``<style>`` blocks are carried into the
combined document head.
"""

from __future__ import annotations

import io
import re
import typing as typ

from xhtml2pdf import pisa

from cardcast.exporters.errors import RenderError
from cardcast.exporters.templating import render_html

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.models import Matrix

_BODY_RE = re.compile(r"<body[^>]*>(?P<body>.*)</body>", re.IGNORECASE | re.DOTALL)
_STYLE_RE = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_PAGE_BREAK = "\n<pdf:nextpage />\n"

TABLE_PAGE_TEMPLATE = """\
<h2>{{ title }}</h2>
<table border="1" cellpadding="4" repeat="1">
  <tr>{% for cell in header %}<th bgcolor="#808080">{{ cell }}</th>{% endfor %}</tr>
  {% for row in rows %}
  <tr{% if loop.index is even %} bgcolor="#d5d5d5"{% endif %}>
    {% for cell in row %}<td>{{ cell }}</td>{% endfor %}
  </tr>
  {% endfor %}
</table>
"""


def _split_page(page: str) -> tuple[list[str], str]:
    styles = _STYLE_RE.findall(page)
    match = _BODY_RE.search(page)
    body = match.group("body") if match else _STYLE_RE.sub("", page)
    return styles, body


def combine_pages(pages: cabc.Sequence[str]) -> str:
    """Join HTML pages into one document with a page break between each."""
    styles: list[str] = []
    bodies: list[str] = []
    for page in pages:
        page_styles, body = _split_page(page)
        styles.extend(page_styles)
        bodies.append(body)
    head = "".join(styles)
    return (
        f'<html><head><meta charset="utf-8">{head}</head>'
        f"<body>{_PAGE_BREAK.join(bodies)}</body></html>"
    )


def table_page(title: str, matrix: Matrix) -> str:
    """Render a header-first matrix as an HTML table page."""
    header, *rows = matrix or [[]]
    return render_html(
        TABLE_PAGE_TEMPLATE, {"title": title, "header": header, "rows": rows}
    )


def render_pdf(pages: cabc.Sequence[str]) -> bytes:
    """Convert HTML pages to PDF bytes.

    Raises
    ------
    RenderError
        If no pages were given or xhtml2pdf reports conversion errors.

    """
    if not pages:
        raise RenderError("pdf", "no pages to render")
    buffer = io.BytesIO()
    status = pisa.CreatePDF(combine_pages(pages), dest=buffer, encoding="utf-8")
    if status.err:
        raise RenderError("pdf", f"{status.err} conversion error(s)")
    return buffer.getvalue()
