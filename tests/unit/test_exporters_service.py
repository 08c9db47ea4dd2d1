"""Unit tests for export dispatch and the tabular renderers."""

from __future__ import annotations

import datetime as dt
import io

import pytest
from openpyxl import load_workbook
from PIL import Image

from cardcast.exporters import (
    ExportError,
    RenderError,
    ReportExporter,
    UnsupportedFormatError,
    build_workbook,
    detect_cell_value,
    export_report,
    render_pdf,
    render_table_png,
    sanitize_sheet_name,
)
from cardcast.exporters.matrix import cell_text, rows_to_matrix
from cardcast.exporters.pdf import combine_pages
from cardcast.exporters.png import draw_table
from cardcast.models import ExportFormat, ExportSpec, FileSet, ImageSet, TextData


class TestMatrix:
    """Tests for flattening row maps."""

    def test_declared_order_wins(self) -> None:
        """Columns follow the declared order; missing fields become ``None``."""
        rows = [{"a": 1, "b": 2}, {"b": 3}]

        assert rows_to_matrix(rows, ["b", "a"]) == [["b", "a"], [2, 1], [3, None]]

    def test_default_order_sorts_first_row_keys(self) -> None:
        """Without an order the first row's keys are sorted."""
        assert rows_to_matrix([{"z": 1, "a": 2}]) == [["a", "z"], [2, 1]]

    def test_empty_rows_give_empty_matrix(self) -> None:
        """No rows means no header either."""
        assert rows_to_matrix([], ["a"]) == []

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (None, ""),
            (True, "true"),
            (3.0, "3"),
            (2.5, "2.5"),
            ({"k": [1]}, '{"k":[1]}'),
            (dt.date(2024, 1, 5), "2024-01-05"),
        ],
    )
    def test_cell_text(self, value: object, expected: str) -> None:
        """Dynamic cell values have stable display strings."""
        assert cell_text(value) == expected


class TestXlsx:
    """Tests for worksheet naming, cell typing and workbook output."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Sales", "Sales"),
            ("2024 sales", "Sheet_2024_sales"),
            ("a/b:c", "a_b_c"),
            ("", "Sheet_"),
            ("Продажи", "Продажи"),
        ],
    )
    def test_sanitize_sheet_name(self, name: str, expected: str) -> None:
        """Forbidden characters are replaced and bad initials prefixed."""
        assert sanitize_sheet_name(name) == expected

    @pytest.mark.parametrize("name", ["2024 sales", "x" * 50, "?weird*"])
    def test_sanitize_is_idempotent_and_bounded(self, name: str) -> None:
        """Sanitising twice changes nothing and titles fit Excel's limit."""
        once = sanitize_sheet_name(name)

        assert sanitize_sheet_name(once) == once
        assert len(once) <= 31

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("42", 42),
            ("-1.5", -1.5),
            ("true", True),
            ("F", False),
            ("<nil>", None),
            ("", None),
            ("2024-01-05", dt.date(2024, 1, 5)),
            ("05.01.2024 10:30:00", dt.datetime(2024, 1, 5, 10, 30)),
            ("hello", "hello"),
        ],
    )
    def test_detect_cell_value(self, text: str, expected: object) -> None:
        """Cells are typed as int, float, bool or date before falling back."""
        assert detect_cell_value(text) == expected

    def test_build_workbook_writes_one_sheet_per_card(self) -> None:
        """Empty cards are skipped and duplicate titles made unique."""
        content = build_workbook(
            {
                "2024 sales": [["n", "when", "flag"], [1, "2024-01-05", "true"]],
                "Empty": [],
                "a b": [["x"], ["<nil>"]],
                "a_b": [["x"], ["y"]],
            }
        )

        workbook = load_workbook(io.BytesIO(content))
        assert workbook.sheetnames == ["Sheet_2024_sales", "a_b", "a_b_1"]
        sheet = workbook["Sheet_2024_sales"]
        assert [cell.value for cell in sheet[1]] == ["n", "when", "flag"]
        assert sheet["A2"].value == 1
        assert sheet["B2"].value == dt.datetime(2024, 1, 5)
        assert sheet["C2"].value is True
        assert workbook["a_b"]["A2"].value is None


class TestPng:
    """Tests for table image rendering."""

    def test_renders_png(self) -> None:
        """The output is a PNG image."""
        content = render_table_png([["name", "total"], ["Иван", "3"]])

        assert content.startswith(b"\x89PNG"), "Expected PNG signature"

    def test_title_adds_height(self) -> None:
        """A title block is stacked above the table."""
        matrix = [["h"], ["v"]]
        plain = Image.open(io.BytesIO(render_table_png(matrix)))
        titled = Image.open(io.BytesIO(render_table_png(matrix, title="Q")))

        assert titled.height > plain.height

    def test_empty_matrix_rejected(self) -> None:
        """There is nothing to draw without a header."""
        with pytest.raises(ValueError, match="empty table"):
            draw_table([])


class TestPdf:
    """Tests for HTML-to-PDF assembly."""

    def test_combine_pages_keeps_styles_and_breaks(self) -> None:
        """Bodies are joined with page breaks and styles move to the head."""
        combined = combine_pages(
            [
                "<html><head><style>p{color:red}</style></head>"
                "<body><p>a</p></body></html>",
                "<p>b</p>",
            ]
        )

        head, body = combined.split("<body>", 1)
        assert "<style>p{color:red}</style>" in head
        assert body.index("<p>a</p>") < body.index("pdf:nextpage")
        assert body.index("pdf:nextpage") < body.index("<p>b</p>")

    def test_render_pdf(self) -> None:
        """xhtml2pdf produces a PDF document."""
        assert render_pdf(["<p>hello</p>"]).startswith(b"%PDF")

    def test_no_pages_rejected(self) -> None:
        """An empty page list is a render failure."""
        with pytest.raises(RenderError, match="no pages"):
            render_pdf([])


class TestExportReport:
    """Tests for format dispatch and artifact naming."""

    def test_text_export(self) -> None:
        """Text exports render the template as an HTML message."""
        spec = ExportSpec(ExportFormat.TEXT, template="n={{ data[0].n }}")

        result = export_report({"Q": [{"n": 3}]}, spec, "r")

        assert isinstance(result, TextData)
        assert result.body == "n=3"

    def test_text_export_requires_template(self) -> None:
        """Template formats cannot render without one."""
        with pytest.raises(ExportError, match="requires a template"):
            export_report({}, ExportSpec(ExportFormat.TEXT), "r")

    def test_single_card_csv_uses_report_name(self) -> None:
        """One card gives one file named after the report."""
        spec = ExportSpec(ExportFormat.CSV, order={"Q": ["b", "a"]})

        result = export_report({"Q": [{"a": 1, "b": 2}]}, spec, "r")

        assert isinstance(result, FileSet)
        (item,) = result
        assert item.name == "r.csv"
        assert item.content == b"b,a\r\n2,1\r\n"

    def test_several_cards_insert_title_in_name(self) -> None:
        """Per-card formats name artifacts ``stem_title.ext``."""
        spec = ExportSpec(ExportFormat.CSV, filename="sales.csv")
        data = {"A": [{"n": 1}], "B": [{"n": 2}], "C": []}

        result = export_report(data, spec, "r")

        assert [item.name for item in result] == ["sales_A.csv", "sales_B.csv"], (
            "Expected empty cards skipped and titles inserted"
        )

    def test_png_export_returns_images(self) -> None:
        """PNG exports produce an image set."""
        result = export_report({"Q": [{"n": 1}]}, ExportSpec(ExportFormat.PNG), "r")

        assert isinstance(result, ImageSet)
        assert [item.name for item in result] == ["r.png"]

    def test_xlsx_export_single_workbook(self) -> None:
        """Every card lands in one workbook file."""
        data = {"A": [{"n": 1}], "B": [{"n": 2}]}

        result = export_report(data, ExportSpec(ExportFormat.XLSX), "r")

        (item,) = result
        assert item.name == "r.xlsx"
        assert load_workbook(io.BytesIO(item.content)).sheetnames == ["A", "B"]

    def test_html_export_without_data(self) -> None:
        """Data-free templates still render to a file."""
        spec = ExportSpec(ExportFormat.HTML, template="<p>{{ 1 + 1 }}</p>")

        (item,) = export_report({}, spec, "notice")

        assert item.name == "notice.html"
        assert item.content == b"<p>2</p>"

    def test_unknown_format(self) -> None:
        """A format tag with no renderer is rejected."""
        spec = ExportSpec("bogus")  # type: ignore[arg-type]

        with pytest.raises(UnsupportedFormatError):
            export_report({}, spec, "r")

    @pytest.mark.asyncio
    async def test_async_exporter(self) -> None:
        """``ReportExporter`` renders off the event loop."""
        spec = ExportSpec(ExportFormat.TEXT, template="hi")

        result = await ReportExporter().export({}, spec, report_name="r")

        assert result == TextData(body="hi")
