"""Unit tests for the report aggregate and artifacts."""

from __future__ import annotations

import pytest

from cardcast.models import (
    Card,
    ExportFormat,
    ExportSpec,
    FileSet,
    ImageSet,
    MalformedReportError,
    ParseMode,
    Report,
    TelegramChat,
    TextData,
)


def _report(**overrides: object) -> Report:
    fields: dict[str, object] = {
        "name": "daily",
        "title": "Daily",
        "queries": (Card("uuid-1", "Q"),),
        "exports": (ExportSpec(ExportFormat.TEXT, template="hi"),),
        "recipients": (TelegramChat(chat_id=42),),
    }
    fields.update(overrides)
    return Report(**fields)  # type: ignore[arg-type]


class TestReportValidate:
    """Tests for ``Report.validate`` invariants."""

    def test_valid_report_returns_self(self) -> None:
        """A complete report validates to itself."""
        report = _report()
        assert report.validate() is report, "validate should return the report"

    def test_default_evaluation_always_sends(self) -> None:
        """Reports evaluate to the always-true sentinel by default."""
        assert _report().evaluation == "[*]", "Expected the '[*]' default"

    @pytest.mark.parametrize(
        ("overrides", "detail"),
        [
            pytest.param({"exports": ()}, "no exports", id="no-exports"),
            pytest.param({"recipients": ()}, "no recipients", id="no-recipients"),
            pytest.param(
                {
                    "queries": (),
                    "exports": (ExportSpec(ExportFormat.CSV),),
                },
                "no queries",
                id="no-data",
            ),
        ],
    )
    def test_invariant_violations(
        self, overrides: dict[str, object], detail: str
    ) -> None:
        """Broken invariants raise MalformedReportError."""
        with pytest.raises(MalformedReportError, match=detail):
            _report(**overrides).validate()

    def test_template_only_report_is_valid(self) -> None:
        """A report without cards is valid when a template needs no data."""
        report = _report(queries=())
        assert report.validate().queries == (), "Expected no queries"


class TestArtifacts:
    """Tests for rendered artifacts."""

    def test_text_defaults_to_html(self) -> None:
        """Text artifacts are sent as HTML unless told otherwise."""
        assert TextData("hi").parse_mode is ParseMode.HTML, "Expected HTML"

    def test_sets_merge_in_order(self) -> None:
        """Merging appends the other set's payloads after our own."""
        files = FileSet()
        files.add(b"a", "a.csv")
        other = FileSet()
        other.add(b"b", "b.csv")
        images = ImageSet()
        images.add(b"p", "p.png")

        files.merge(other, images)

        assert [item.name for item in files] == ["a.csv", "b.csv", "p.png"], (
            "Expected payloads in insertion order"
        )
        assert len(files) == 3, "Expected three payloads"
