"""Unit tests for the template environments and helper library."""

from __future__ import annotations

import datetime as dt

import pytest

from cardcast.exporters import helpers
from cardcast.exporters.errors import TemplateError
from cardcast.exporters.templating import (
    render_html,
    render_name,
    render_text,
    template_context,
)


class TestTemplateContext:
    """Tests for binding fetched data into templates."""

    def test_single_card_binds_rows_to_data(self) -> None:
        """With one card ``data`` is that card's rows."""
        context = template_context({"Q": [{"n": 3}]})

        assert context["data"] == [{"n": 3}], "Expected the sole card's rows"
        assert context["report"] == {"Q": [{"n": 3}]}

    def test_several_cards_bind_the_mapping(self) -> None:
        """With several cards ``data`` is the whole mapping."""
        data = {"A": [{"n": 1}], "B": [{"n": 2}]}

        context = template_context(data)

        assert context["data"] == data, "Expected the mapping keyed by title"

    def test_no_data_binds_empty_mapping(self) -> None:
        """A report without queries still renders."""
        assert template_context(None) == {"report": {}, "data": {}}


class TestRenderText:
    """Tests for plain-text rendering."""

    def test_renders_sole_card_field(self) -> None:
        """Rows of the only card are indexable through ``data``."""
        rendered = render_text(
            "value: {{ data[0].n }}", template_context({"Q": [{"n": 3}]})
        )

        assert rendered == "value: 3"

    def test_missing_field_renders_empty(self) -> None:
        """Missing keys and out-of-range rows render as empty strings."""
        context = template_context({"Q": [{"n": None}]})

        rendered = render_text(
            "[{{ data[0].missing }}|{{ data[4].n }}|{{ data[0].n }}]", context
        )

        assert rendered == "[||]", "Expected missing values to render empty"

    def test_helpers_are_callable_and_chainable(self) -> None:
        """Helpers work both as functions and as filters."""
        expected = (helpers.now() - dt.timedelta(days=1)).strftime("%Y-%m-%d")

        rendered = render_text('{{ now() | subDays(1) | date("%Y-%m-%d") }}')

        assert rendered == expected
        assert render_text("{{ formatMoney(1234.5) }}") == "1 234.50"
        assert render_text("{{ 'abc' | upper }}") == "ABC"

    def test_first_filter_accepts_generators_and_mappings(self) -> None:
        """``first`` and ``last`` work on any iterable, not just lists."""
        context = template_context({"A": [{"n": 1}, {"n": 2}], "B": []})

        rendered = render_text(
            "{{ report.A | map(attribute='n') | first }}"
            "|{{ report | first }}"
            "|{{ last(report.A | map(attribute='n')) }}",
            context,
        )

        assert rendered == "1|A|2"

    def test_first_and_last_helpers_on_iterables(self) -> None:
        """The call forms consume iterators and return keys of mappings."""
        assert helpers.first(iter([3, 4])) == 3
        assert helpers.last(n for n in (3, 4)) == 4
        assert helpers.first({"k": 1}) == "k"
        assert helpers.first([]) is None
        assert helpers.last(None) is None

    def test_syntax_error_raises_template_error(self) -> None:
        """An unparseable template is reported as a template failure."""
        with pytest.raises(TemplateError, match="broken"):
            render_text("{{ broken")

    def test_helper_failure_raises_template_error(self) -> None:
        """A helper raising while executing is wrapped."""
        with pytest.raises(TemplateError):
            render_text("{{ date('not a date') }}")


class TestRenderHtml:
    """Tests for autoescaped HTML rendering."""

    def test_values_are_escaped(self) -> None:
        """Plain values are HTML-escaped."""
        assert render_html("{{ v }}", {"v": "<x>"}) == "&lt;x&gt;"

    def test_markup_helpers_escape_their_argument(self) -> None:
        """``bold`` wraps the value but still escapes it."""
        assert render_html("{{ bold(v) }}", {"v": "<x>"}) == "<b>&lt;x&gt;</b>"

    def test_string_filters_keep_trusted_markup(self) -> None:
        """Filters on values marked safe do not escape them twice."""
        rendered = render_html(
            "{{ v | safe | replace('b', 'i') }}{{ w | safe | upper }}",
            {"v": "<b>x</b>", "w": "<p>y</p>"},
        )

        assert rendered == "<i>x</i><P>Y</P>"


class TestRenderName:
    """Tests for filename template rendering."""

    @pytest.mark.parametrize("template", [None, "", "   "])
    def test_blank_template_uses_default(self, template: str | None) -> None:
        """Blank templates fall back to the report name."""
        assert render_name(template, "daily") == "daily"

    def test_template_is_rendered_and_stripped(self) -> None:
        """Filename templates see the helpers but no data."""
        year = helpers.now().strftime("%Y")

        assert render_name(" sales_{{ now() | date('%Y') }} ", "r") == (
            f"sales_{year}"
        )


class TestStringAndNumberHelpers:
    """Tests for the formatting helpers."""

    def test_escape_markdown_v2(self) -> None:
        """Telegram MarkdownV2 control characters are escaped."""
        assert helpers.escape_markdown_v2("1.5 (approx)") == "1\\.5 \\(approx\\)"

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1234.5, "1 234.50"),
            (-1234567.891, "-1 234 567.89"),
            (12, "12.00"),
            ("n/a", "0.00"),
        ],
    )
    def test_format_money(self, value: object, expected: str) -> None:
        """Money is grouped in thousands with two decimals."""
        assert helpers.format_money(value) == expected

    def test_format_number_truncates(self) -> None:
        """Only the integer part is shown."""
        assert helpers.format_number(1234567.9) == "1 234 567"

    def test_percent_handles_zero_total(self) -> None:
        """A zero denominator yields zero rather than failing."""
        assert helpers.percent(1, 4) == pytest.approx(25.0)
        assert helpers.percent(1, 0) == 0.0

    def test_coalesce_skips_empty_markers(self) -> None:
        """Null, empty and ``"null"`` candidates are skipped."""
        assert helpers.coalesce(None, "", "null", "x") == "x"
        assert helpers.coalesce(None, "") is None

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, True), ("null", True), ([], True), ("x", False), (0, False)],
    )
    def test_is_empty(self, value: object, *, expected: bool) -> None:
        """Emptiness covers null markers and empty containers."""
        assert helpers.is_empty(value) is expected


class TestDurationAndDateHelpers:
    """Tests for duration parsing and calendar arithmetic."""

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1h30m", dt.timedelta(hours=1, minutes=30)),
            ("-45s", dt.timedelta(seconds=-45)),
            ("250ms", dt.timedelta(milliseconds=250)),
            ("0", dt.timedelta(0)),
        ],
    )
    def test_parse_duration(self, text: str, expected: dt.timedelta) -> None:
        """Number-unit pairs are summed."""
        assert helpers.parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "abc", "10", "5d"])
    def test_parse_duration_rejects_garbage(self, text: str) -> None:
        """Inputs that are not unit pairs raise ``ValueError``."""
        with pytest.raises(ValueError, match="invalid duration"):
            helpers.parse_duration(text)

    def test_last_month_clamps_day(self) -> None:
        """31 March shifts to the last day of February."""
        moment = dt.datetime(2024, 3, 31, 10, 0, tzinfo=dt.UTC)

        assert helpers.last_month(moment) == dt.datetime(
            2024, 2, 29, 10, 0, tzinfo=dt.UTC
        )

    def test_end_of_month(self) -> None:
        """The month ends one microsecond before the next begins."""
        moment = dt.datetime(2024, 2, 10, 8, 0, tzinfo=dt.UTC)

        assert helpers.end_of_month(moment) == dt.datetime(
            2024, 2, 29, 23, 59, 59, 999999, tzinfo=dt.UTC
        )

    def test_diff_days_truncates(self) -> None:
        """Partial days do not count."""
        later = dt.datetime(2024, 1, 3, 12, 0, tzinfo=dt.UTC)
        earlier = dt.datetime(2024, 1, 1, 18, 0, tzinfo=dt.UTC)

        assert helpers.diff_days(later, earlier) == 1

    def test_russian_formats(self) -> None:
        """Russian month names use the right grammatical case."""
        moment = dt.datetime(2026, 1, 25, 15, 30, tzinfo=dt.UTC)

        assert helpers.format_ru_date(moment) == "25 января 2026"
        assert helpers.format_ru_month_year(moment) == "январь 2026"
        assert helpers.format_ru_date_time(moment) == "25 января 2026, 15:30"
        assert helpers.format_date_short(moment) == "25.01.2026"

    @pytest.mark.parametrize(("number", "expected"), [(1, "январь"), (13, "")])
    def test_month_name_ru(self, number: int, expected: str) -> None:
        """Out-of-range month numbers give an empty name."""
        assert helpers.month_name_ru(number) == expected
