"""Jinja2 environments for report text, HTML and filenames.

Templates see two variables: ``report`` is the whole fetch result keyed by
card title, and ``data`` is the sole card's rows when exactly one card was
fetched (otherwise it is the same mapping as ``report``). Missing fields and
out-of-range indexes render as empty strings, as do null values.

Usage
-----
>>> render_text("value: {{ data[0].n }}", template_context({"Q": [{"n": 3}]}))
'value: 3'

"""

from __future__ import annotations

import typing as typ

import jinja2

from cardcast.exporters.errors import TemplateError
from cardcast.exporters.helpers import GLOBAL_ONLY, HELPERS

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.models import FetchResult


def _finalize(value: object) -> object:
    return "" if value is None else value


def build_environment(*, autoescape: bool) -> jinja2.Environment:
    """Create an environment with the helper library installed."""
    env = jinja2.Environment(  # noqa: S701
        undefined=jinja2.ChainableUndefined,
        autoescape=autoescape,
        finalize=_finalize,
        keep_trailing_newline=True,
    )
    env.globals.update(HELPERS)
    env.globals.update(GLOBAL_ONLY)
    # Jinja's built-in filters keep Markup and accept any iterable.
    for name, helper in HELPERS.items():
        env.filters.setdefault(name, helper)
    return env


_TEXT_ENV = build_environment(autoescape=False)
_HTML_ENV = build_environment(autoescape=True)


def template_context(data: FetchResult | None) -> dict[str, typ.Any]:
    """Bind fetched data to the names templates refer to."""
    report = data or {}
    rows: typ.Any = report
    if len(report) == 1:
        (rows,) = report.values()
    return {"report": report, "data": rows}


def _render(
    env: jinja2.Environment, source: str, context: cabc.Mapping[str, typ.Any]
) -> str:
    try:
        return env.from_string(source).render(context)
    except jinja2.TemplateError as exc:
        raise TemplateError.from_exception(source, exc) from exc
    except (TypeError, ValueError, KeyError, AttributeError) as exc:
        raise TemplateError.from_exception(source, exc) from exc


def render_text(
    source: str, context: cabc.Mapping[str, typ.Any] | None = None
) -> str:
    """Render a plain-text template.

    Raises
    ------
    TemplateError
        If the template does not parse or a helper fails while executing.

    """
    return _render(_TEXT_ENV, source, context or {})


def render_html(
    source: str, context: cabc.Mapping[str, typ.Any] | None = None
) -> str:
    """Render an HTML template with autoescaping enabled."""
    return _render(_HTML_ENV, source, context or {})


def render_name(template: str | None, default: str) -> str:
    """Render a filename template with no data bound.

    Empty templates, and templates that render to whitespace, yield
    ``default``.
    """
    if not template:
        return default
    return render_text(template).strip() or default
