"""The report aggregate and its delivery recipients.

A ``Report`` is immutable once hydrated from storage. Recipients form a
closed tagged union; code dispatches on them with ``match``:

>>> match recipient:
...     case TelegramChat(chat_id=chat_id):
...         ...
...     case FileServer(remote_path=path):
...         ...
...     case EmailRecipient():
...         ...

"""

from __future__ import annotations

import dataclasses as dc
import enum

from cardcast.models.cards import Card  # noqa: TC001
from cardcast.models.errors import MalformedReportError


class ExportFormat(enum.StrEnum):
    """Presentation formats a report can be rendered into."""

    TEXT = "text"
    HTML = "html"
    PNG = "png"
    PDF = "pdf"
    CSV = "csv"
    XLSX = "xlsx"


class ParseMode(enum.StrEnum):
    """Telegram parse modes for text messages."""

    DEFAULT = ""
    MARKDOWN = "Markdown"
    MARKDOWN_V2 = "MarkdownV2"
    HTML = "HTML"


@dc.dataclass(frozen=True, slots=True)
class ExportSpec:
    """One requested rendering of a report.

    Attributes
    ----------
    format
        Output format tag.
    template
        Template body for text, HTML and PDF exports.
    filename
        Filename template; rendered with the helper set and no bound data.
    order
        Per-sheet column order, keyed by card title.

    """

    format: ExportFormat
    template: str | None = None
    filename: str | None = None
    order: dict[str, list[str]] = dc.field(default_factory=dict)


@dc.dataclass(frozen=True, slots=True)
class TelegramChat:
    """A Telegram chat, optionally narrowed to a forum thread."""

    chat_id: int
    thread_id: int | None = None


@dc.dataclass(frozen=True, slots=True)
class FileServer:
    """A directory on the configured SMB share."""

    remote_path: str


@dc.dataclass(frozen=True, slots=True)
class EmailRecipient:
    """An email delivery whose subject and body are templates."""

    to: tuple[str, ...]
    cc: tuple[str, ...] = ()
    subject_template: str = ""
    body_template: str | None = None


type Recipient = TelegramChat | FileServer | EmailRecipient


@dc.dataclass(frozen=True, slots=True)
class EmailTarget:
    """An email recipient with its subject and body already rendered."""

    to: tuple[str, ...]
    cc: tuple[str, ...]
    subject: str
    body: str


type Target = TelegramChat | FileServer | EmailTarget


@dc.dataclass(frozen=True, slots=True)
class Report:
    """The aggregate job description executed by the generator."""

    name: str
    title: str
    queries: tuple[Card, ...] = ()
    evaluation: str = "[*]"
    exports: tuple[ExportSpec, ...] = ()
    recipients: tuple[Recipient, ...] = ()
    group_id: str | None = None
    active: bool = True

    def validate(self) -> Report:
        """Check the aggregate invariants and return ``self``.

        Raises
        ------
        MalformedReportError
            If the report has no exports, no recipients, or neither queries
            nor a template that can render without data.

        """
        if not self.exports:
            raise MalformedReportError.invariant(self.name, "no exports")
        if not self.recipients:
            raise MalformedReportError.invariant(self.name, "no recipients")
        if not self.queries and not any(e.template for e in self.exports):
            raise MalformedReportError.invariant(
                self.name, "no queries and no data-free template"
            )
        return self
