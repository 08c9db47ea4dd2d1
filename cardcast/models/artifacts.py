"""Rendered report artifacts.

``ReportData`` is a closed union of a text message, a set of images and a set
of files. Image and file sets hold ``(content, name)`` pairs and can be merged.
"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

from cardcast.models.reports import ParseMode

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@dc.dataclass(frozen=True, slots=True)
class Attachment:
    """A named binary payload."""

    content: bytes
    name: str


@dc.dataclass(slots=True)
class TextData:
    """A rendered text message."""

    body: str
    parse_mode: ParseMode = ParseMode.HTML


@dc.dataclass(slots=True)
class _AttachmentSet:
    items: list[Attachment] = dc.field(default_factory=list)

    def add(self, content: bytes, name: str) -> None:
        """Append one payload under an already rendered ``name``."""
        self.items.append(Attachment(content=content, name=name))

    def merge(self, *others: _AttachmentSet) -> None:
        """Append every payload held by ``others``, preserving order."""
        for other in others:
            self.items.extend(other.items)

    def __iter__(self) -> cabc.Iterator[Attachment]:
        """Iterate the payloads in insertion order."""
        return iter(self.items)

    def __len__(self) -> int:
        """Return the number of payloads."""
        return len(self.items)


@dc.dataclass(slots=True)
class ImageSet(_AttachmentSet):
    """Rendered images, sent to Telegram as an album."""


@dc.dataclass(slots=True)
class FileSet(_AttachmentSet):
    """Rendered documents."""


type ReportData = TextData | ImageSet | FileSet
