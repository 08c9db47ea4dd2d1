"""Errors raised by the collector."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


class CollectorError(Exception):
    """Base class for collector errors."""


class EmptyRequestError(CollectorError):
    """Raised when ``collect`` is called without any cards."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("no cards to collect")


class CollectError(CollectorError):
    """Raised when one or more card fetches failed.

    The successful fetches are not lost: ``partial`` holds every result that
    did arrive, keyed by card title.

    Parameters
    ----------
    exceptions
        Failures of the individual fetches.
    partial
        Results of the fetches that succeeded.

    Attributes
    ----------
    exceptions
        Immutable tuple of the underlying fetch failures.
    partial
        Mapping of card title to the value fetched for it.

    """

    exceptions: tuple[Exception, ...]

    def __init__(
        self,
        exceptions: cabc.Sequence[Exception],
        partial: cabc.Mapping[str, typ.Any],
    ) -> None:
        """Initialise with the failures and the partial results."""
        self.exceptions = tuple(exceptions)
        self.partial = dict(partial)
        message = (
            f"collect failed: {len(self.exceptions)} of "
            f"{len(self.exceptions) + len(self.partial)} card(s) errored"
        )
        super().__init__(message)
