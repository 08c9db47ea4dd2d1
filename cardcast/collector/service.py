"""Concurrent fan-out of card fetches.

One semaphore per collector caps in-flight fetches across every concurrent
``collect`` call, so two reports generating at once share the same budget.
A failing fetch never cancels its siblings; cancelling the caller does.

Usage
-----
>>> collector = Collector(fetcher, parallel=8)
>>> result = await collector.collect(Card("6f1c...", "Sales"))
>>> result["Sales"][0]
{'region': 'north', 'total': 12}

"""

from __future__ import annotations

import asyncio
import time
import typing as typ

from cardcast.collector.errors import CollectError, EmptyRequestError
from cardcast.logging import get_logger, log_debug, log_error, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.fetch import Fetcher
    from cardcast.models import Card, FetchResult, Matrix

logger = get_logger(__name__)

DEFAULT_PARALLEL = 32


class Collector:
    """Fetch many cards concurrently under a shared concurrency limit.

    Parameters
    ----------
    fetcher
        Port used to fetch each card.
    parallel
        Maximum number of fetches in flight at once; ``0`` selects
        ``DEFAULT_PARALLEL``.

    """

    def __init__(self, fetcher: Fetcher, *, parallel: int = 0) -> None:
        """Create the collector and its fetch semaphore."""
        if parallel < 0:
            msg = f"parallel must not be negative, got: {parallel}"
            raise ValueError(msg)
        self._fetcher = fetcher
        self._parallel = parallel or DEFAULT_PARALLEL
        self._semaphore = asyncio.Semaphore(self._parallel)
        log_info(logger, "Collector created with parallel=%d", self._parallel)

    @property
    def parallel(self) -> int:
        """Return the semaphore capacity."""
        return self._parallel

    async def collect(self, *cards: Card) -> FetchResult:
        """Fetch the rows of every card.

        Returns
        -------
        FetchResult
            Mapping of card title to its rows.

        Raises
        ------
        EmptyRequestError
            If no cards were given.
        CollectError
            If any fetch failed; ``partial`` carries the successful results.

        """
        return await self._gather(cards, self._fetcher.fetch)

    async def collect_matrices(self, *cards: Card) -> dict[str, Matrix]:
        """Fetch every card as a string matrix with the header row first.

        Raises
        ------
        EmptyRequestError
            If no cards were given.
        CollectError
            If any fetch failed; ``partial`` carries the successful results.

        """
        return await self._gather(cards, self._fetcher.fetch_matrix)

    async def _gather[T](
        self,
        cards: cabc.Sequence[Card],
        fetch: cabc.Callable[[str], cabc.Awaitable[T]],
    ) -> dict[str, T]:
        if not cards:
            log_error(logger, "Collect called with an empty card list")
            raise EmptyRequestError

        started = time.monotonic()
        outcomes = await asyncio.gather(
            *(self._fetch_one(card, fetch) for card in cards),
            return_exceptions=True,
        )

        collected: dict[str, T] = {}
        errors: list[Exception] = []
        for card, outcome in zip(cards, outcomes, strict=True):
            if isinstance(outcome, Exception):
                errors.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                collected[card.title] = outcome

        log_info(
            logger,
            "Collected %d of %d card(s) in %.3fs",
            len(collected),
            len(cards),
            time.monotonic() - started,
        )
        if errors:
            raise CollectError(errors, collected)
        return collected

    async def _fetch_one[T](
        self,
        card: Card,
        fetch: cabc.Callable[[str], cabc.Awaitable[T]],
    ) -> T:
        async with self._semaphore:
            log_debug(logger, "Fetching card %s (%s)", card.title, card.card_uuid)
            try:
                return await fetch(card.card_uuid)
            except Exception as exc:
                log_error(
                    logger,
                    "Error fetching card %s (%s): %s",
                    card.title,
                    card.card_uuid,
                    exc,
                    exc_info=exc,
                )
                raise
