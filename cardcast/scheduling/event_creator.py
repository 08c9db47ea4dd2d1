"""Fan-out of cron names into the report names they trigger.

The mapping from cron name to report names is cached. One bulk load warms the
cache on start; a cron name missing from the cache is loaded on its own and
merged in. ``reload`` clears the cache so the next lookups see fresh storage.
"""

from __future__ import annotations

import asyncio
import threading
import typing as typ

from cardcast.logging import get_logger, log_debug, log_exception, log_info, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

DEFAULT_LOAD_TIMEOUT_S = 15.0

type EventPair = tuple[str, str]


@typ.runtime_checkable
class EventSource(typ.Protocol):
    """Port yielding ``(cron_name, report_name)`` pairs."""

    async def load_events(self) -> list[EventPair]:
        """Return every pair for active schedules and reports."""
        ...

    async def load_events_by_cron(self, name: str) -> list[EventPair]:
        """Return the pairs of one cron name."""
        ...


class EventCreator:
    """Consume cron names from ``inbox`` and emit report names on ``outbox``.

    Parameters
    ----------
    source
        Port used for the warm-up and for cache misses.
    inbox
        Queue of cron names fed by the scheduler.
    outbox
        Queue of report names consumed by the orchestrator. The creator owns
        it and shuts it down when ``inbox`` is exhausted.
    load_timeout
        Seconds allowed for each storage load.

    """

    def __init__(
        self,
        source: EventSource,
        inbox: asyncio.Queue[str],
        outbox: asyncio.Queue[str],
        *,
        load_timeout: float = DEFAULT_LOAD_TIMEOUT_S,
    ) -> None:
        """Bind the creator to its source and queues with an empty cache."""
        self._source = source
        self._inbox = inbox
        self._outbox = outbox
        self._load_timeout = load_timeout
        self._cache: dict[str, list[str]] = {}
        self._lock = threading.Lock()

    def cached(self, cron_name: str) -> list[str] | None:
        """Return a copy of the cached report names for ``cron_name``."""
        with self._lock:
            names = self._cache.get(cron_name)
            return None if names is None else list(names)

    def reload(self) -> None:
        """Drop the cache; subsequent lookups reload from storage."""
        with self._lock:
            self._cache.clear()
        log_info(logger, "Event cache cleared")

    async def warm(self) -> None:
        """Fill the cache with one bulk load.

        Raises
        ------
        TimeoutError
            If the load exceeds ``load_timeout``.

        """
        async with asyncio.timeout(self._load_timeout):
            pairs = await self._source.load_events()
        self._merge(pairs)
        log_info(logger, "Event cache warmed with %d pair(s)", len(pairs))

    async def report_names(self, cron_name: str) -> list[str]:
        """Return the report names ``cron_name`` triggers.

        An unknown cron name yields an empty list and a warning.
        """
        names = self.cached(cron_name)
        if names is not None:
            log_debug(logger, "Event cache hit for %s", cron_name)
            return names

        log_debug(logger, "Event cache miss for %s", cron_name)
        async with asyncio.timeout(self._load_timeout):
            pairs = await self._source.load_events_by_cron(cron_name)
        self._merge(pairs)
        names = self.cached(cron_name)
        if names is None:
            log_warning(logger, "No reports are scheduled on %s", cron_name)
            return []
        return names

    async def run(self) -> None:
        """Consume ``inbox`` until it is shut down, then shut ``outbox`` down."""
        try:
            try:
                await self.warm()
            except Exception as exc:  # noqa: BLE001
                log_exception(logger, "Event cache warm-up failed", exc)
            while True:
                try:
                    cron_name = await self._inbox.get()
                except asyncio.QueueShutDown:
                    return
                await self._emit(cron_name)
        finally:
            self._outbox.shutdown()

    async def _emit(self, cron_name: str) -> None:
        try:
            names = await self.report_names(cron_name)
        except Exception as exc:  # noqa: BLE001
            log_exception(logger, f"Loading reports for {cron_name} failed", exc)
            return
        for name in names:
            await self._outbox.put(name)

    def _merge(self, pairs: cabc.Iterable[EventPair]) -> None:
        with self._lock:
            for cron_name, report_name in pairs:
                names = self._cache.setdefault(cron_name, [])
                if report_name not in names:
                    names.append(report_name)
