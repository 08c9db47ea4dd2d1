"""Hydration of report names into ``Report`` jobs.

Loaded aggregates are cached in a small LRU keyed by report name; a
background task empties it every few minutes so edits in storage are picked
up without a restart.
"""

from __future__ import annotations

import asyncio
import typing as typ

from cardcast.common.lru import LRUCache
from cardcast.logging import (
    get_logger,
    log_debug,
    log_exception,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    from cardcast.models import Report

logger = get_logger(__name__)

DEFAULT_CACHE_SIZE = 5
DEFAULT_FLUSH_INTERVAL_S = 300.0


@typ.runtime_checkable
class ReportSource(typ.Protocol):
    """Port loading one hydrated report."""

    async def load_report_by_name(self, name: str) -> Report | None:
        """Return the active report called ``name`` or ``None``."""
        ...


class Orchestrator:
    """Consume report names from ``inbox`` and emit reports on ``outbox``.

    Parameters
    ----------
    source
        Port that hydrates reports on cache misses.
    inbox
        Queue of report names fed by the event creator.
    outbox
        Job queue consumed by the generator workers. The orchestrator owns it
        and shuts it down when ``inbox`` is exhausted.
    cache_size
        Capacity of the report LRU.
    flush_interval
        Seconds between full cache flushes.

    """

    def __init__(
        self,
        source: ReportSource,
        inbox: asyncio.Queue[str],
        outbox: asyncio.Queue[Report],
        *,
        cache_size: int = DEFAULT_CACHE_SIZE,
        flush_interval: float = DEFAULT_FLUSH_INTERVAL_S,
    ) -> None:
        """Bind the orchestrator to its source and queues."""
        self._source = source
        self._inbox = inbox
        self._outbox = outbox
        self._cache: LRUCache[str, list[Report]] = LRUCache(cache_size)
        self._flush_interval = flush_interval

    @property
    def cached_entries(self) -> int:
        """Return the number of cached report names."""
        return len(self._cache)

    def reload(self) -> None:
        """Drop every cached report."""
        self._cache.clear()
        log_info(logger, "Report cache cleared")

    async def reports_for(self, name: str) -> list[Report]:
        """Return the reports to run for ``name``, loading them on a miss.

        Raises
        ------
        MalformedReportError
            If the stored report cannot be hydrated.

        """
        cached = self._cache.get(name)
        if cached is not None:
            log_debug(logger, "Report cache hit for %s", name)
            return cached

        log_debug(logger, "Report cache miss for %s", name)
        report = await self._source.load_report_by_name(name)
        if report is None:
            log_warning(logger, "Report %s is missing or inactive", name)
            return []
        reports = [report]
        self._cache.put(name, reports)
        return reports

    async def run(self) -> None:
        """Consume ``inbox`` until it is shut down, then shut ``outbox`` down."""
        flusher = asyncio.create_task(self._flush_periodically(), name="report-flush")
        try:
            while True:
                try:
                    name = await self._inbox.get()
                except asyncio.QueueShutDown:
                    return
                await self._emit(name)
        finally:
            flusher.cancel()
            self._outbox.shutdown()

    async def _emit(self, name: str) -> None:
        try:
            reports = await self.reports_for(name)
        except Exception as exc:  # noqa: BLE001
            log_exception(logger, f"Loading report {name} failed", exc)
            return
        for report in reports:
            await self._outbox.put(report)

    async def _flush_periodically(self) -> None:
        while True:
            await asyncio.sleep(self._flush_interval)
            self._cache.clear()
            log_debug(logger, "Report cache flushed")
