"""Unit tests for the event creator and orchestrator stages."""

from __future__ import annotations

import asyncio

import pytest

from cardcast.models import (
    Card,
    ExportFormat,
    ExportSpec,
    FileServer,
    MalformedReportError,
    Report,
)
from cardcast.scheduling import EventCreator, Orchestrator


def _drain[T](queue: asyncio.Queue[T]) -> list[T]:
    items: list[T] = []
    while True:
        try:
            items.append(queue.get_nowait())
        except (asyncio.QueueEmpty, asyncio.QueueShutDown):
            return items


class _FakeEvents:
    """Event source backed by a list of ``(cron, report)`` pairs."""

    def __init__(
        self, pairs: list[tuple[str, str]], *, delay: float = 0.0
    ) -> None:
        self.pairs = pairs
        self.bulk_loads = 0
        self.cron_loads: list[str] = []
        self._delay = delay

    async def load_events(self) -> list[tuple[str, str]]:
        self.bulk_loads += 1
        await asyncio.sleep(self._delay)
        return list(self.pairs)

    async def load_events_by_cron(self, name: str) -> list[tuple[str, str]]:
        self.cron_loads.append(name)
        await asyncio.sleep(self._delay)
        return [pair for pair in self.pairs if pair[0] == name]


class TestEventCreator:
    """Tests for mapping cron names to report names."""

    @pytest.mark.asyncio
    async def test_warm_fills_cache(self) -> None:
        """One bulk load serves later lookups without storage access."""
        source = _FakeEvents([("m", "a"), ("m", "b"), ("n", "c")])
        creator = EventCreator(source, asyncio.Queue(), asyncio.Queue())

        await creator.warm()

        assert await creator.report_names("m") == ["a", "b"]
        assert source.cron_loads == [], "Expected a cache hit"

    @pytest.mark.asyncio
    async def test_miss_loads_single_cron(self) -> None:
        """A cron added after warm-up is loaded and cached on first use."""
        source = _FakeEvents([("m", "a")])
        creator = EventCreator(source, asyncio.Queue(), asyncio.Queue())
        await creator.warm()
        source.pairs.append(("late", "z"))

        first = await creator.report_names("late")
        second = await creator.report_names("late")

        assert first == second == ["z"]
        assert source.cron_loads == ["late"]

    @pytest.mark.asyncio
    async def test_unknown_cron_yields_nothing(self) -> None:
        """A cron with no reports emits nothing and is not cached."""
        source = _FakeEvents([])
        creator = EventCreator(source, asyncio.Queue(), asyncio.Queue())

        assert await creator.report_names("ghost") == []
        assert creator.cached("ghost") is None
        await creator.report_names("ghost")
        assert source.cron_loads == ["ghost", "ghost"]

    @pytest.mark.asyncio
    async def test_reload_clears_cache(self) -> None:
        """After a reload lookups see storage again."""
        source = _FakeEvents([("m", "a")])
        creator = EventCreator(source, asyncio.Queue(), asyncio.Queue())
        await creator.warm()
        source.pairs[:] = [("m", "b")]

        creator.reload()

        assert await creator.report_names("m") == ["b"]

    @pytest.mark.asyncio
    async def test_slow_load_times_out(self) -> None:
        """Storage loads are bounded by the configured timeout."""
        source = _FakeEvents([("m", "a")], delay=1.0)
        creator = EventCreator(
            source, asyncio.Queue(), asyncio.Queue(), load_timeout=0.01
        )

        with pytest.raises(TimeoutError):
            await creator.report_names("m")

    @pytest.mark.asyncio
    async def test_run_fans_out_and_shuts_outbox(self) -> None:
        """Every triggered report name is emitted in order."""
        inbox: asyncio.Queue[str] = asyncio.Queue()
        outbox: asyncio.Queue[str] = asyncio.Queue()
        source = _FakeEvents([("m", "a"), ("m", "b"), ("n", "c")])
        creator = EventCreator(source, inbox, outbox)
        for name in ("m", "ghost", "n"):
            inbox.put_nowait(name)
        inbox.shutdown()

        await asyncio.wait_for(creator.run(), timeout=1)

        assert _drain(outbox) == ["a", "b", "c"]
        with pytest.raises(asyncio.QueueShutDown):
            await outbox.put("x")

    @pytest.mark.asyncio
    async def test_run_survives_failed_warm_up(self) -> None:
        """A failed warm-up falls back to per-cron loads."""
        inbox: asyncio.Queue[str] = asyncio.Queue()
        outbox: asyncio.Queue[str] = asyncio.Queue()

        class _FlakySource(_FakeEvents):
            async def load_events(self) -> list[tuple[str, str]]:
                msg = "database is starting up"
                raise ConnectionError(msg)

        creator = EventCreator(_FlakySource([("m", "a")]), inbox, outbox)
        inbox.put_nowait("m")
        inbox.shutdown()

        await asyncio.wait_for(creator.run(), timeout=1)

        assert _drain(outbox) == ["a"]


def _report(name: str) -> Report:
    return Report(
        name=name,
        title=name,
        queries=(Card("u", "Q"),),
        exports=(ExportSpec(ExportFormat.CSV),),
        recipients=(FileServer("/x"),),
    )


class _FakeReports:
    def __init__(self, *names: str, broken: frozenset[str] = frozenset()) -> None:
        self.reports = {name: _report(name) for name in names}
        self.loads: list[str] = []
        self._broken = broken

    async def load_report_by_name(self, name: str) -> Report | None:
        self.loads.append(name)
        if name in self._broken:
            raise MalformedReportError.invariant(name, "no exports")
        return self.reports.get(name)


class TestOrchestrator:
    """Tests for hydrating report names into jobs."""

    @pytest.mark.asyncio
    async def test_reports_are_cached(self) -> None:
        """A second lookup is served from the LRU."""
        source = _FakeReports("a")
        orchestrator = Orchestrator(source, asyncio.Queue(), asyncio.Queue())

        first = await orchestrator.reports_for("a")
        second = await orchestrator.reports_for("a")

        assert first == second == [source.reports["a"]]
        assert source.loads == ["a"]
        assert orchestrator.cached_entries == 1

    @pytest.mark.asyncio
    async def test_missing_report_is_not_cached(self) -> None:
        """Unknown names yield no jobs and are looked up again next time."""
        source = _FakeReports()
        orchestrator = Orchestrator(source, asyncio.Queue(), asyncio.Queue())

        assert await orchestrator.reports_for("ghost") == []
        assert orchestrator.cached_entries == 0

    @pytest.mark.asyncio
    async def test_cache_is_bounded(self) -> None:
        """The least recently used report is evicted."""
        source = _FakeReports("a", "b", "c")
        orchestrator = Orchestrator(
            source, asyncio.Queue(), asyncio.Queue(), cache_size=2
        )

        for name in ("a", "b", "c", "a"):
            await orchestrator.reports_for(name)

        assert source.loads == ["a", "b", "c", "a"]
        assert orchestrator.cached_entries == 2

    @pytest.mark.asyncio
    async def test_reload_clears_cache(self) -> None:
        """Reload forces the next lookup to storage."""
        source = _FakeReports("a")
        orchestrator = Orchestrator(source, asyncio.Queue(), asyncio.Queue())
        await orchestrator.reports_for("a")

        orchestrator.reload()
        await orchestrator.reports_for("a")

        assert source.loads == ["a", "a"]

    @pytest.mark.asyncio
    async def test_periodic_flush(self) -> None:
        """The background flush empties the cache while running."""
        inbox: asyncio.Queue[str] = asyncio.Queue()
        outbox: asyncio.Queue[Report] = asyncio.Queue()
        orchestrator = Orchestrator(
            _FakeReports("a"), inbox, outbox, flush_interval=0.01
        )
        task = asyncio.create_task(orchestrator.run())
        await orchestrator.reports_for("a")

        await asyncio.sleep(0.05)

        assert orchestrator.cached_entries == 0
        inbox.shutdown()
        await asyncio.wait_for(task, timeout=1)

    @pytest.mark.asyncio
    async def test_run_skips_broken_reports(self) -> None:
        """Malformed and missing reports are logged; the rest are emitted."""
        inbox: asyncio.Queue[str] = asyncio.Queue()
        outbox: asyncio.Queue[Report] = asyncio.Queue()
        source = _FakeReports("a", "c", broken=frozenset({"b"}))
        orchestrator = Orchestrator(source, inbox, outbox)
        for name in ("a", "b", "ghost", "c"):
            inbox.put_nowait(name)
        inbox.shutdown()

        await asyncio.wait_for(orchestrator.run(), timeout=1)

        assert [report.name for report in _drain(outbox)] == ["a", "c"]
        with pytest.raises(asyncio.QueueShutDown):
            outbox.put_nowait(_report("late"))
