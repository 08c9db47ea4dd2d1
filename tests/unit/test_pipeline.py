"""End-to-end tests for the report pipeline with in-memory ports."""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ

import pytest

from cardcast.config import PipelineConfig
from cardcast.exporters import ReportExporter
from cardcast.generator import GeneratorDependencies
from cardcast.models import (
    Card,
    ExportFormat,
    ExportSpec,
    Report,
    ScheduleUnit,
    TelegramChat,
    TextData,
    parse_cron,
)
from cardcast.pipeline import PipelineRepository, ReportPipeline

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.models import FetchResult, ReportData, Target


class _MemoryRepository:
    """Schedules, events and reports held in dictionaries."""

    def __init__(self) -> None:
        self.schedule = [ScheduleUnit(cron=parse_cron("0 9 * * 1-5"), name="morning")]
        self.events = [("morning", "daily_sales"), ("morning", "weekly")]
        self.reports = {
            name: Report(
                name=name,
                title=name,
                queries=(Card("uuid-1", "Q"),),
                exports=(
                    ExportSpec(
                        ExportFormat.TEXT,
                        template=f"{name}: {{{{ data[0].n }}}}",
                    ),
                ),
                recipients=(TelegramChat(42),),
            )
            for name in ("daily_sales", "weekly")
        }

    async def load_schedule(self) -> list[ScheduleUnit]:
        return list(self.schedule)

    async def load_events(self) -> list[tuple[str, str]]:
        return list(self.events)

    async def load_events_by_cron(self, name: str) -> list[tuple[str, str]]:
        return [pair for pair in self.events if pair[0] == name]

    async def load_report_by_name(self, name: str) -> Report | None:
        return self.reports.get(name)


class _StaticCollector:
    async def collect(self, *cards: Card) -> FetchResult:
        return {card.title: [{"n": 7}] for card in cards}


class _AlwaysTrue:
    async def evaluate(self, data: FetchResult, expression: str) -> bool:
        return True


class _RecordingSender:
    def __init__(self) -> None:
        self.messages: list[str] = []
        self.changed = asyncio.Event()

    async def send(
        self, targets: cabc.Sequence[Target], artifacts: cabc.Sequence[ReportData]
    ) -> None:
        for artifact in artifacts:
            assert isinstance(artifact, TextData)
            self.messages.append(artifact.body)
        self.changed.set()

    async def wait_for(self, count: int) -> None:
        while len(self.messages) < count:
            self.changed.clear()
            await self.changed.wait()


def _pipeline(
    repository: _MemoryRepository, sender: _RecordingSender
) -> ReportPipeline:
    deps = GeneratorDependencies(
        collector=_StaticCollector(),
        evaluator=_AlwaysTrue(),
        exporter=ReportExporter(),
        strategy=sender,
    )
    return ReportPipeline(
        repository,
        deps,
        config=PipelineConfig(buffer_size=2, generator_workers=2),
        timezone=dt.UTC,
    )


class TestReportPipeline:
    """Tests for the wired pipeline."""

    def test_repository_satisfies_port(self) -> None:
        """The in-memory repository implements every storage port."""
        assert isinstance(_MemoryRepository(), PipelineRepository)

    @pytest.mark.asyncio
    async def test_fired_cron_delivers_every_report(self) -> None:
        """One cron event fans out into one delivery per report."""
        sender = _RecordingSender()
        pipeline = _pipeline(_MemoryRepository(), sender)
        await pipeline.start()
        try:
            assert pipeline.started
            assert pipeline.scheduler.job_names == ["morning"]

            await pipeline.scheduler._fire("morning")
            await asyncio.wait_for(sender.wait_for(2), timeout=5)
        finally:
            await asyncio.wait_for(pipeline.shutdown(), timeout=5)

        assert sorted(sender.messages) == ["daily_sales: 7", "weekly: 7"]
        assert not pipeline.started

    @pytest.mark.asyncio
    async def test_shutdown_drains_in_flight_events(self) -> None:
        """Events fired before shutdown are still delivered."""
        sender = _RecordingSender()
        pipeline = _pipeline(_MemoryRepository(), sender)
        await pipeline.start()

        for _ in range(3):
            await pipeline.scheduler._fire("morning")
        await asyncio.wait_for(pipeline.shutdown(), timeout=5)

        assert len(sender.messages) == 6

    @pytest.mark.asyncio
    async def test_reload_picks_up_new_reports(self) -> None:
        """Cache reloads make storage edits visible to the next event."""
        repository = _MemoryRepository()
        sender = _RecordingSender()
        pipeline = _pipeline(repository, sender)
        await pipeline.start()
        try:
            await pipeline.scheduler._fire("morning")
            await asyncio.wait_for(sender.wait_for(2), timeout=5)
            repository.events = [("morning", "weekly")]

            pipeline.reload()
            await pipeline.scheduler._fire("morning")
            await asyncio.wait_for(sender.wait_for(3), timeout=5)
        finally:
            await asyncio.wait_for(pipeline.shutdown(), timeout=5)

        assert sender.messages[-1] == "weekly: 7"

    @pytest.mark.asyncio
    async def test_run_stops_on_request(self) -> None:
        """``run`` returns once a stop is requested."""
        pipeline = _pipeline(_MemoryRepository(), _RecordingSender())
        runner = asyncio.create_task(pipeline.run())
        await asyncio.sleep(0.01)

        pipeline.request_stop()
        await asyncio.wait_for(runner, timeout=5)

        assert not pipeline.started
