"""Wiring of the scheduler, event creator, orchestrator and generator.

The stages talk through bounded queues. Each producer owns its output queue
and shuts it down when its own input is exhausted, so closing the scheduler
drains the whole pipeline in topological order::

    scheduler -> events -> event creator -> names -> orchestrator -> jobs
    -> generator workers

Usage
-----
>>> pipeline = ReportPipeline(
...     repository,
...     GeneratorDependencies(collector, evaluator, exporter, strategy),
...     config=PipelineConfig(),
... )
>>> await pipeline.start()
>>> await pipeline.control.restart()
>>> await pipeline.shutdown()

"""

from __future__ import annotations

import asyncio
import typing as typ

from cardcast.config import PipelineConfig
from cardcast.generator import Generator
from cardcast.logging import get_logger, log_info
from cardcast.scheduling import (
    CronScheduler,
    EventCreator,
    EventSource,
    Orchestrator,
    ReportSource,
    ScheduleControl,
    ScheduleSource,
)

if typ.TYPE_CHECKING:
    import datetime as dt

    from cardcast.generator import GenerationEventLogger, GeneratorDependencies
    from cardcast.models import Report

logger = get_logger(__name__)


@typ.runtime_checkable
class PipelineRepository(ScheduleSource, EventSource, ReportSource, typ.Protocol):
    """Storage port covering schedules, events and report hydration."""


class ReportPipeline:
    """Own the stage tasks and the queues between them.

    Parameters
    ----------
    repository
        Storage port shared by the scheduler, event creator and orchestrator.
    dependencies
        Ports used by the generator workers.
    config
        Queue sizes, cache sizes, worker count and timeouts.
    timezone
        Zone the cron lines are interpreted in.
    event_logger
        Structured generation event logger forwarded to the generator.

    """

    def __init__(
        self,
        repository: PipelineRepository,
        dependencies: GeneratorDependencies,
        *,
        config: PipelineConfig | None = None,
        timezone: dt.tzinfo | None = None,
        event_logger: GenerationEventLogger | None = None,
    ) -> None:
        """Create the queues and the stages; nothing runs until ``start``."""
        cfg = config or PipelineConfig()
        self._events: asyncio.Queue[str] = asyncio.Queue(maxsize=cfg.buffer_size)
        self._names: asyncio.Queue[str] = asyncio.Queue(maxsize=cfg.buffer_size)
        self._jobs: asyncio.Queue[Report] = asyncio.Queue(maxsize=cfg.buffer_size)

        self.scheduler = CronScheduler(repository, self._events, timezone=timezone)
        self.control = ScheduleControl(self.scheduler, buffer=cfg.buffer_size)
        self.event_creator = EventCreator(
            repository,
            self._events,
            self._names,
            load_timeout=cfg.event_load_timeout,
        )
        self.orchestrator = Orchestrator(
            repository,
            self._names,
            self._jobs,
            cache_size=cfg.orchestrator_cache_size,
            flush_interval=cfg.orchestrator_flush_interval,
        )
        self.generator = Generator(
            dependencies,
            self._jobs,
            workers=cfg.generator_workers,
            job_timeout=cfg.job_timeout,
            event_logger=event_logger,
        )
        self._tasks: list[asyncio.Task[None]] = []
        self._stopped = asyncio.Event()

    @property
    def started(self) -> bool:
        """Return whether the stage tasks are running."""
        return bool(self._tasks)

    async def start(self) -> None:
        """Start consumers before producers, then the scheduler."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self.generator.run(), name="generator"),
            asyncio.create_task(self.orchestrator.run(), name="orchestrator"),
            asyncio.create_task(self.event_creator.run(), name="event-creator"),
        ]
        await self.scheduler.start()
        self.control.run()
        log_info(logger, "Report pipeline started")

    def reload(self) -> None:
        """Drop the event and report caches so storage edits take effect."""
        self.event_creator.reload()
        self.orchestrator.reload()

    def request_stop(self) -> None:
        """Ask :meth:`run` to shut the pipeline down."""
        self._stopped.set()

    async def run(self) -> None:
        """Start, wait for :meth:`request_stop` or cancellation, then drain."""
        await self.start()
        try:
            await self._stopped.wait()
        finally:
            await self.shutdown()

    async def shutdown(self) -> None:
        """Stop the scheduler and wait for every stage to drain."""
        if not self._tasks:
            return
        await self.control.close()
        await self.scheduler.close()
        tasks, self._tasks = self._tasks, []
        # Producers finish first; each one shuts its output queue down on exit.
        for task in reversed(tasks):
            await task
        log_info(logger, "Report pipeline stopped")
