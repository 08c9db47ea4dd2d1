"""Cron-driven emission of event names.

Every active schedule unit becomes one APScheduler job. A firing job does not
wait for downstream capacity: it spawns a task that pushes the cron name onto
the bounded output queue, so a slow consumer never stalls the cron engine.

Usage
-----
>>> events: asyncio.Queue[str] = asyncio.Queue(maxsize=15)
>>> scheduler = CronScheduler(repository, events)
>>> await scheduler.start()
>>> await events.get()
'daily-morning'

"""

from __future__ import annotations

import asyncio
import typing as typ

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from cardcast.logging import get_logger, log_debug, log_info, log_warning
from cardcast.scheduling.errors import SchedulerStateError

if typ.TYPE_CHECKING:
    import datetime as dt

    from cardcast.models import ScheduleUnit

logger = get_logger(__name__)


@typ.runtime_checkable
class ScheduleSource(typ.Protocol):
    """Port yielding the active schedule units."""

    async def load_schedule(self) -> list[ScheduleUnit]:
        """Return every active cron line with its event name."""
        ...


class CronScheduler:
    """Push event names onto ``out`` whenever their cron line fires.

    Parameters
    ----------
    source
        Port that loads the schedule on every start.
    out
        Bounded queue of cron names consumed by the event creator.
    timezone
        Zone the cron lines are interpreted in; the host zone when ``None``.

    """

    def __init__(
        self,
        source: ScheduleSource,
        out: asyncio.Queue[str],
        *,
        timezone: dt.tzinfo | None = None,
    ) -> None:
        """Bind the scheduler to its schedule source and output queue."""
        self._source = source
        self._out = out
        self._timezone = timezone
        self._engine: AsyncIOScheduler | None = None
        self._pending: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def running(self) -> bool:
        """Return whether the cron engine is started."""
        return self._engine is not None

    @property
    def job_names(self) -> list[str]:
        """Return the event names of the scheduled jobs."""
        if self._engine is None:
            return []
        return [job.args[0] for job in self._engine.get_jobs()]

    async def start(self) -> None:
        """Load the schedule and start a fresh cron engine.

        A running engine is stopped first, so calling ``start`` twice rebuilds
        the jobs from the current schedule.

        Raises
        ------
        SchedulerStateError
            If the scheduler has been closed.

        """
        if self._closed:
            raise SchedulerStateError.closed()
        if self._engine is not None:
            self.stop()

        units = await self._source.load_schedule()
        engine = (
            AsyncIOScheduler(timezone=self._timezone)
            if self._timezone is not None
            else AsyncIOScheduler()
        )
        for index, unit in enumerate(units):
            engine.add_job(
                self._fire,
                unit.cron.trigger(self._timezone),
                args=[unit.name],
                id=f"{index}:{unit.name}",
                name=unit.name,
                coalesce=True,
            )
        engine.start()
        self._engine = engine
        log_info(logger, "Scheduler started with %d job(s)", len(units))

    def stop(self) -> None:
        """Stop the cron engine; pushes already spawned still complete."""
        engine, self._engine = self._engine, None
        if engine is None:
            return
        engine.shutdown(wait=False)
        log_info(logger, "Scheduler stopped")

    async def close(self) -> None:
        """Stop, wait for in-flight pushes, then shut the output queue down."""
        self.stop()
        self._closed = True
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._out.shutdown()

    async def _fire(self, name: str) -> None:
        task = asyncio.create_task(self._push(name))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _push(self, name: str) -> None:
        try:
            await self._out.put(name)
        except asyncio.QueueShutDown:
            log_warning(logger, "Dropped event %s: output queue is shut down", name)
            return
        log_debug(logger, "Emitted event %s", name)
