"""Control plane for starting and stopping the scheduler at runtime.

External actors such as an admin UI post ``start``, ``stop`` or ``restart``
commands; one monitor task applies them to the scheduler in order.

Usage
-----
>>> control = ScheduleControl(scheduler)
>>> control.run()
>>> await control.restart()
>>> await control.close()

"""

from __future__ import annotations

import asyncio
import enum
import typing as typ

from cardcast.logging import get_logger, log_exception, log_info

if typ.TYPE_CHECKING:
    from cardcast.scheduling.scheduler import CronScheduler

logger = get_logger(__name__)

DEFAULT_COMMAND_BUFFER = 15


class ScheduleCommand(enum.StrEnum):
    """State transitions accepted by the scheduler monitor."""

    START = "start"
    STOP = "stop"
    RESTART = "restart"


class ScheduleControl:
    """Serialise scheduler transitions requested from outside the pipeline."""

    def __init__(
        self, scheduler: CronScheduler, *, buffer: int = DEFAULT_COMMAND_BUFFER
    ) -> None:
        """Create the command queue; call :meth:`run` to start applying it."""
        self._scheduler = scheduler
        self._commands: asyncio.Queue[ScheduleCommand] = asyncio.Queue(
            maxsize=buffer
        )
        self._monitor: asyncio.Task[None] | None = None

    def run(self) -> asyncio.Task[None]:
        """Start the monitor task if it is not already running."""
        if self._monitor is None or self._monitor.done():
            self._monitor = asyncio.create_task(
                self._consume(), name="schedule-control"
            )
        return self._monitor

    async def post(self, command: ScheduleCommand | str) -> None:
        """Queue ``command`` for the monitor.

        Raises
        ------
        ValueError
            If ``command`` is not a known command name.

        """
        await self._commands.put(ScheduleCommand(command))

    async def start(self) -> None:
        """Request a scheduler start."""
        await self.post(ScheduleCommand.START)

    async def stop(self) -> None:
        """Request a scheduler stop."""
        await self.post(ScheduleCommand.STOP)

    async def restart(self) -> None:
        """Request a stop followed by a start with a freshly loaded schedule."""
        await self.post(ScheduleCommand.RESTART)

    async def join(self) -> None:
        """Wait until every queued command has been applied."""
        await self._commands.join()

    async def close(self) -> None:
        """Apply the queued commands, then stop the monitor."""
        self._commands.shutdown()
        if self._monitor is not None:
            await self._monitor

    async def apply(self, command: ScheduleCommand) -> None:
        """Apply one transition to the scheduler."""
        log_info(logger, "Applying scheduler command %s", command)
        match command:
            case ScheduleCommand.START:
                await self._scheduler.start()
            case ScheduleCommand.STOP:
                self._scheduler.stop()
            case ScheduleCommand.RESTART:
                self._scheduler.stop()
                await self._scheduler.start()

    async def _consume(self) -> None:
        while True:
            try:
                command = await self._commands.get()
            except asyncio.QueueShutDown:
                return
            try:
                await self.apply(command)
            except Exception as exc:  # noqa: BLE001
                log_exception(logger, f"Scheduler command {command} failed", exc)
            finally:
                self._commands.task_done()
