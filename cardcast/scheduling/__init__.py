"""Cron scheduling and the stages that turn fires into report jobs.

Public API
----------
CronScheduler
    Pushes cron names onto a queue when their schedule fires.
ScheduleControl, ScheduleCommand
    Runtime start/stop/restart of the scheduler.
EventCreator
    Maps cron names to the report names they trigger.
Orchestrator
    Hydrates report names into ``Report`` jobs.

"""

from cardcast.scheduling.control import ScheduleCommand, ScheduleControl
from cardcast.scheduling.errors import SchedulerStateError, SchedulingError
from cardcast.scheduling.event_creator import EventCreator, EventSource
from cardcast.scheduling.orchestrator import Orchestrator, ReportSource
from cardcast.scheduling.scheduler import CronScheduler, ScheduleSource

__all__ = [
    "CronScheduler",
    "EventCreator",
    "EventSource",
    "Orchestrator",
    "ReportSource",
    "ScheduleCommand",
    "ScheduleControl",
    "ScheduleSource",
    "SchedulerStateError",
    "SchedulingError",
]
