"""Errors raised by the scheduling stages."""

from __future__ import annotations


class SchedulingError(Exception):
    """Base class for scheduling errors."""


class SchedulerStateError(SchedulingError):
    """Raised when a scheduler operation does not fit its current state."""

    @classmethod
    def closed(cls) -> SchedulerStateError:
        """Create an error for a scheduler whose output channel is shut down."""
        return cls("scheduler is closed")
