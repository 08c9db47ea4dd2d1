"""Errors raised while generating one report."""

from __future__ import annotations


class GenerationError(Exception):
    """Base class for generation errors."""


class NoTargetsError(GenerationError):
    """Raised when none of a report's recipients resolved into a target."""

    def __init__(self, report_name: str) -> None:
        """Record the report that has nowhere to deliver."""
        self.report_name = report_name
        super().__init__(f"report {report_name!r} has no deliverable targets")
