"""Errors raised while constructing domain values."""

from __future__ import annotations


class ModelError(Exception):
    """Base class for domain model validation errors."""


class InvalidCronError(ModelError, ValueError):
    """Raised when a cron expression is not a valid 5-field crontab line."""

    def __init__(self, expression: str, reason: str) -> None:
        """Record the offending expression and the parser's reason."""
        self.expression = expression
        super().__init__(f"invalid cron expression {expression!r}: {reason}")


class MalformedReportError(ModelError):
    """Raised when a stored report cannot be hydrated into a ``Report``."""

    def __init__(self, report_name: str, reason: str) -> None:
        """Record the report name and why hydration failed."""
        self.report_name = report_name
        super().__init__(f"malformed report {report_name!r}: {reason}")

    @classmethod
    def bad_order(cls, report_name: str, detail: str) -> MalformedReportError:
        """Create an error for an export ``order`` column that is not JSON."""
        return cls(report_name, f"export order is not a JSON object ({detail})")

    @classmethod
    def unknown_format(cls, report_name: str, fmt: str) -> MalformedReportError:
        """Create an error for an unsupported export format tag."""
        return cls(report_name, f"unknown export format {fmt!r}")

    @classmethod
    def invariant(cls, report_name: str, detail: str) -> MalformedReportError:
        """Create an error for a report that breaks an aggregate invariant."""
        return cls(report_name, detail)
