"""Emit structured observability events for report generation jobs.

Usage
-----
>>> event_logger = GenerationEventLogger()
>>> event_logger.log_job_started(report_name="daily-sales", worker=0)
>>> event_logger.log_job_skipped(report_name="daily-sales")

"""

from __future__ import annotations

import enum
import typing as typ

from cardcast.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from cardcast.models import ExportFormat

logger = get_logger(__name__)

SKIPPED_REASON = "negative evaluation"


class GenerationEventType(enum.StrEnum):
    """Structured log event types for report generation jobs."""

    JOB_STARTED = "generation.job.started"
    JOB_SKIPPED = "generation.job.skipped"
    JOB_COMPLETED = "generation.job.completed"
    JOB_FAILED = "generation.job.failed"
    EXPORT_FAILED = "generation.export.failed"


class GenerationEventLogger:
    """Emit structured generation events via femtologging."""

    def log_job_started(self, *, report_name: str, worker: int) -> None:
        """Log that ``worker`` picked up ``report_name``."""
        log_info(
            logger,
            "[%s] report=%s worker=%d",
            GenerationEventType.JOB_STARTED,
            report_name,
            worker,
        )

    def log_job_skipped(self, *, report_name: str) -> None:
        """Log a job whose predicate evaluated to false."""
        log_info(
            logger,
            "[%s] report=%s reason=%s",
            GenerationEventType.JOB_SKIPPED,
            report_name,
            SKIPPED_REASON,
        )

    def log_job_completed(
        self,
        *,
        report_name: str,
        artifacts: int,
        targets: int,
        duration: dt.timedelta,
    ) -> None:
        """Log a delivered job.

        Parameters
        ----------
        report_name
            Name of the generated report.
        artifacts
            Number of artifacts rendered.
        targets
            Number of targets delivered to.
        duration
            Elapsed time from pickup to delivery.

        """
        log_info(
            logger,
            "[%s] report=%s artifacts=%d targets=%d duration_seconds=%.3f",
            GenerationEventType.JOB_COMPLETED,
            report_name,
            artifacts,
            targets,
            duration.total_seconds(),
        )

    def log_job_failed(
        self,
        *,
        report_name: str,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a job that stopped on ``error``.

        Parameters
        ----------
        report_name
            Name of the failed report.
        error
            Exception that stopped the job.
        duration
            Elapsed time from pickup to failure.

        """
        log_error(
            logger,
            "[%s] report=%s duration_seconds=%.3f error_type=%s error_message=%s",
            GenerationEventType.JOB_FAILED,
            report_name,
            duration.total_seconds(),
            type(error).__name__,
            str(error),
            exc_info=error,
        )

    def log_export_failed(
        self,
        *,
        report_name: str,
        export_format: ExportFormat,
        error: BaseException,
    ) -> None:
        """Log one export that failed while the rest of the job continues."""
        log_warning(
            logger,
            "[%s] report=%s format=%s error_type=%s error_message=%s",
            GenerationEventType.EXPORT_FAILED,
            report_name,
            export_format,
            type(error).__name__,
            str(error),
        )
