"""Worker pool that turns ``Report`` jobs into delivered artifacts.

Each job runs under its own deadline and walks one pipeline: collect the
cards, evaluate the predicate, render every export, resolve recipients and
hand the artifacts to the delivery strategy. A failing export is logged and
skipped; every other failure stops the job and is logged, and the worker
moves on to the next job.

Usage
-----
>>> generator = Generator(
...     GeneratorDependencies(
...         collector=collector,
...         evaluator=evaluator,
...         exporter=ReportExporter(),
...         strategy=strategy,
...     ),
...     jobs,
...     workers=2,
... )
>>> await generator.run()

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import enum
import time
import typing as typ
from datetime import timedelta

from cardcast.delivery import TargetResolutionError, resolve_targets
from cardcast.generator.errors import NoTargetsError
from cardcast.generator.observability import GenerationEventLogger
from cardcast.logging import get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.models import (
        Card,
        ExportSpec,
        FetchResult,
        Report,
        ReportData,
        Target,
    )

logger = get_logger(__name__)

DEFAULT_WORKERS = 1
DEFAULT_JOB_TIMEOUT_S = 300.0


class JobOutcome(enum.StrEnum):
    """Terminal states of one generation job."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"


class CollectorPort(typ.Protocol):
    """Fetches the rows of a report's cards."""

    async def collect(self, *cards: Card) -> FetchResult:
        """Return the rows of every card keyed by title."""
        ...


class EvaluatorPort(typ.Protocol):
    """Decides whether a report should be sent."""

    async def evaluate(self, data: FetchResult, expression: str) -> bool:
        """Return the predicate's verdict for ``data``."""
        ...


class ExporterPort(typ.Protocol):
    """Renders one export of a report."""

    async def export(
        self, data: FetchResult, spec: ExportSpec, *, report_name: str
    ) -> ReportData:
        """Return the artifact ``spec`` asks for."""
        ...


class SenderPort(typ.Protocol):
    """Delivers artifacts to resolved targets."""

    async def send(
        self, targets: cabc.Sequence[Target], artifacts: cabc.Sequence[ReportData]
    ) -> None:
        """Deliver ``artifacts`` to every target."""
        ...


@dc.dataclass(frozen=True, slots=True)
class GeneratorDependencies:
    """Stage ports used by every generation job.

    Attributes
    ----------
    collector
        Fetches card rows.
    evaluator
        Runs the report predicate.
    exporter
        Renders exports.
    strategy
        Delivers artifacts.

    """

    collector: CollectorPort
    evaluator: EvaluatorPort
    exporter: ExporterPort
    strategy: SenderPort


class Generator:
    """Run report jobs from ``jobs`` on a fixed pool of workers.

    Parameters
    ----------
    dependencies
        Stage ports shared by all workers.
    jobs
        Queue of hydrated reports; workers stop once it is shut down and
        drained.
    workers
        Number of concurrent workers; ``0`` selects one.
    job_timeout
        Seconds one job may take before it is abandoned.
    event_logger
        Structured lifecycle logger; a default one is created when omitted.

    """

    def __init__(
        self,
        dependencies: GeneratorDependencies,
        jobs: asyncio.Queue[Report],
        *,
        workers: int = DEFAULT_WORKERS,
        job_timeout: float = DEFAULT_JOB_TIMEOUT_S,
        event_logger: GenerationEventLogger | None = None,
    ) -> None:
        """Bind the pool to its dependencies and job queue."""
        if workers < 0:
            msg = f"workers must not be negative, got: {workers}"
            raise ValueError(msg)
        self._deps = dependencies
        self._jobs = jobs
        self._workers = workers or DEFAULT_WORKERS
        self._job_timeout = job_timeout
        self._events = event_logger or GenerationEventLogger()

    @property
    def workers(self) -> int:
        """Return the worker count."""
        return self._workers

    async def run(self) -> None:
        """Run every worker until the job queue is shut down and drained."""
        log_info(logger, "Generator started with %d worker(s)", self._workers)
        async with asyncio.TaskGroup() as group:
            for index in range(self._workers):
                group.create_task(self._work(index), name=f"generator-{index}")
        log_info(logger, "Generator stopped")

    async def _work(self, index: int) -> None:
        while True:
            try:
                report = await self._jobs.get()
            except asyncio.QueueShutDown:
                return
            await self.generate(report, worker=index)

    async def generate(self, report: Report, *, worker: int = 0) -> JobOutcome:
        """Run one job to completion and report how it ended.

        Failures are logged as ``generation.job.failed`` rather than raised;
        cancellation still propagates.
        """
        self._events.log_job_started(report_name=report.name, worker=worker)
        started = time.monotonic()
        try:
            async with asyncio.timeout(self._job_timeout):
                return await self._run_job(report, started)
        except Exception as exc:  # noqa: BLE001
            self._events.log_job_failed(
                report_name=report.name,
                error=exc,
                duration=timedelta(seconds=time.monotonic() - started),
            )
            return JobOutcome.FAILED

    async def _run_job(self, report: Report, started: float) -> JobOutcome:
        data: FetchResult = {}
        if report.queries:
            data = await self._deps.collector.collect(*report.queries)

        if not await self._deps.evaluator.evaluate(data, report.evaluation):
            self._events.log_job_skipped(report_name=report.name)
            return JobOutcome.SKIPPED

        artifacts = await self._export_all(report, data)
        targets = self._resolve(report)
        await self._deps.strategy.send(targets, artifacts)

        self._events.log_job_completed(
            report_name=report.name,
            artifacts=len(artifacts),
            targets=len(targets),
            duration=timedelta(seconds=time.monotonic() - started),
        )
        return JobOutcome.COMPLETED

    async def _export_all(
        self, report: Report, data: FetchResult
    ) -> list[ReportData]:
        artifacts: list[ReportData] = []
        for spec in report.exports:
            try:
                artifact = await self._deps.exporter.export(
                    data, spec, report_name=report.name
                )
            except Exception as exc:  # noqa: BLE001
                self._events.log_export_failed(
                    report_name=report.name, export_format=spec.format, error=exc
                )
                continue
            artifacts.append(artifact)
        return artifacts

    def _resolve(self, report: Report) -> list[Target]:
        try:
            targets = resolve_targets(report.recipients)
        except TargetResolutionError as exc:
            log_error(logger, "Report %s: %s", report.name, exc)
            targets = list(exc.partial)
        if not targets:
            raise NoTargetsError(report.name)
        return targets
