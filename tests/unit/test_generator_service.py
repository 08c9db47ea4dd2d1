"""Unit tests for the generator worker pool and its lifecycle events."""

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ

import pytest

from cardcast.delivery import DeliveryError
from cardcast.exporters import RenderError, ReportExporter
from cardcast.generator import (
    GenerationEventLogger,
    GenerationEventType,
    Generator,
    GeneratorDependencies,
    JobOutcome,
)
from cardcast.models import (
    Card,
    EmailRecipient,
    ExportFormat,
    ExportSpec,
    FileServer,
    FileSet,
    Report,
    TelegramChat,
    TextData,
)
from tests.helpers.femtologging_capture import capture_femto_logs

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.models import FetchResult, ReportData, Target


class _FakeCollector:
    def __init__(self, data: FetchResult, *, delay: float = 0.0) -> None:
        self.data = data
        self.calls: list[tuple[Card, ...]] = []
        self._delay = delay

    async def collect(self, *cards: Card) -> FetchResult:
        self.calls.append(cards)
        await asyncio.sleep(self._delay)
        return self.data


class _FakeEvaluator:
    def __init__(self, *, verdict: bool = True) -> None:
        self.verdict = verdict
        self.expressions: list[str] = []

    async def evaluate(self, data: FetchResult, expression: str) -> bool:
        self.expressions.append(expression)
        return self.verdict


class _FakeExporter:
    """Renders through the real exporter unless the format is set to fail."""

    def __init__(self, failing: frozenset[ExportFormat] = frozenset()) -> None:
        self._real = ReportExporter()
        self._failing = failing

    async def export(
        self, data: FetchResult, spec: ExportSpec, *, report_name: str
    ) -> ReportData:
        if spec.format in self._failing:
            raise RenderError(spec.format, "renderer crashed")
        return await self._real.export(data, spec, report_name=report_name)


class _FakeSender:
    def __init__(self, *, error: Exception | None = None) -> None:
        self.sent: list[tuple[list[Target], list[ReportData]]] = []
        self._error = error

    async def send(
        self, targets: cabc.Sequence[Target], artifacts: cabc.Sequence[ReportData]
    ) -> None:
        self.sent.append((list(targets), list(artifacts)))
        if self._error is not None:
            raise self._error


def _deps(
    *,
    data: FetchResult | None = None,
    verdict: bool = True,
    failing: frozenset[ExportFormat] = frozenset(),
    sender: _FakeSender | None = None,
    delay: float = 0.0,
) -> GeneratorDependencies:
    return GeneratorDependencies(
        collector=_FakeCollector(data or {}, delay=delay),
        evaluator=_FakeEvaluator(verdict=verdict),
        exporter=_FakeExporter(failing),
        strategy=sender or _FakeSender(),
    )


def _report(**overrides: typ.Any) -> Report:
    fields: dict[str, typ.Any] = {
        "name": "daily_sales",
        "title": "Daily sales",
        "queries": (Card("uuid-1", "Q"),),
        "exports": (
            ExportSpec(ExportFormat.TEXT, template="value: {{ data[0].n }}"),
        ),
        "recipients": (TelegramChat(42),),
    }
    fields.update(overrides)
    return Report(**fields)


class TestGenerate:
    """Tests for running a single job."""

    @pytest.mark.asyncio
    async def test_text_report_is_delivered(self) -> None:
        """Rows are rendered into a message for the chat."""
        sender = _FakeSender()
        deps = _deps(data={"Q": [{"n": 3}]}, sender=sender)
        generator = Generator(deps, asyncio.Queue())

        outcome = await generator.generate(_report())

        assert outcome is JobOutcome.COMPLETED
        ((targets, artifacts),) = sender.sent
        assert targets == [TelegramChat(42)]
        assert artifacts == [TextData(body="value: 3")]

    @pytest.mark.asyncio
    async def test_negative_evaluation_skips_delivery(self) -> None:
        """A false predicate ends the job before any export."""
        sender = _FakeSender()
        evaluator = _FakeEvaluator(verdict=False)
        deps = GeneratorDependencies(
            collector=_FakeCollector({"Q": [{"n": 0}]}),
            evaluator=evaluator,
            exporter=_FakeExporter(),
            strategy=sender,
        )
        generator = Generator(deps, asyncio.Queue())

        outcome = await generator.generate(_report(evaluation="Q[0].n > 0"))

        assert outcome is JobOutcome.SKIPPED
        assert sender.sent == []
        assert evaluator.expressions == ["Q[0].n > 0"]

    @pytest.mark.asyncio
    async def test_report_without_queries_skips_collection(self) -> None:
        """Data-free templates render with nothing fetched."""
        sender = _FakeSender()
        collector = _FakeCollector({})
        deps = GeneratorDependencies(
            collector=collector,
            evaluator=_FakeEvaluator(),
            exporter=_FakeExporter(),
            strategy=sender,
        )
        generator = Generator(deps, asyncio.Queue())
        report = _report(
            queries=(),
            exports=(ExportSpec(ExportFormat.TEXT, template="Reminder"),),
        )

        outcome = await generator.generate(report)

        assert outcome is JobOutcome.COMPLETED
        assert collector.calls == []
        assert sender.sent[0][1] == [TextData(body="Reminder")]

    @pytest.mark.asyncio
    async def test_failed_export_is_skipped(self) -> None:
        """The remaining exports are still delivered."""
        sender = _FakeSender()
        deps = _deps(
            data={"Q": [{"n": 1}]},
            failing=frozenset({ExportFormat.PNG}),
            sender=sender,
        )
        generator = Generator(deps, asyncio.Queue())
        report = _report(
            exports=(ExportSpec(ExportFormat.PNG), ExportSpec(ExportFormat.CSV)),
            recipients=(FileServer("/reports"),),
        )

        outcome = await generator.generate(report)

        assert outcome is JobOutcome.COMPLETED
        ((_, artifacts),) = sender.sent
        assert len(artifacts) == 1
        assert isinstance(artifacts[0], FileSet)

    @pytest.mark.asyncio
    async def test_unresolvable_recipients_fail_the_job(self) -> None:
        """A job whose every recipient fails to resolve is not sent."""
        sender = _FakeSender()
        deps = _deps(data={"Q": [{"n": 1}]}, sender=sender)
        generator = Generator(deps, asyncio.Queue())
        broken = EmailRecipient(to=("a@example.com",), subject_template="{{ oops")

        outcome = await generator.generate(_report(recipients=(broken,)))

        assert outcome is JobOutcome.FAILED
        assert sender.sent == []

    @pytest.mark.asyncio
    async def test_partially_resolved_recipients_still_sent(self) -> None:
        """Recipients that resolved keep their delivery."""
        sender = _FakeSender()
        deps = _deps(data={"Q": [{"n": 1}]}, sender=sender)
        generator = Generator(deps, asyncio.Queue())
        broken = EmailRecipient(to=("a@example.com",), subject_template="{{ oops")

        outcome = await generator.generate(
            _report(recipients=(broken, TelegramChat(7)))
        )

        assert outcome is JobOutcome.COMPLETED
        assert sender.sent[0][0] == [TelegramChat(7)]

    @pytest.mark.asyncio
    async def test_delivery_error_fails_the_job(self) -> None:
        """Delivery failures surface as a failed outcome, not an exception."""
        sender = _FakeSender(error=DeliveryError([OSError("share down")]))
        deps = _deps(data={"Q": [{"n": 1}]}, sender=sender)
        generator = Generator(deps, asyncio.Queue())

        assert await generator.generate(_report()) is JobOutcome.FAILED

    @pytest.mark.asyncio
    async def test_job_timeout(self) -> None:
        """A job exceeding its deadline is abandoned."""
        deps = _deps(data={"Q": [{"n": 1}]}, delay=1.0)
        generator = Generator(deps, asyncio.Queue(), job_timeout=0.01)

        assert await generator.generate(_report()) is JobOutcome.FAILED


class TestGeneratorPool:
    """Tests for the worker pool."""

    def test_worker_count(self) -> None:
        """Zero selects one worker and negatives are rejected."""
        assert Generator(_deps(), asyncio.Queue(), workers=0).workers == 1
        with pytest.raises(ValueError, match="negative"):
            Generator(_deps(), asyncio.Queue(), workers=-1)

    @pytest.mark.asyncio
    async def test_workers_drain_queue_then_stop(self) -> None:
        """Every queued job runs; a failing one does not stop the pool."""
        jobs: asyncio.Queue[Report] = asyncio.Queue()
        sender = _FakeSender()
        deps = _deps(data={"Q": [{"n": 1}]}, sender=sender)
        broken = EmailRecipient(to=("a@example.com",), subject_template="{{ oops")
        for index in range(4):
            jobs.put_nowait(_report(name=f"r{index}"))
        jobs.put_nowait(_report(name="broken", recipients=(broken,)))
        jobs.shutdown()

        await asyncio.wait_for(Generator(deps, jobs, workers=3).run(), timeout=5)

        assert len(sender.sent) == 4


class TestGenerationEventLogger:
    """Tests for ``GenerationEventLogger`` structured log events."""

    def test_started_and_skipped(self) -> None:
        """Lifecycle events are logged at INFO with the report name."""
        event_logger = GenerationEventLogger()

        with capture_femto_logs("cardcast.generator.observability") as capture:
            event_logger.log_job_started(report_name="daily_sales", worker=2)
            event_logger.log_job_skipped(report_name="daily_sales")
            capture.wait_for_count(2)
            started, skipped = capture.records[:2]
            assert started.level == "INFO"
            assert GenerationEventType.JOB_STARTED in started.message
            assert "worker=2" in started.message
            assert GenerationEventType.JOB_SKIPPED in skipped.message
            assert "reason=negative evaluation" in skipped.message

    def test_completed_includes_counts(self) -> None:
        """Completion events carry artifact and target counts."""
        with capture_femto_logs("cardcast.generator.observability") as capture:
            GenerationEventLogger().log_job_completed(
                report_name="daily_sales",
                artifacts=2,
                targets=3,
                duration=dt.timedelta(seconds=1.5),
            )
            capture.wait_for_count(1)
            record = capture.records[0]
            assert GenerationEventType.JOB_COMPLETED in record.message
            assert "artifacts=2" in record.message
            assert "targets=3" in record.message
            assert "duration_seconds=1.500" in record.message

    def test_failed_logs_error(self) -> None:
        """Failures are logged at ERROR with the error type."""
        with capture_femto_logs("cardcast.generator.observability") as capture:
            GenerationEventLogger().log_job_failed(
                report_name="daily_sales",
                error=RuntimeError("boom"),
                duration=dt.timedelta(seconds=2),
            )
            capture.wait_for_count(1)
            record = capture.records[0]
            assert record.level == "ERROR"
            assert GenerationEventType.JOB_FAILED in record.message
            assert "error_type=RuntimeError" in record.message
            assert "boom" in record.message

    @pytest.mark.asyncio
    async def test_generator_emits_skip_event(self) -> None:
        """A skipped job is visible in the lifecycle log."""
        generator = Generator(_deps(verdict=False), asyncio.Queue())

        with capture_femto_logs("cardcast.generator.observability") as capture:
            await generator.generate(_report())
            capture.wait_for_count(2)
            messages = [record.message for record in capture.records]
            assert any(GenerationEventType.JOB_SKIPPED in m for m in messages)
