"""Read access to schedules and report definitions.

``ReportRepository`` is the only component that touches the database. The
scheduler reads active schedule units, the event creator maps cron names to
report names, and the orchestrator hydrates full ``Report`` aggregates.

Usage
-----
>>> from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
>>> engine = create_async_engine("sqlite+aiosqlite:///:memory:")
>>> repository = ReportRepository(async_sessionmaker(engine, expire_on_commit=False))
>>> units = await repository.load_schedule()

"""

from __future__ import annotations

import typing as typ

import msgspec
from sqlalchemy import select

from cardcast.logging import get_logger, log_debug, log_warning
from cardcast.models.cards import Card
from cardcast.models.cron import ScheduleUnit, parse_cron
from cardcast.models.errors import InvalidCronError, MalformedReportError
from cardcast.models.reports import (
    EmailRecipient,
    ExportFormat,
    ExportSpec,
    FileServer,
    Report,
    TelegramChat,
)
from cardcast.storage.models import (
    RECIPIENT_EMAIL,
    RECIPIENT_SMB,
    RECIPIENT_TELEGRAM,
    ChatRecord,
    CronRecord,
    EmailTemplateRecord,
    ExportRecord,
    QueryRecord,
    RecipientRecord,
    ReportCronRecord,
    ReportQueryRecord,
    ReportRecord,
    TemplateRecord,
)

if typ.TYPE_CHECKING:
    from sqlalchemy import Select
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from cardcast.models.reports import Recipient

logger = get_logger(__name__)

type EventPair = tuple[str, str]

_POSTGRES_READ_OPTIONS: dict[str, typ.Any] = {
    "isolation_level": "READ COMMITTED",
    "postgresql_readonly": True,
}


def decode_text_array(raw: str | None) -> tuple[str, ...]:
    """Decode a ``{a,b,c}`` array literal into its trimmed, non-empty items.

    >>> decode_text_array("{a@x, b@x}")
    ('a@x', 'b@x')
    >>> decode_text_array(None)
    ()

    """
    if raw is None:
        return ()
    text = raw.strip()
    if text.startswith("{") and text.endswith("}"):
        text = text[1:-1]
    items = (item.strip().strip('"') for item in text.split(","))
    return tuple(item for item in items if item)


def decode_order(report_name: str, raw: str | None) -> dict[str, list[str]]:
    """Decode an export's JSON column order, keyed by card title."""
    if raw is None or not raw.strip():
        return {}
    try:
        return msgspec.json.decode(raw, type=dict[str, list[str]])
    except msgspec.DecodeError as exc:
        raise MalformedReportError.bad_order(report_name, str(exc)) from exc


def _recipient_from_row(
    report_name: str,
    recipient: RecipientRecord,
    chat: ChatRecord | None,
    email: EmailTemplateRecord | None,
) -> Recipient:
    kind = recipient.type.strip().lower()
    if kind == RECIPIENT_TELEGRAM and chat is not None:
        return TelegramChat(chat_id=chat.chat_id, thread_id=recipient.thread_id)
    if kind == RECIPIENT_SMB and recipient.remote_path:
        return FileServer(remote_path=recipient.remote_path)
    if kind == RECIPIENT_EMAIL and email is not None:
        return EmailRecipient(
            to=decode_text_array(email.dest),
            cc=decode_text_array(email.copy),
            subject_template=email.subject,
            body_template=email.body,
        )
    if kind in {RECIPIENT_TELEGRAM, RECIPIENT_SMB, RECIPIENT_EMAIL}:
        detail = f"recipient {recipient.id} of type {kind!r} is incomplete"
    else:
        detail = f"recipient {recipient.id} has unknown type {recipient.type!r}"
    raise MalformedReportError.invariant(report_name, detail)


def _export_from_row(
    report_name: str,
    export: ExportRecord,
    template: TemplateRecord | None,
) -> ExportSpec:
    try:
        export_format = ExportFormat(export.format.strip().lower())
    except ValueError as exc:
        raise MalformedReportError.unknown_format(report_name, export.format) from exc
    return ExportSpec(
        format=export_format,
        template=template.template_text if template is not None else None,
        filename=export.file_name or None,
        order=decode_order(report_name, export.sort_order),
    )


class ReportRepository:
    """Load schedules and report aggregates through an async session factory."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Create a repository bound to ``session_factory``."""
        self._session_factory = session_factory

    async def load_schedule(self) -> list[ScheduleUnit]:
        """Return every active cron line with the event name it emits.

        Rows whose expression does not parse are logged and skipped so one bad
        schedule cannot keep the others from loading.
        """
        stmt = (
            select(CronRecord.cron, CronRecord.name)
            .where(CronRecord.is_active.is_(True))
            .order_by(CronRecord.id)
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).tuples().all()

        units: list[ScheduleUnit] = []
        for expression, name in rows:
            try:
                units.append(ScheduleUnit(cron=parse_cron(expression), name=name))
            except InvalidCronError as exc:
                log_warning(logger, "Skipping schedule %s: %s", name, exc)
        return units

    def _events_statement(self) -> Select[tuple[str, str]]:
        return (
            select(CronRecord.name, ReportRecord.name)
            .join(ReportCronRecord, ReportCronRecord.cron_id == CronRecord.id)
            .join(ReportRecord, ReportRecord.id == ReportCronRecord.report_id)
            .where(CronRecord.is_active.is_(True), ReportRecord.active.is_(True))
            .order_by(CronRecord.name, ReportRecord.name)
        )

    async def load_events(self) -> list[EventPair]:
        """Return every ``(cron_name, report_name)`` pair for active rows."""
        async with self._session_factory() as session:
            rows = (await session.execute(self._events_statement())).tuples().all()
        return [(cron_name, report_name) for cron_name, report_name in rows]

    async def load_events_by_cron(self, name: str) -> list[EventPair]:
        """Return the ``(cron_name, report_name)`` pairs for one cron name."""
        stmt = self._events_statement().where(CronRecord.name == name)
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).tuples().all()
        return [(cron_name, report_name) for cron_name, report_name in rows]

    async def load_report_by_name(self, name: str) -> Report | None:
        """Hydrate the active report called ``name``.

        Parameters
        ----------
        name
            Unique report name.

        Returns
        -------
        Report | None
            The validated aggregate, or ``None`` when no active report has
            that name.

        Raises
        ------
        MalformedReportError
            If a stored export or recipient cannot be decoded, or the
            aggregate breaks its invariants.

        """
        async with self._session_factory() as session, session.begin():
            await self._begin_read_only(session)
            return await self._hydrate(session, name)

    async def load_active_reports(self) -> list[Report]:
        """Hydrate every active report, skipping malformed ones."""
        reports: list[Report] = []
        async with self._session_factory() as session, session.begin():
            await self._begin_read_only(session)
            names = (
                await session.scalars(
                    select(ReportRecord.name)
                    .where(ReportRecord.active.is_(True))
                    .order_by(ReportRecord.name)
                )
            ).all()
            for name in names:
                try:
                    report = await self._hydrate(session, name)
                except MalformedReportError as exc:
                    log_warning(logger, "Skipping report %s: %s", name, exc)
                    continue
                if report is not None:
                    reports.append(report)
        return reports

    async def _begin_read_only(self, session: AsyncSession) -> None:
        if session.get_bind().dialect.name == "postgresql":
            await session.connection(execution_options=_POSTGRES_READ_OPTIONS)

    async def _hydrate(self, session: AsyncSession, name: str) -> Report | None:
        record = await session.scalar(
            select(ReportRecord).where(
                ReportRecord.name == name, ReportRecord.active.is_(True)
            )
        )
        if record is None:
            log_debug(logger, "No active report named %s", name)
            return None

        cards = (
            await session.execute(
                select(QueryRecord.card_uuid, QueryRecord.title)
                .join(ReportQueryRecord, ReportQueryRecord.query_id == QueryRecord.id)
                .where(ReportQueryRecord.report_id == record.id)
                .order_by(ReportQueryRecord.position, ReportQueryRecord.id)
            )
        ).tuples().all()
        recipient_rows = (
            await session.execute(
                select(RecipientRecord, ChatRecord, EmailTemplateRecord)
                .outerjoin(ChatRecord, ChatRecord.id == RecipientRecord.chat_id)
                .outerjoin(
                    EmailTemplateRecord,
                    EmailTemplateRecord.id == RecipientRecord.email_id,
                )
                .where(RecipientRecord.report_id == record.id)
                .order_by(RecipientRecord.position, RecipientRecord.id)
            )
        ).tuples().all()
        export_rows = (
            await session.execute(
                select(ExportRecord, TemplateRecord)
                .outerjoin(
                    TemplateRecord, TemplateRecord.id == ExportRecord.template_id
                )
                .where(ExportRecord.report_id == record.id)
                .order_by(ExportRecord.position, ExportRecord.id)
            )
        ).tuples().all()

        report = Report(
            name=record.name,
            title=record.title,
            queries=tuple(Card(card_uuid=uuid, title=title) for uuid, title in cards),
            evaluation=record.evaluation or "[*]",
            exports=tuple(
                _export_from_row(record.name, export, template)
                for export, template in export_rows
            ),
            recipients=tuple(
                _recipient_from_row(record.name, recipient, chat, email)
                for recipient, chat, email in recipient_rows
            ),
            group_id=record.group_id,
            active=record.active,
        )
        return report.validate()
