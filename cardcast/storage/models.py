"""Relational schema for report definitions and their schedules.

A report links to its schedules through ``report_crons`` and to its cards
through ``report_queries``. Recipients and exports belong to exactly one
report. Recipient rows carry a ``type`` tag (``tg``, ``smb`` or ``email``)
and reference an optional chat or email template. Email address lists are
stored as ``{a,b,c}`` array literals, and an export's column order as a JSON
object.
"""

from __future__ import annotations

import typing as typ

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

RECIPIENT_TELEGRAM = "tg"
RECIPIENT_SMB = "smb"
RECIPIENT_EMAIL = "email"


class Base(DeclarativeBase):
    """Base declarative class for report storage models."""


class CronRecord(Base):
    """A named cron schedule."""

    __tablename__ = "crons"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True)
    cron: Mapped[str] = mapped_column(String(255))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class ReportRecord(Base):
    """A report definition."""

    __tablename__ = "reports"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True)
    title: Mapped[str] = mapped_column(String(255), default="")
    evaluation: Mapped[str] = mapped_column(Text(), default="[*]")
    group_id: Mapped[str | None] = mapped_column(String(255), default=None)
    active: Mapped[bool] = mapped_column(Boolean, default=True)


class ReportCronRecord(Base):
    """Association of a report with a schedule that triggers it."""

    __tablename__ = "report_crons"

    report_id: Mapped[int] = mapped_column(
        ForeignKey("reports.id", ondelete="CASCADE"), primary_key=True
    )
    cron_id: Mapped[int] = mapped_column(
        ForeignKey("crons.id", ondelete="CASCADE"), primary_key=True
    )


class QueryRecord(Base):
    """An analytics card."""

    __tablename__ = "queries"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    card_uuid: Mapped[str] = mapped_column(String(64))
    title: Mapped[str] = mapped_column(String(255))


class ReportQueryRecord(Base):
    """Ordered association of a report with a card."""

    __tablename__ = "report_queries"
    __table_args__ = (UniqueConstraint("report_id", "query_id"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id", ondelete="CASCADE"))
    query_id: Mapped[int] = mapped_column(ForeignKey("queries.id", ondelete="CASCADE"))
    position: Mapped[int] = mapped_column(Integer, default=0)


class ChatRecord(Base):
    """A Telegram chat known to the bot."""

    __tablename__ = "chats"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    chat_id: Mapped[int] = mapped_column(BigInteger, unique=True)
    title: Mapped[str | None] = mapped_column(String(255), default=None)
    chat_type: Mapped[str] = mapped_column(String(32), default="group")
    description: Mapped[str | None] = mapped_column(Text(), default=None)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class EmailTemplateRecord(Base):
    """Addresses and templates of an email delivery."""

    __tablename__ = "email_templates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    dest: Mapped[str] = mapped_column(Text())
    copy: Mapped[str | None] = mapped_column(Text(), default=None)
    subject: Mapped[str] = mapped_column(Text(), default="")
    body: Mapped[str | None] = mapped_column(Text(), default=None)


class RecipientRecord(Base):
    """A delivery target of one report."""

    __tablename__ = "recipients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id", ondelete="CASCADE"))
    name: Mapped[str] = mapped_column(String(255), default="")
    type: Mapped[str] = mapped_column(String(16))
    position: Mapped[int] = mapped_column(Integer, default=0)
    remote_path: Mapped[str | None] = mapped_column(Text(), default=None)
    chat_id: Mapped[int | None] = mapped_column(
        ForeignKey("chats.id", ondelete="SET NULL"), default=None
    )
    thread_id: Mapped[int | None] = mapped_column(Integer, default=None)
    email_id: Mapped[int | None] = mapped_column(
        ForeignKey("email_templates.id", ondelete="SET NULL"), default=None
    )
    config: Mapped[dict[str, typ.Any] | None] = mapped_column(JSON, default=None)


class TemplateRecord(Base):
    """A reusable text or HTML template body."""

    __tablename__ = "templates"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255))
    type: Mapped[str] = mapped_column(String(32), default="text")
    template_text: Mapped[str] = mapped_column(Text())


class ExportRecord(Base):
    """A requested rendering of one report."""

    __tablename__ = "exports"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    report_id: Mapped[int] = mapped_column(ForeignKey("reports.id", ondelete="CASCADE"))
    format: Mapped[str] = mapped_column(String(16))
    position: Mapped[int] = mapped_column(Integer, default=0)
    file_name: Mapped[str | None] = mapped_column(Text(), default=None)
    template_id: Mapped[int | None] = mapped_column(
        ForeignKey("templates.id", ondelete="SET NULL"), default=None
    )
    sort_order: Mapped[str | None] = mapped_column(Text(), default=None)


async def init_report_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
