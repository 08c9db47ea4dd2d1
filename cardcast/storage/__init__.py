"""Relational storage of schedules and report definitions.

Public API
----------
init_report_storage
    Create the schema on an async engine.
ReportRepository
    Load schedules, cron-to-report events and hydrated reports.
decode_text_array
    Decode ``{a,b,c}`` array literals used for email address lists.

"""

from cardcast.storage.models import (
    Base,
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
    init_report_storage,
)
from cardcast.storage.repository import (
    EventPair,
    ReportRepository,
    decode_order,
    decode_text_array,
)

__all__ = [
    "Base",
    "ChatRecord",
    "CronRecord",
    "EmailTemplateRecord",
    "EventPair",
    "ExportRecord",
    "QueryRecord",
    "RecipientRecord",
    "ReportCronRecord",
    "ReportQueryRecord",
    "ReportRecord",
    "ReportRepository",
    "TemplateRecord",
    "decode_order",
    "decode_text_array",
    "init_report_storage",
]
