"""Domain values shared by every pipeline stage.

Public API
----------
Card
    Fetch unit: analytics card UUID plus title.
CronExpression, parse_cron, ScheduleUnit
    Validated cron lines and the event names they emit.
Report, ExportSpec, ExportFormat
    The report aggregate and its requested renderings.
TelegramChat, FileServer, EmailRecipient, Recipient
    Delivery recipients (closed union).
EmailTarget, Target
    Recipients after template resolution.
TextData, ImageSet, FileSet, ReportData, Attachment
    Rendered artifacts (closed union).

"""

from cardcast.models.artifacts import (
    Attachment,
    FileSet,
    ImageSet,
    ReportData,
    TextData,
)
from cardcast.models.cards import Card, FetchResult, Matrix, RowMap
from cardcast.models.cron import CronExpression, ScheduleUnit, parse_cron
from cardcast.models.errors import InvalidCronError, MalformedReportError, ModelError
from cardcast.models.reports import (
    EmailRecipient,
    EmailTarget,
    ExportFormat,
    ExportSpec,
    FileServer,
    ParseMode,
    Recipient,
    Report,
    Target,
    TelegramChat,
)

__all__ = [
    "Attachment",
    "Card",
    "CronExpression",
    "EmailRecipient",
    "EmailTarget",
    "ExportFormat",
    "ExportSpec",
    "FetchResult",
    "FileServer",
    "FileSet",
    "ImageSet",
    "InvalidCronError",
    "MalformedReportError",
    "Matrix",
    "ModelError",
    "ParseMode",
    "Recipient",
    "Report",
    "ReportData",
    "RowMap",
    "ScheduleUnit",
    "Target",
    "TelegramChat",
    "TextData",
    "parse_cron",
]
