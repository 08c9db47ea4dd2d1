"""Delivery of rendered reports to Telegram, SMB shares and email.

Public API
----------
DeliveryStrategy, Sender
    Route artifacts to the sink for each target.
resolve_targets
    Turn recipients into targets, rendering email templates.
TelegramSink, SmbSink, SmbShareConnector, SmtpSink
    Concrete sinks.
TelegramConfig, SmbConfig, SmtpConfig
    Sink settings read from the environment.

"""

from cardcast.delivery.config import SmbConfig, SmtpConfig, TelegramConfig
from cardcast.delivery.errors import (
    DeliveryError,
    DocumentSendError,
    NothingToSendError,
    SinkError,
    SinkUnavailableError,
    SmbConnectionError,
    SmtpSendError,
    TargetResolutionError,
    UnsupportedArtifactError,
    UploadError,
)
from cardcast.delivery.smb import (
    MountedShare,
    ShareConnector,
    SmbShareConnector,
    SmbSink,
)
from cardcast.delivery.smtp import SmtpSink
from cardcast.delivery.strategy import DeliveryStrategy, Sender
from cardcast.delivery.targets import resolve_targets
from cardcast.delivery.telegram import TelegramBot, TelegramSink

__all__ = [
    "DeliveryError",
    "DeliveryStrategy",
    "DocumentSendError",
    "MountedShare",
    "NothingToSendError",
    "Sender",
    "ShareConnector",
    "SinkError",
    "SinkUnavailableError",
    "SmbConfig",
    "SmbConnectionError",
    "SmbShareConnector",
    "SmbSink",
    "SmtpConfig",
    "SmtpSendError",
    "SmtpSink",
    "TargetResolutionError",
    "TelegramBot",
    "TelegramConfig",
    "TelegramSink",
    "UnsupportedArtifactError",
    "UploadError",
    "resolve_targets",
]
