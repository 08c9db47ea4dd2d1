"""Route rendered artifacts to each resolved target's sink.

Targets are served in order and a failing target never stops the next one.
Every failure is collected and raised together as a ``DeliveryError`` once
all targets have been attempted.

=============  =========================  ================================
Target         Sink                       Artifacts accepted
=============  =========================  ================================
TelegramChat   ``TelegramSink``           text, images (album), files
FileServer     ``SmbSink``                images and files
EmailTarget    ``SmtpSink``               images and files as attachments
=============  =========================  ================================
"""

from __future__ import annotations

import typing as typ

from cardcast.delivery.errors import (
    DeliveryError,
    NothingToSendError,
    SinkUnavailableError,
    UnsupportedArtifactError,
)
from cardcast.logging import get_logger, log_error, log_info
from cardcast.models import (
    EmailTarget,
    FileServer,
    FileSet,
    ImageSet,
    TelegramChat,
    TextData,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.delivery.smb import SmbSink
    from cardcast.delivery.smtp import SmtpSink
    from cardcast.delivery.telegram import TelegramSink
    from cardcast.models import Attachment, ReportData, Target

logger = get_logger(__name__)


@typ.runtime_checkable
class Sender(typ.Protocol):
    """Port used by the generator to deliver a report."""

    async def send(
        self, targets: cabc.Sequence[Target], artifacts: cabc.Sequence[ReportData]
    ) -> None:
        """Deliver ``artifacts`` to every target."""
        ...


class DeliveryStrategy:
    """Dispatch artifacts to the Telegram, SMB and SMTP sinks.

    A sink left as ``None`` is treated as disabled; targets needing it fail
    with ``SinkUnavailableError``.
    """

    def __init__(
        self,
        *,
        telegram: TelegramSink | None = None,
        smb: SmbSink | None = None,
        smtp: SmtpSink | None = None,
    ) -> None:
        """Attach the available sinks."""
        self._telegram = telegram
        self._smb = smb
        self._smtp = smtp

    async def send(
        self, targets: cabc.Sequence[Target], artifacts: cabc.Sequence[ReportData]
    ) -> None:
        """Deliver ``artifacts`` to each of ``targets``.

        Raises
        ------
        DeliveryError
            If delivery to any target failed, after every target was tried.

        """
        errors: list[Exception] = []
        for target in targets:
            target_errors = await self._deliver(target, artifacts)
            for exc in target_errors:
                log_error(logger, "Delivery to %s failed: %s", target, exc)
            errors.extend(target_errors)
        if errors:
            raise DeliveryError(errors)
        log_info(
            logger,
            "Delivered %d artifact(s) to %d target(s)",
            len(artifacts),
            len(targets),
        )

    async def _deliver(
        self, target: Target, artifacts: cabc.Sequence[ReportData]
    ) -> list[Exception]:
        try:
            match target:
                case TelegramChat():
                    return await self._to_telegram(target, artifacts)
                case FileServer(remote_path=remote_path):
                    return await self._to_file_server(remote_path, artifacts)
                case EmailTarget():
                    return await self._to_email(target, artifacts)
        except Exception as exc:  # noqa: BLE001
            return [exc]
        return [UnsupportedArtifactError(f"unsupported target {target!r}")]

    async def _to_telegram(
        self, chat: TelegramChat, artifacts: cabc.Sequence[ReportData]
    ) -> list[Exception]:
        if self._telegram is None:
            raise SinkUnavailableError.not_configured("telegram")
        if not artifacts:
            raise NothingToSendError.for_sink("telegram")
        errors: list[Exception] = []
        for artifact in artifacts:
            try:
                match artifact:
                    case TextData():
                        await self._telegram.send_text(chat, artifact)
                    case ImageSet():
                        await self._telegram.send_album(chat, artifact)
                    case FileSet():
                        await self._telegram.send_documents(chat, artifact)
                    case _:
                        errors.append(
                            UnsupportedArtifactError.for_sink("telegram", artifact)
                        )
            except Exception as exc:  # noqa: BLE001
                errors.append(exc)
        return errors

    async def _to_file_server(
        self, remote_path: str, artifacts: cabc.Sequence[ReportData]
    ) -> list[Exception]:
        if self._smb is None:
            raise SinkUnavailableError.not_configured("smb")
        if not artifacts:
            raise NothingToSendError.for_sink("smb")
        errors: list[Exception] = []
        for artifact in artifacts:
            match artifact:
                case FileSet() | ImageSet():
                    try:
                        await self._smb.upload(remote_path, artifact)
                    except Exception as exc:  # noqa: BLE001
                        errors.append(exc)
                case _:
                    errors.append(UnsupportedArtifactError.for_sink("smb", artifact))
        return errors

    async def _to_email(
        self, target: EmailTarget, artifacts: cabc.Sequence[ReportData]
    ) -> list[Exception]:
        if self._smtp is None:
            raise SinkUnavailableError.not_configured("smtp")
        errors: list[Exception] = []
        attachments: list[Attachment] = []
        for artifact in artifacts:
            match artifact:
                case FileSet() | ImageSet():
                    attachments.extend(artifact)
                case _:
                    errors.append(UnsupportedArtifactError.for_sink("smtp", artifact))
        try:
            await self._smtp.send(target, attachments)
        except Exception as exc:  # noqa: BLE001
            errors.append(exc)
        return errors
