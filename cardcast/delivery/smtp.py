"""SMTP sink: one implicit-TLS session per message.

Each send dials ``host:port`` over TLS (SNI is the host), authenticates with
``AUTH PLAIN`` and submits one envelope covering every To and Cc address.
The session is closed on every path; a failure while closing is logged and
never replaces the error that ended the exchange.
"""

from __future__ import annotations

import asyncio
import smtplib
import ssl
import typing as typ

from cardcast.delivery.errors import SmtpSendError
from cardcast.delivery.mime import build_message
from cardcast.logging import get_logger, log_info, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from email.message import Message

    from cardcast.delivery.config import SmtpConfig
    from cardcast.models import Attachment, EmailTarget

logger = get_logger(__name__)

_SMTP_FAILURES = (smtplib.SMTPException, OSError)


class SmtpFactory(typ.Protocol):
    """Callable opening a TLS SMTP session (``smtplib.SMTP_SSL``)."""

    def __call__(
        self, host: str, port: int, *, timeout: float, context: ssl.SSLContext
    ) -> smtplib.SMTP: ...


class SmtpSink:
    """Send rendered reports as email.

    Parameters
    ----------
    config
        Server address and credentials; ``config.email`` is also the sender.
    factory
        Session factory, ``smtplib.SMTP_SSL`` by default.

    """

    def __init__(
        self, config: SmtpConfig, *, factory: SmtpFactory = smtplib.SMTP_SSL
    ) -> None:
        """Store settings; no connection is opened until ``send``."""
        self._config = config
        self._factory = factory

    async def send(
        self, target: EmailTarget, attachments: cabc.Sequence[Attachment] = ()
    ) -> None:
        """Send one message to ``target``.

        Raises
        ------
        SmtpSendError
            If dialling, authentication or submission fails.

        """
        message = build_message(
            sender=self._config.email,
            to=target.to,
            cc=target.cc,
            subject=target.subject,
            body=target.body,
            attachments=attachments,
            host=self._config.host,
        )
        recipients = [*target.to, *target.cc]
        await asyncio.to_thread(self._send_sync, message, recipients)
        log_info(
            logger,
            "Sent email to %d recipient(s) with %d attachment(s)",
            len(recipients),
            len(attachments),
        )

    def _send_sync(self, message: Message, recipients: list[str]) -> None:
        host = self._config.host
        try:
            client = self._factory(
                host,
                self._config.port,
                timeout=self._config.timeout,
                context=ssl.create_default_context(),
            )
        except _SMTP_FAILURES as exc:
            raise SmtpSendError.from_exception(host, exc) from exc

        try:
            client.ehlo_or_helo_if_needed()
            client.user = self._config.email
            client.password = self._config.password
            client.auth("PLAIN", client.auth_plain)
            client.send_message(
                message, from_addr=self._config.email, to_addrs=recipients
            )
        except _SMTP_FAILURES as exc:
            raise SmtpSendError.from_exception(host, exc) from exc
        finally:
            try:
                client.quit()
            except _SMTP_FAILURES as exc:
                log_warning(logger, "SMTP quit failed: %s", exc)
