"""Build the MIME messages sent by the SMTP sink.

Without attachments the message is a single quoted-printable ``text/plain``
part. With attachments it becomes ``multipart/mixed``: the text body first,
then one base64 part per attachment whose content type is guessed from the
file name.
"""

from __future__ import annotations

import email.charset
import email.encoders
import email.header
import email.utils
import mimetypes
import secrets
import time
import typing as typ
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from cardcast.common.time import localnow

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt
    from email.message import Message

    from cardcast.models import Attachment

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def _utf8_charset() -> email.charset.Charset:
    charset = email.charset.Charset("utf-8")
    charset.header_encoding = email.charset.QP
    charset.body_encoding = email.charset.QP
    return charset


def encode_subject(subject: str) -> str:
    """Return ``subject`` as a Q-encoded UTF-8 header value."""
    return email.header.Header(subject, _utf8_charset()).encode()


def message_id(host: str) -> str:
    """Return ``<unix-ns.random-hex@host>``."""
    return f"<{time.time_ns()}.{secrets.token_hex(8)}@{host}>"


def attachment_part(attachment: Attachment) -> MIMEBase:
    """Wrap one attachment as a base64 ``attachment`` part."""
    content_type, _ = mimetypes.guess_type(attachment.name)
    maintype, _, subtype = (content_type or DEFAULT_CONTENT_TYPE).partition("/")
    part = MIMEBase(maintype, subtype)
    part.set_payload(attachment.content)
    email.encoders.encode_base64(part)
    filename: str | tuple[str, str, str] = attachment.name
    if not attachment.name.isascii():
        filename = ("utf-8", "", attachment.name)
    part.add_header("Content-Disposition", "attachment", filename=filename)
    return part


def build_message(  # noqa: PLR0913
    *,
    sender: str,
    to: cabc.Sequence[str],
    cc: cabc.Sequence[str] = (),
    subject: str,
    body: str,
    attachments: cabc.Sequence[Attachment] = (),
    host: str,
    now: dt.datetime | None = None,
) -> Message:
    """Assemble a complete message ready for ``smtplib.SMTP.send_message``.

    Parameters
    ----------
    sender
        ``From`` address.
    to, cc
        Primary and copy recipients; ``Cc`` is omitted when empty.
    subject, body
        Already rendered subject line and plain-text body.
    attachments
        Files appended after the body.
    host
        Domain used in the ``Message-ID``.
    now
        Timestamp for the ``Date`` header; defaults to the current local time.

    """
    text = MIMEText(body, "plain", _utf8_charset())
    message: Message
    if attachments:
        message = MIMEMultipart("mixed", boundary=f"boundary-{secrets.token_hex(8)}")
        message.attach(text)
        for attachment in attachments:
            message.attach(attachment_part(attachment))
    else:
        message = text

    message["From"] = sender
    message["To"] = ", ".join(to)
    if cc:
        message["Cc"] = ", ".join(cc)
    message["Subject"] = encode_subject(subject)
    message["Date"] = email.utils.format_datetime(now or localnow())
    message["Message-ID"] = message_id(host)
    return message
