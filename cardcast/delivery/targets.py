"""Resolve report recipients into deliverable targets.

Telegram chats and file-server paths pass through unchanged. Email
recipients have their subject and body templates rendered once, with only
the helper library in scope. A recipient whose templates fail is dropped and
its error accumulated; the others still resolve.
"""

from __future__ import annotations

import typing as typ

from cardcast.delivery.errors import TargetResolutionError
from cardcast.exporters import TemplateError, render_text
from cardcast.logging import get_logger, log_warning
from cardcast.models import EmailRecipient, EmailTarget, FileServer, TelegramChat

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.models import Recipient, Target

logger = get_logger(__name__)


def email_target(recipient: EmailRecipient) -> EmailTarget:
    """Render an email recipient's subject and body.

    Raises
    ------
    TemplateError
        If either template fails.

    """
    subject = render_text(recipient.subject_template).strip()
    body = render_text(recipient.body_template) if recipient.body_template else ""
    return EmailTarget(
        to=tuple(recipient.to),
        cc=tuple(recipient.cc),
        subject=subject,
        body=body,
    )


def resolve_targets(recipients: cabc.Sequence[Recipient]) -> list[Target]:
    """Resolve every recipient, in order.

    Raises
    ------
    TargetResolutionError
        If any recipient failed; ``partial`` holds the targets that resolved.

    """
    targets: list[Target] = []
    errors: list[Exception] = []
    for recipient in recipients:
        match recipient:
            case EmailRecipient():
                try:
                    targets.append(email_target(recipient))
                except TemplateError as exc:
                    log_warning(
                        logger, "Email recipient %s unresolved: %s", recipient.to, exc
                    )
                    errors.append(exc)
            case TelegramChat() | FileServer():
                targets.append(recipient)
    if errors:
        raise TargetResolutionError(errors, targets)
    return targets
