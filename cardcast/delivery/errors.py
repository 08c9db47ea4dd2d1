"""Errors raised while resolving targets and delivering artifacts."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from cardcast.models import Target


class SinkError(Exception):
    """Base class for delivery errors."""


class _AggregateSinkError(SinkError):
    """Join several failures that did not stop their siblings.

    Attributes
    ----------
    exceptions
        Immutable tuple of the underlying failures.

    """

    exceptions: tuple[Exception, ...]
    action: typ.ClassVar[str] = "delivery"

    def __init__(self, exceptions: cabc.Sequence[Exception]) -> None:
        """Initialise with the failures that occurred."""
        self.exceptions = tuple(exceptions)
        count = len(self.exceptions)
        details = "; ".join(str(exc) for exc in self.exceptions)
        super().__init__(f"{self.action} failed: {count} error(s) occurred: {details}")


class DeliveryError(_AggregateSinkError):
    """Raised when one or more recipients could not be served."""

    action = "delivery"


class UploadError(_AggregateSinkError):
    """Raised when one or more files failed to upload to the share."""

    action = "upload"


class DocumentSendError(_AggregateSinkError):
    """Raised when one or more Telegram documents failed to send."""

    action = "document send"


class TargetResolutionError(_AggregateSinkError):
    """Raised when some recipients could not be resolved into targets.

    ``partial`` holds the targets that did resolve, in recipient order.
    """

    action = "target resolution"

    def __init__(
        self,
        exceptions: cabc.Sequence[Exception],
        partial: cabc.Sequence[Target] = (),
    ) -> None:
        """Initialise with the failures and the targets that resolved."""
        self.partial = tuple(partial)
        super().__init__(exceptions)


class UnsupportedArtifactError(SinkError):
    """Raised when a sink cannot carry an artifact kind."""

    @classmethod
    def for_sink(cls, sink: str, artifact: object) -> UnsupportedArtifactError:
        """Create an error naming the sink and the rejected artifact type."""
        return cls(f"{sink} cannot deliver {type(artifact).__name__}")


class SinkUnavailableError(SinkError):
    """Raised when a target needs a sink that is not configured."""

    @classmethod
    def not_configured(cls, sink: str) -> SinkUnavailableError:
        """Create an error for a missing sink."""
        return cls(f"{sink} sink is not configured")


class SmbConnectionError(SinkError):
    """Raised when the SMB session cannot be established or is lost."""

    @classmethod
    def connect_failed(cls, server: str, detail: str) -> SmbConnectionError:
        """Create an error for a failed dial, login or share mount."""
        return cls(f"SMB connection to {server} failed: {detail}")

    @classmethod
    def not_connected(cls) -> SmbConnectionError:
        """Create an error for use of a sink without a live session."""
        return cls("SMB session is not connected")


class SmtpSendError(SinkError):
    """Raised when the SMTP exchange fails."""

    @classmethod
    def from_exception(cls, host: str, exc: Exception) -> SmtpSendError:
        """Wrap a transport or protocol failure talking to ``host``."""
        return cls(f"SMTP send via {host} failed: {exc}")


class NothingToSendError(SinkError):
    """Raised when a recipient would receive no artifacts at all."""

    @classmethod
    def for_sink(cls, sink: str) -> NothingToSendError:
        """Create an error for an empty artifact list."""
        return cls(f"nothing to send via {sink}")
