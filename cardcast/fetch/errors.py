"""Errors raised while fetching card data.

The fetch error domain distinguishes three kinds of failure: a deadline that
expired, a transport failure that outlived its retries, and a response body
that could not be decoded. Cancellation is not an error here; it propagates as
``asyncio.CancelledError``.
"""

from __future__ import annotations


class FetchError(Exception):
    """Base class for card fetch failures."""

    def __init__(self, message: str, *, card_uuid: str | None = None) -> None:
        """Initialise with a message and the card being fetched."""
        self.card_uuid = card_uuid
        super().__init__(message)


class FetchTimeoutError(FetchError):
    """Raised when a fetch does not complete before its deadline."""

    @classmethod
    def for_card(cls, card_uuid: str) -> FetchTimeoutError:
        """Create a timeout error for ``card_uuid``."""
        return cls(f"timed out fetching card {card_uuid}", card_uuid=card_uuid)


class FetchTransportError(FetchError):
    """Raised for network failures and unsuccessful HTTP responses.

    Attributes
    ----------
    status_code
        HTTP status of the response, or ``None`` for network failures.

    """

    def __init__(
        self,
        message: str,
        *,
        card_uuid: str | None = None,
        status_code: int | None = None,
    ) -> None:
        """Initialise with a message and optional HTTP status."""
        self.status_code = status_code
        super().__init__(message, card_uuid=card_uuid)

    @classmethod
    def http_error(cls, card_uuid: str, status_code: int) -> FetchTransportError:
        """Create an error for a non-2xx response."""
        msg = f"card {card_uuid} query returned HTTP {status_code}"
        return cls(msg, card_uuid=card_uuid, status_code=status_code)

    @classmethod
    def network_error(cls, card_uuid: str, detail: str) -> FetchTransportError:
        """Create an error for a request that never produced a response."""
        msg = f"card {card_uuid} query failed: {detail}"
        return cls(msg, card_uuid=card_uuid)


class FetchDecodeError(FetchError):
    """Raised when a card response body cannot be decoded."""

    @classmethod
    def invalid_json(cls, card_uuid: str, detail: str) -> FetchDecodeError:
        """Create an error for a JSON body that is not a list of row objects."""
        msg = f"card {card_uuid} returned invalid JSON rows: {detail}"
        return cls(msg, card_uuid=card_uuid)

    @classmethod
    def invalid_csv(cls, card_uuid: str, detail: str) -> FetchDecodeError:
        """Create an error for an undecodable CSV export."""
        msg = f"card {card_uuid} returned invalid CSV: {detail}"
        return cls(msg, card_uuid=card_uuid)
