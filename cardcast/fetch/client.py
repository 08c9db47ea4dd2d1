"""Fetch analytics card results over the public card query API.

The analytics server exposes every shared card at
``/api/public/card/{uuid}/query/{format}``. ``json`` yields a list of row
objects; ``csv`` yields a header row followed by data rows.
"""

from __future__ import annotations

import asyncio
import csv
import io
import typing as typ

import httpx
import msgspec

from cardcast.fetch.errors import (
    FetchDecodeError,
    FetchTimeoutError,
    FetchTransportError,
)
from cardcast.fetch.transport import RetryTransport
from cardcast.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    from cardcast.fetch.config import FetchConfig
    from cardcast.fetch.transport import Sleeper
    from cardcast.models import Matrix, RowMap

logger = get_logger(__name__)

_HTTP_ERROR_STATUS_THRESHOLD = 400
_ROWS_DECODER = msgspec.json.Decoder(list[dict[str, typ.Any]])


@typ.runtime_checkable
class Fetcher(typ.Protocol):
    """Port for retrieving card data by UUID."""

    async def fetch(self, card_uuid: str) -> list[RowMap]:
        """Return the card's rows as field-to-value maps."""
        ...

    async def fetch_matrix(self, card_uuid: str) -> Matrix:
        """Return the card's rows as strings, header row first."""
        ...


class MetabaseFetcher:
    """Fetcher backed by the analytics server's public card API.

    Parameters
    ----------
    config
        Base URL, timeout and retry policy.
    http_client
        Optional preconfigured client. When omitted the fetcher builds and
        owns a client whose transport retries transient failures according
        to ``config``.
    transport
        Innermost transport for the owned client; defaults to
        ``httpx.AsyncHTTPTransport``. Tests pass an ``httpx.MockTransport``.
    sleep
        Back-off sleep forwarded to the retrying transport.

    """

    def __init__(
        self,
        config: FetchConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Initialise the fetcher and, if needed, its HTTP client."""
        self._config = config
        self._owns_client = http_client is None
        if http_client is None:
            retrying = RetryTransport(
                transport or httpx.AsyncHTTPTransport(),
                retries=config.retries,
                initial_delay=config.initial_delay,
                multiplier=config.delay_multiplier,
                sleep=sleep,
            )
            http_client = httpx.AsyncClient(
                base_url=config.base_url,
                timeout=config.timeout,
                transport=retrying,
            )
        self._client = http_client

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    async def fetch(self, card_uuid: str) -> list[RowMap]:
        """Fetch the card's JSON export.

        Raises
        ------
        FetchTimeoutError
            If the request timed out on every attempt.
        FetchTransportError
            If the transport kept failing or the server answered non-2xx.
        FetchDecodeError
            If the body is not a JSON list of objects.

        """
        content = await self._query(card_uuid, "json")
        try:
            rows = _ROWS_DECODER.decode(content)
        except msgspec.DecodeError as exc:
            raise FetchDecodeError.invalid_json(card_uuid, str(exc)) from exc
        log_debug(logger, "Fetched %d rows for card %s", len(rows), card_uuid)
        return rows

    async def fetch_matrix(self, card_uuid: str) -> Matrix:
        """Fetch the card's CSV export as a list of string rows.

        Raises
        ------
        FetchTimeoutError
            If the request timed out on every attempt.
        FetchTransportError
            If the transport kept failing or the server answered non-2xx.
        FetchDecodeError
            If the body is not UTF-8 CSV.

        """
        content = await self._query(card_uuid, "csv")
        try:
            text = content.decode("utf-8-sig")
            return [row for row in csv.reader(io.StringIO(text, newline=""))]
        except (UnicodeDecodeError, csv.Error) as exc:
            raise FetchDecodeError.invalid_csv(card_uuid, str(exc)) from exc

    async def _query(self, card_uuid: str, fmt: str) -> bytes:
        path = f"/api/public/card/{card_uuid}/query/{fmt}"
        try:
            response = await self._client.get(path)
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError.for_card(card_uuid) from exc
        except httpx.TransportError as exc:
            raise FetchTransportError.network_error(card_uuid, str(exc)) from exc

        if response.status_code >= _HTTP_ERROR_STATUS_THRESHOLD:
            raise FetchTransportError.http_error(card_uuid, response.status_code)
        return response.content
