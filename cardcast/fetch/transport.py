"""httpx transport that retries requests failing at the transport layer.

Only ``httpx.TransportError`` (connection failures, timeouts, protocol
errors) triggers a retry. Any response, successful or not, is returned as is.
The back-off sleep is an ordinary ``await`` so task cancellation interrupts it
immediately.

Usage
-----
>>> transport = RetryTransport(httpx.AsyncHTTPTransport(), retries=3)
>>> client = httpx.AsyncClient(transport=transport)

"""

from __future__ import annotations

import asyncio
import typing as typ

import httpx

from cardcast.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = get_logger(__name__)

type Sleeper = cabc.Callable[[float], cabc.Awaitable[None]]


class RetryTransport(httpx.AsyncBaseTransport):
    """Wrap another transport with exponential back-off retries.

    Parameters
    ----------
    transport
        Transport that performs the actual request.
    retries
        Retries after the first attempt; ``0`` disables retrying.
    initial_delay
        Seconds to wait before the first retry.
    multiplier
        Factor applied to the delay after each retry.
    sleep
        Awaitable sleep used between attempts; injectable for tests.

    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        *,
        retries: int = 3,
        initial_delay: float = 15.0,
        multiplier: float = 3.0,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        """Store the wrapped transport and retry policy."""
        self._transport = transport
        self._retries = retries
        self._initial_delay = initial_delay
        self._multiplier = multiplier
        self._sleep = sleep

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """Send ``request``, retrying transport failures with back-off.

        Raises
        ------
        httpx.TransportError
            The last transport failure once the retries are exhausted.

        """
        delay = self._initial_delay
        attempt = 0
        while True:
            try:
                return await self._transport.handle_async_request(request)
            except httpx.TransportError as exc:
                if attempt >= self._retries:
                    raise
                attempt += 1
                log_warning(
                    logger,
                    "Transport error for %s (attempt %d of %d), retrying in %.1fs: %s",
                    request.url,
                    attempt,
                    self._retries + 1,
                    delay,
                    exc,
                )
            await self._sleep(delay)
            delay *= self._multiplier

    async def aclose(self) -> None:
        """Close the wrapped transport."""
        await self._transport.aclose()
