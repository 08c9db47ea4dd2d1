"""Card data retrieval from the analytics server.

Public API
----------
Fetcher
    Protocol (port) for fetching a card's rows or string matrix.
MetabaseFetcher
    httpx adapter for the public card query API.
RetryTransport
    httpx transport retrying transport failures with exponential back-off.
FetchConfig
    Base URL, timeout and retry policy.
FetchError, FetchTimeoutError, FetchTransportError, FetchDecodeError
    The fetch error domain.

"""

from cardcast.fetch.client import Fetcher, MetabaseFetcher
from cardcast.fetch.config import FetchConfig
from cardcast.fetch.errors import (
    FetchDecodeError,
    FetchError,
    FetchTimeoutError,
    FetchTransportError,
)
from cardcast.fetch.transport import RetryTransport

__all__ = [
    "FetchConfig",
    "FetchDecodeError",
    "FetchError",
    "FetchTimeoutError",
    "FetchTransportError",
    "Fetcher",
    "MetabaseFetcher",
    "RetryTransport",
]
