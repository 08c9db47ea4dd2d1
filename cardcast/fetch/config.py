"""Configuration for the analytics card fetcher.

Usage
-----
>>> config = FetchConfig(base_url="https://metabase.example.com")
>>> config.retries, config.initial_delay, config.delay_multiplier
(3, 15.0, 3.0)

"""

from __future__ import annotations

import dataclasses as dc

from cardcast.common.env import parse_int, parse_seconds, read_str


@dc.dataclass(frozen=True, slots=True)
class FetchConfig:
    """Settings for the HTTP card fetcher.

    Attributes
    ----------
    base_url
        Root URL of the analytics server exposing public card queries.
    retries
        Retries after the first attempt when the transport fails.
    initial_delay
        Seconds to wait before the first retry.
    delay_multiplier
        Factor applied to the delay after every retry.
    timeout
        Overall HTTP timeout in seconds for one request.

    """

    base_url: str = "http://localhost:3000"
    retries: int = 3
    initial_delay: float = 15.0
    delay_multiplier: float = 3.0
    timeout: float = 300.0

    @classmethod
    def from_env(cls) -> FetchConfig:
        """Create configuration from ``CARDCAST_FETCH_*`` variables.

        Reads ``CARDCAST_FETCH_BASE_URL``, ``CARDCAST_FETCH_RETRIES``,
        ``CARDCAST_FETCH_INITIAL_DELAY_S``, ``CARDCAST_FETCH_DELAY_MULTIPLIER``
        and ``CARDCAST_FETCH_TIMEOUT_S``.

        Raises
        ------
        ValueError
            If a numeric variable is malformed or out of range.

        """
        return cls(
            base_url=read_str("CARDCAST_FETCH_BASE_URL", "http://localhost:3000"),
            retries=parse_int("CARDCAST_FETCH_RETRIES", 3),
            initial_delay=parse_seconds(
                "CARDCAST_FETCH_INITIAL_DELAY_S", 15.0
            ),
            delay_multiplier=parse_seconds(
                "CARDCAST_FETCH_DELAY_MULTIPLIER", 3.0
            ),
            timeout=parse_seconds("CARDCAST_FETCH_TIMEOUT_S", 300.0),
        )
