"""Configuration for the Telegram, SMB and SMTP sinks."""

from __future__ import annotations

import dataclasses as dc

from cardcast.common.env import parse_bool, parse_int, parse_seconds, read_str


@dc.dataclass(frozen=True, slots=True)
class TelegramConfig:
    """Bot credentials; an empty token disables the Telegram sink."""

    token: str = ""

    @classmethod
    def from_env(cls) -> TelegramConfig:
        """Read ``CARDCAST_TELEGRAM_TOKEN``."""
        return cls(token=read_str("CARDCAST_TELEGRAM_TOKEN"))


@dc.dataclass(frozen=True, slots=True)
class SmbConfig:
    """SMB2 session settings.

    Attributes
    ----------
    address
        ``host`` or ``host:port`` of the file server; the port defaults to 445.
    share
        Name of the share mounted for uploads.
    active
        Whether the SMB sink is enabled at all.
    monitor_interval
        Seconds between session health checks.
    reconnect_initial_delay, reconnect_max_delay
        Bounds of the jittered exponential reconnect back-off.

    """

    address: str = ""
    user: str = ""
    password: str = dc.field(default="", repr=False)
    domain: str = ""
    share: str = ""
    active: bool = False
    monitor_interval: float = 300.0
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 60.0

    @property
    def server(self) -> str:
        """Return the host part of ``address``."""
        host, _, _ = self.address.partition(":")
        return host

    @property
    def port(self) -> int:
        """Return the port part of ``address`` or 445."""
        _, _, port = self.address.partition(":")
        return int(port) if port else 445

    @classmethod
    def from_env(cls) -> SmbConfig:
        """Create configuration from ``CARDCAST_SMB_*`` variables.

        Raises
        ------
        ValueError
            If a numeric or boolean variable is malformed.

        """
        return cls(
            address=read_str("CARDCAST_SMB_ADDRESS"),
            user=read_str("CARDCAST_SMB_USER"),
            password=read_str("CARDCAST_SMB_PASSWORD"),
            domain=read_str("CARDCAST_SMB_DOMAIN"),
            share=read_str("CARDCAST_SMB_SHARE"),
            active=parse_bool("CARDCAST_SMB_ACTIVE", default=False),
            monitor_interval=parse_seconds("CARDCAST_SMB_MONITOR_INTERVAL_S", 300.0),
            reconnect_initial_delay=parse_seconds(
                "CARDCAST_SMB_RECONNECT_INITIAL_DELAY_S", 1.0
            ),
            reconnect_max_delay=parse_seconds(
                "CARDCAST_SMB_RECONNECT_MAX_DELAY_S", 60.0
            ),
        )


@dc.dataclass(frozen=True, slots=True)
class SmtpConfig:
    """Implicit-TLS SMTP settings; ``email`` is both login and sender."""

    host: str = ""
    port: int = 465
    email: str = ""
    password: str = dc.field(default="", repr=False)
    timeout: float = 30.0

    @property
    def enabled(self) -> bool:
        """Return whether a host is configured."""
        return bool(self.host)

    @classmethod
    def from_env(cls) -> SmtpConfig:
        """Create configuration from ``CARDCAST_SMTP_*`` variables."""
        return cls(
            host=read_str("CARDCAST_SMTP_HOST"),
            port=parse_int("CARDCAST_SMTP_PORT", 465, minimum=1),
            email=read_str("CARDCAST_SMTP_EMAIL"),
            password=read_str("CARDCAST_SMTP_PASSWORD"),
            timeout=parse_seconds("CARDCAST_SMTP_TIMEOUT_S", 30.0),
        )
