"""Process-wide configuration for the report pipeline.

Every section is a frozen dataclass with a ``from_env`` constructor reading
``CARDCAST_*`` variables; ``RuntimeConfig`` gathers them all.

Usage
-----
>>> config = PipelineConfig()
>>> config.buffer_size, config.job_timeout
(15, 300.0)

>>> import os
>>> os.environ["CARDCAST_GENERATOR_WORKERS"] = "4"
>>> RuntimeConfig.from_env().pipeline.generator_workers
4

"""

from __future__ import annotations

import dataclasses as dc

from cardcast.common.env import parse_int, parse_seconds, read_str
from cardcast.delivery.config import SmbConfig, SmtpConfig, TelegramConfig
from cardcast.fetch.config import FetchConfig


@dc.dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Sizing and timing of the pipeline stages.

    Attributes
    ----------
    collector_parallel
        Fetches in flight at once across all reports; ``0`` means 32.
    generator_workers
        Concurrent generation workers; ``0`` means 1.
    evaluator_cache_size
        Compiled predicates kept in the evaluator LRU.
    orchestrator_cache_size
        Report names kept in the orchestrator LRU.
    buffer_size
        Capacity of every inter-stage queue.
    job_timeout
        Seconds one report generation may take.
    event_load_timeout
        Seconds one event lookup in storage may take.
    orchestrator_flush_interval
        Seconds between orchestrator cache flushes.

    """

    collector_parallel: int = 0
    generator_workers: int = 0
    evaluator_cache_size: int = 15
    orchestrator_cache_size: int = 5
    buffer_size: int = 15
    job_timeout: float = 300.0
    event_load_timeout: float = 15.0
    orchestrator_flush_interval: float = 300.0

    @classmethod
    def from_env(cls) -> PipelineConfig:
        """Create configuration from ``CARDCAST_*`` variables.

        Reads ``CARDCAST_COLLECTOR_PARALLEL``, ``CARDCAST_GENERATOR_WORKERS``,
        ``CARDCAST_EVALUATOR_CACHE_SIZE``, ``CARDCAST_ORCHESTRATOR_CACHE_SIZE``,
        ``CARDCAST_BUFFER_SIZE``, ``CARDCAST_JOB_TIMEOUT_S``,
        ``CARDCAST_EVENT_LOAD_TIMEOUT_S`` and
        ``CARDCAST_ORCHESTRATOR_FLUSH_INTERVAL_S``.

        Raises
        ------
        ValueError
            If a variable is malformed or out of range.

        """
        return cls(
            collector_parallel=parse_int("CARDCAST_COLLECTOR_PARALLEL", 0),
            generator_workers=parse_int("CARDCAST_GENERATOR_WORKERS", 0),
            evaluator_cache_size=parse_int(
                "CARDCAST_EVALUATOR_CACHE_SIZE", 15, minimum=1
            ),
            orchestrator_cache_size=parse_int(
                "CARDCAST_ORCHESTRATOR_CACHE_SIZE", 5, minimum=1
            ),
            buffer_size=parse_int("CARDCAST_BUFFER_SIZE", 15, minimum=1),
            job_timeout=parse_seconds("CARDCAST_JOB_TIMEOUT_S", 300.0),
            event_load_timeout=parse_seconds("CARDCAST_EVENT_LOAD_TIMEOUT_S", 15.0),
            orchestrator_flush_interval=parse_seconds(
                "CARDCAST_ORCHESTRATOR_FLUSH_INTERVAL_S", 300.0
            ),
        )


@dc.dataclass(frozen=True, slots=True)
class RuntimeConfig:
    """Everything the runtime needs to assemble the pipeline.

    Attributes
    ----------
    database_url
        SQLAlchemy async URL of the report definitions database.
    log_level
        femtologging level name.
    pipeline
        Stage sizing and timing.
    fetch
        Analytics fetcher settings.
    telegram
        Bot credentials; an empty token disables the Telegram sink.
    smb
        File share settings; inactive unless ``CARDCAST_SMB_ACTIVE`` is set.
    smtp
        Mail settings; disabled unless a host is configured.

    """

    database_url: str = "sqlite+aiosqlite:///cardcast.db"
    log_level: str = "INFO"
    pipeline: PipelineConfig = dc.field(default_factory=PipelineConfig)
    fetch: FetchConfig = dc.field(default_factory=FetchConfig)
    telegram: TelegramConfig = dc.field(default_factory=TelegramConfig)
    smb: SmbConfig = dc.field(default_factory=SmbConfig)
    smtp: SmtpConfig = dc.field(default_factory=SmtpConfig)

    @classmethod
    def from_env(cls) -> RuntimeConfig:
        """Create configuration from the environment.

        Reads ``CARDCAST_DATABASE_URL`` and ``CARDCAST_LOG_LEVEL`` and
        delegates every section to its own ``from_env``.

        Raises
        ------
        ValueError
            If any section rejects its variables.

        """
        return cls(
            database_url=read_str(
                "CARDCAST_DATABASE_URL", "sqlite+aiosqlite:///cardcast.db"
            ),
            log_level=read_str("CARDCAST_LOG_LEVEL", "INFO"),
            pipeline=PipelineConfig.from_env(),
            fetch=FetchConfig.from_env(),
            telegram=TelegramConfig.from_env(),
            smb=SmbConfig.from_env(),
            smtp=SmtpConfig.from_env(),
        )
