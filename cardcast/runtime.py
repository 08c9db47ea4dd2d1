"""cardcast runtime entrypoint.

Builds every sink, the fetcher and the report pipeline from the environment
and runs until interrupted. Configuration is read by
:meth:`cardcast.config.RuntimeConfig.from_env`; the most important variables
are:

- ``CARDCAST_DATABASE_URL``: SQLAlchemy async URL of the report definitions
- ``CARDCAST_LOG_LEVEL``: Log level (default ``INFO``)
- ``CARDCAST_FETCH_BASE_URL``: Analytics server root URL
- ``CARDCAST_TELEGRAM_TOKEN``: Bot token; Telegram delivery is off when unset
- ``CARDCAST_SMB_ACTIVE``: Enables the SMB sink
- ``CARDCAST_SMTP_HOST``: Enables the SMTP sink

Run the service directly with ``python -m cardcast.runtime``.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal

from cardcast.config import RuntimeConfig
from cardcast.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_exception,
    log_info,
    log_warning,
)

logger = get_logger(__name__)

__all__ = ["main", "serve"]


async def serve(config: RuntimeConfig) -> None:
    """Assemble the pipeline from ``config`` and run it until cancelled."""
    from aiogram import Bot
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from cardcast.collector import Collector
    from cardcast.delivery import (
        DeliveryStrategy,
        SmbShareConnector,
        SmbSink,
        SmtpSink,
        TelegramSink,
    )
    from cardcast.evaluator import Evaluator
    from cardcast.exporters import ReportExporter
    from cardcast.fetch import MetabaseFetcher
    from cardcast.generator import GeneratorDependencies
    from cardcast.pipeline import ReportPipeline
    from cardcast.storage import ReportRepository, init_report_storage

    engine = create_async_engine(config.database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    fetcher = MetabaseFetcher(config.fetch)

    async with contextlib.AsyncExitStack() as stack:
        stack.push_async_callback(engine.dispose)
        await init_report_storage(engine)
        stack.push_async_callback(fetcher.aclose)

        telegram = None
        if config.telegram.token:
            bot = Bot(config.telegram.token)
            stack.push_async_callback(bot.session.close)
            telegram = TelegramSink(bot)
        else:
            log_warning(logger, "CARDCAST_TELEGRAM_TOKEN is unset; Telegram is off")

        smb = None
        if config.smb.active:
            smb = SmbSink(
                SmbShareConnector(config.smb),
                monitor_interval=config.smb.monitor_interval,
                reconnect_initial_delay=config.smb.reconnect_initial_delay,
                reconnect_max_delay=config.smb.reconnect_max_delay,
            )
            await smb.start()
            stack.push_async_callback(smb.close)

        smtp = SmtpSink(config.smtp) if config.smtp.enabled else None

        strategy = DeliveryStrategy(telegram=telegram, smb=smb, smtp=smtp)
        pipeline = ReportPipeline(
            ReportRepository(session_factory),
            GeneratorDependencies(
                collector=Collector(
                    fetcher, parallel=config.pipeline.collector_parallel
                ),
                evaluator=Evaluator(cache_size=config.pipeline.evaluator_cache_size),
                exporter=ReportExporter(),
                strategy=strategy,
            ),
            config=config.pipeline,
        )
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, pipeline.request_stop)
        await pipeline.run()


def main() -> None:
    """Run the cardcast pipeline until interrupted.

    Raises
    ------
    SystemExit
        If the configuration is invalid or startup fails.

    """
    try:
        config = RuntimeConfig.from_env()
    except ValueError as exc:
        # Validation failures need no traceback
        log_error(logger, "Invalid configuration: %s", exc)
        raise SystemExit(1) from exc

    normalized_level, invalid_level = configure_logging(config.log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid CARDCAST_LOG_LEVEL %r, falling back to %s",
            config.log_level,
            normalized_level,
        )
    log_info(logger, "Starting cardcast (log_level=%s)", normalized_level)

    try:
        asyncio.run(serve(config))
    except KeyboardInterrupt:
        log_info(logger, "Interrupted, cardcast stopped")
    except Exception as exc:
        log_exception(logger, "cardcast stopped on an unrecoverable error", exc)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
