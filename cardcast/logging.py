"""Logging for the cardcast pipeline.

cardcast's own stages log through femtologging, one logger per module
(``logger = get_logger(__name__)``), with messages formatted up front by the
``log_*`` helpers below. The libraries the pipeline drives (APScheduler,
aiogram, httpx and smbprotocol) log through the standard library instead;
:func:`configure_logging` caps those at ``WARNING`` so a cron firing or an HTTP
request does not produce a line of its own.

Example:
>>> from cardcast.logging import get_logger, log_info
>>> logger = get_logger(__name__)
>>> log_info(logger, "Report %s sent to %d target(s)", "daily_sales", 2)

"""

from __future__ import annotations

import enum
import logging
import typing as typ

from femtologging import basicConfig, get_logger

# Standard-library loggers of third-party packages used by the pipeline.
LIBRARY_LOGGERS = ("apscheduler", "aiogram", "httpx", "httpcore", "smbprotocol")


class LogLevel(enum.StrEnum):
    """Level names accepted in ``CARDCAST_LOG_LEVEL``."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def normalize_log_level(level: str | None) -> tuple[str, bool]:
    """Upper-case ``level``, falling back to ``INFO`` for unknown names.

    Returns
    -------
    tuple[str, bool]
        The level to use and whether ``level`` had to be replaced.

    """
    if not level:
        return ("INFO", True)
    normalized = level.strip().upper()
    if normalized in LogLevel.__members__:
        return (normalized, False)
    return ("INFO", True)


def configure_logging(
    level: str,
    *,
    force: bool = False,
    library_level: int = logging.WARNING,
) -> tuple[str, bool]:
    """Install the femtologging root handler and quiet library loggers.

    Parameters
    ----------
    level : str
        Raw level from the environment; unknown names become ``INFO``.
    force : bool, optional
        Replace a handler configuration installed earlier.
    library_level : int, optional
        Standard-library level applied to every name in ``LIBRARY_LOGGERS``.

    Returns
    -------
    tuple[str, bool]
        The level in effect and whether ``level`` was rejected, so the caller
        can warn about it once logging works.

    """
    normalized, invalid = normalize_log_level(level)
    basicConfig(level=normalized, force=force)
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
    return (normalized, invalid)


class _SupportsLog(typ.Protocol):
    """The part of a femtologging logger the helpers call."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str | None: ...


def _emit(
    logger: _SupportsLog,
    level: str,
    template: str,
    args: tuple[object, ...],
    exc_info: object | None = None,
) -> None:
    # femtologging takes finished strings; interpolation happens here.
    message = template % args if args else template
    logger.log(level, message, exc_info=exc_info, stack_info=False)


def log_debug(logger: _SupportsLog, template: str, *args: object) -> None:
    """Log at DEBUG; cache hits and per-file uploads go here."""
    _emit(logger, "DEBUG", template, args)


def log_info(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log a %-style ``template`` at INFO.

    Parameters
    ----------
    logger : _SupportsLog
        Module logger from :func:`get_logger`.
    template : str
        Message with ``%s``/``%d`` placeholders.
    *args : object
        Values for the placeholders.
    exc_info : object | None, optional
        Exception to attach to the record.

    """
    _emit(logger, "INFO", template, args, exc_info)


def log_warning(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log at WARNING; used for recoverable failures such as a dropped export."""
    _emit(logger, "WARNING", template, args, exc_info)


def log_error(
    logger: _SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Log at ERROR; used when a job, upload or delivery target fails."""
    _emit(logger, "ERROR", template, args, exc_info)


def log_exception(logger: _SupportsLog, message: str, exc: BaseException) -> None:
    """Log ``message`` at ERROR with ``exc`` and its traceback attached."""
    logger.log("ERROR", message, exc_info=exc, stack_info=False)


__all__ = [
    "LIBRARY_LOGGERS",
    "LogLevel",
    "configure_logging",
    "get_logger",
    "log_debug",
    "log_error",
    "log_exception",
    "log_info",
    "log_warning",
    "normalize_log_level",
]
