"""Logging helpers for femtologging integration.

This module wraps femtologging with convenience helpers that keep logging
configuration and request-scoped formatting consistent across the controller.
Components receive a logger through their constructor and a request
identifier per call; ``RequestLogger`` binds the two together so every message
emitted while serving a request carries the same correlation prefix.

Examples
--------
Configure logging and emit a request-scoped message:

>>> level, used_default = configure_logging("INFO")
>>> log = RequestLogger(get_logger(__name__), "6f1c...")
>>> log_info(log, "Publication %s created", "sales_pub")
"""

from __future__ import annotations

import enum
import typing as typ

from femtologging import basicConfig, get_logger


class LogLevel(enum.StrEnum):
    """Supported log levels for femtologging."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def configure_logging(level: str | None, *, force: bool = False) -> tuple[str, bool]:
    """Install the femtologging root handler at ``level``.

    ``WARN`` is accepted as a spelling of ``WARNING``. Unknown or missing
    levels fall back to ``INFO`` and the second element of the returned pair
    is True so the caller can warn about it once logging works.
    """
    requested = level.strip().upper() if level else None
    if requested == "WARN":
        requested = LogLevel.WARNING
    if not requested or requested not in LogLevel.__members__:
        used_default = True
        normalised = LogLevel.INFO
    else:
        used_default = False
        normalised = LogLevel(requested)

    basicConfig(level=normalised, force=force)
    return (normalised, used_default)


class SupportsLog(typ.Protocol):
    """Protocol for loggers supporting the femtologging API."""

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> None: ...


class RequestLogger:
    """Logger adapter that prefixes messages with a request identifier.

    Parameters
    ----------
    logger : SupportsLog
        Underlying femtologging logger.
    request_id : str | None
        Correlation identifier of the request being served. ``None`` leaves
        messages unprefixed, which is what background work such as the startup
        health check uses.
    """

    def __init__(self, logger: SupportsLog, request_id: str | None) -> None:
        self._logger = logger
        self.request_id = request_id

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> None:
        """Forward a prefixed message to the wrapped logger."""
        if self.request_id:
            message = f"[request_id={self.request_id}] {message}"
        self._logger.log(level, message, exc_info=exc_info, stack_info=stack_info)


def _format_message(template: str, args: tuple[object, ...]) -> str:
    """Format a log message template."""
    return template % args if args else template


def _emit(
    logger: SupportsLog,
    level: LogLevel,
    message: str,
    exc_info: object | None = None,
) -> None:
    """Emit a log message."""
    logger.log(
        level,
        message,
        exc_info=exc_info,
        stack_info=False,
    )


def log_debug(
    logger: SupportsLog,
    template: str,
    *args: object,
) -> None:
    """Format and emit a DEBUG log message."""
    _emit(logger, LogLevel.DEBUG, _format_message(template, args))


def log_info(
    logger: SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Format and emit an INFO log message.

    Raises
    ------
    TypeError
        If the template and arguments do not align for percent formatting.
    """
    _emit(logger, LogLevel.INFO, _format_message(template, args), exc_info=exc_info)


def log_warning(
    logger: SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Format and emit a WARNING log message."""
    _emit(logger, LogLevel.WARNING, _format_message(template, args), exc_info=exc_info)


def log_error(
    logger: SupportsLog,
    template: str,
    *args: object,
    exc_info: object | None = None,
) -> None:
    """Format and emit an ERROR log message.

    Parameters
    ----------
    logger : SupportsLog
        Logger instance that supports the femtologging log API.
    template : str
        Percent-style format string for the log message.
    *args : object
        Arguments interpolated into the template.
    exc_info : object | None, optional
        Exception info to attach to the log record.
    """
    _emit(logger, LogLevel.ERROR, _format_message(template, args), exc_info=exc_info)


__all__ = (
    "LogLevel",
    "RequestLogger",
    "SupportsLog",
    "configure_logging",
    "get_logger",
    "log_debug",
    "log_error",
    "log_info",
    "log_warning",
)
