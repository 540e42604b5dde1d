"""Logging for the PCO client, built on loguru.

Every record emitted by this package carries a bound ``name``. Records from
the dispatcher also carry ``method``, ``endpoint`` and ``request_id`` so all
attempts of one logical request can be correlated; the console shows the
request id next to the logger name when it is present.

Stdlib loggers (httpx, httpcore, anything else using ``logging``) are
routed into loguru through :class:`InterceptHandler`.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal

from loguru import logger

if TYPE_CHECKING:
    from loguru import Logger, Record

LogLevel = Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# httpx logs each request line at INFO; the dispatcher already does that
TRANSPORT_LOGGERS = ("httpx", "httpcore")

DISPATCHER_LOGGER = "pco_client.api.dispatcher"

_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{extra[name]}:{function}:{line} | {extra} | {message}"
)

_configured = False


class InterceptHandler(logging.Handler):
    """Forward stdlib log records to loguru, keeping the original caller."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame = logging.currentframe()
        depth = 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def _console_format(record: Record) -> str:
    extra = record["extra"]
    source = "<cyan>{extra[name]}</cyan>" if "name" in extra else "<cyan>{name}</cyan>"
    if "request_id" in extra:
        source += " <magenta>[{extra[request_id]}]</magenta>"
    return "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | " + source + (
        " - <level>{message}</level>\n{exception}"
    )


def _resolve_level(level: LogLevel, verbose: bool, quiet: bool) -> LogLevel:
    if verbose:
        return "DEBUG"
    if quiet:
        return "WARNING"
    return level


def setup_logging(
    level: LogLevel = "INFO",
    *,
    verbose: bool = False,
    quiet: bool = False,
    log_file: Path | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    serialize: bool = False,
) -> Logger:
    """Install the console sink and, optionally, a rotating file sink.

    Args:
        level: Base level (usually ``Settings.log_level``)
        verbose: Force DEBUG; wins over ``quiet``
        quiet: Force WARNING
        log_file: Path for a DEBUG-level file sink
        rotation: loguru rotation spec for the file sink (e.g. "10 MB")
        retention: loguru retention spec for rotated files
        serialize: Write the file sink as JSON lines

    Returns:
        The configured loguru logger
    """
    global _configured

    effective = _resolve_level(level, verbose, quiet)

    logger.remove()
    logger.add(
        sys.stderr,
        level=effective,
        format=_console_format,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    if log_file:
        logger.add(
            log_file,
            level="DEBUG",
            format=_FILE_FORMAT,
            rotation=rotation,
            retention=retention,
            compression="gz",
            serialize=serialize,
            filter=lambda record: "name" in record["extra"],
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    transport_level = logging.DEBUG if effective in ("TRACE", "DEBUG") else logging.WARNING
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)

    _configured = True
    return logger


def get_logger(name: str) -> Logger:
    """Logger with ``name`` bound (pass ``__name__``)."""
    return logger.bind(name=name)


def bind_request(method: str, endpoint: str, request_id: str) -> Logger:
    """Logger carrying one request's correlation context.

    Usage:
        log = bind_request("GET", "/people", descriptor.request_id)
        log.warning("429 rate_limited (attempt {}), retrying in {:.2f}s", 1, 2.0)
    """
    return logger.bind(
        name=DISPATCHER_LOGGER,
        method=method,
        endpoint=endpoint,
        request_id=request_id,
    )


class LogContext:
    """Temporarily add context to every record logged inside the block.

    Usage:
        with LogContext(batch="import-2024-01"):
            await client.batch(operations)
    """

    def __init__(self, **context: Any) -> None:
        self._context = context
        self._manager: Any = None

    def __enter__(self) -> Logger:
        self._manager = logger.contextualize(**self._context)
        self._manager.__enter__()
        return logger

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._manager is not None:
            self._manager.__exit__(exc_type, exc_val, exc_tb)
            self._manager = None


def is_configured() -> bool:
    return _configured


def reset_logging() -> None:
    """Remove all sinks and mark logging unconfigured (used by tests)."""
    global _configured
    logger.remove()
    _configured = False
