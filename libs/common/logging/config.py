"""Logging setup for the gateway process.

Example:
    >>> from libs.common.logging.config import configure_logging, log_with_context
    >>> configure_logging(service_name="signal-gateway", log_level="INFO")
    >>> log_with_context(logger, "INFO", "order_submitted", instrument="BTC_USDT")
"""

import logging
import sys

from libs.common.logging.context import get_trace_id
from libs.common.logging.formatter import JSONFormatter

# Chatty third-party loggers capped at WARNING unless DEBUG is requested.
_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


class TraceIDFilter(logging.Filter):
    """Stamp the current context trace ID onto every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id()
        return True


def configure_logging(
    service_name: str,
    log_level: str = "INFO",
    include_context: bool = True,
) -> logging.Logger:
    """Configure structured JSON logging on the root logger.

    Replaces any handlers already installed on the root logger (uvicorn
    installs its own) with a single stdout handler using ``JSONFormatter``
    and ``TraceIDFilter``. Call once at startup.

    Args:
        service_name: Name stamped on every record
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        include_context: Whether to include the context dict in output

    Returns:
        The configured root logger

    Raises:
        ValueError: If log_level is not a known level name
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter(service_name=service_name, include_context=include_context))
    handler.addFilter(TraceIDFilter())
    root_logger.addHandler(handler)

    if numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


def get_logger(name: str | None = None) -> logging.Logger:
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **context_fields: object,
) -> None:
    """Log ``message`` with ``context_fields`` placed under ``context``.

    Example:
        >>> log_with_context(
        ...     logger,
        ...     "INFO",
        ...     "sizing_resolved",
        ...     instrument="ETH_USDT",
        ...     contracts=12,
        ...     leverage_source="position",
        ... )
    """
    log_method = getattr(logger, level.lower())
    log_method(message, extra={"context": context_fields})
