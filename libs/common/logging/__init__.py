"""Structured JSON logging with trace ID support.

Usage:
    # At service startup
    from libs.common.logging import configure_logging
    configure_logging(service_name="signal-gateway", log_level="INFO")

    # Anywhere
    from libs.common.logging import get_logger, log_with_context
    logger = get_logger(__name__)
    log_with_context(logger, "INFO", "signal_admitted", instrument="BTC_USDT")
"""

from libs.common.logging.config import (
    configure_logging,
    get_logger,
    log_with_context,
)
from libs.common.logging.context import (
    TRACE_ID_HEADER,
    LogContext,
    clear_trace_id,
    generate_trace_id,
    get_or_create_trace_id,
    get_trace_id,
    set_trace_id,
)
from libs.common.logging.formatter import JSONFormatter
from libs.common.logging.middleware import add_trace_id_middleware

__all__ = [
    "configure_logging",
    "get_logger",
    "log_with_context",
    "generate_trace_id",
    "get_trace_id",
    "set_trace_id",
    "clear_trace_id",
    "get_or_create_trace_id",
    "LogContext",
    "TRACE_ID_HEADER",
    "JSONFormatter",
    "add_trace_id_middleware",
]
