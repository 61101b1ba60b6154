"""Tests for logging configuration.

Tests verify:
- configure_logging installs a single JSON handler on the root logger
- Trace IDs from the current context reach the output
- log_with_context nests fields under "context"
"""

import json
import logging
from decimal import Decimal
from io import StringIO

import pytest

from libs.common.logging.config import TraceIDFilter, configure_logging, log_with_context
from libs.common.logging.context import LogContext, clear_trace_id
from libs.common.logging.formatter import JSONFormatter


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)
    clear_trace_id()


def _capture(root: logging.Logger) -> StringIO:
    stream = StringIO()
    root.handlers[0].setStream(stream)  # type: ignore[attr-defined]
    return stream


class TestConfigureLogging:
    def test_replaces_handlers_with_json_handler(self, restore_root_logger) -> None:
        restore_root_logger.addHandler(logging.NullHandler())

        root = configure_logging(service_name="signal-gateway", log_level="warning")

        assert root is restore_root_logger
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)

    def test_invalid_level_raises(self, restore_root_logger) -> None:
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(service_name="signal-gateway", log_level="LOUD")

    def test_quiets_http_client_loggers(self, restore_root_logger) -> None:
        configure_logging(service_name="signal-gateway", log_level="INFO")

        assert logging.getLogger("httpx").level == logging.WARNING

    def test_output_carries_trace_id_and_service(self, restore_root_logger) -> None:
        root = configure_logging(service_name="signal-gateway", log_level="INFO")
        stream = _capture(root)

        with LogContext("trace-77"):
            logging.getLogger("libs.execution").info("order_submitted")

        entry = json.loads(stream.getvalue().strip())
        assert entry["service"] == "signal-gateway"
        assert entry["trace_id"] == "trace-77"
        assert entry["message"] == "order_submitted"


def test_trace_id_filter_stamps_current_context() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", (), None)

    with LogContext("trace-1"):
        assert TraceIDFilter().filter(record) is True

    assert record.trace_id == "trace-1"  # type: ignore[attr-defined]


def test_log_with_context_nests_fields(restore_root_logger) -> None:
    root = configure_logging(service_name="signal-gateway", log_level="DEBUG")
    stream = _capture(root)

    log_with_context(
        logging.getLogger("libs.execution"),
        "WARNING",
        "close_skipped",
        instrument="BTC_USDT",
        reason="no_position",
        held=Decimal("0"),
    )

    entry = json.loads(stream.getvalue().strip())
    assert entry["level"] == "WARNING"
    assert entry["context"] == {"instrument": "BTC_USDT", "reason": "no_position", "held": "0"}
