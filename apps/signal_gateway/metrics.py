"""Prometheus metrics definitions for Signal Gateway.

Usage:
    from apps.signal_gateway.metrics import webhook_requests_total

    webhook_requests_total.labels(outcome="filled").inc()

Execution metrics are driven by ``MetricsEventSink``, which the app factory
stacks on top of the logging sink so the execution core stays free of
Prometheus imports.
"""

from __future__ import annotations

from typing import Any

from prometheus_client import Counter, Gauge, Histogram

# ============================================================================
# Webhook Metrics
# ============================================================================

webhook_requests_total = Counter(
    "signal_gateway_webhook_requests_total",
    "Total webhook requests by outcome",
    ["outcome"],  # filled, no_position, no_action, rate_limited, unauthorized, invalid, error
)

rate_limit_checks_total = Counter(
    "signal_gateway_rate_limit_checks_total",
    "Rate limit checks",
    ["result"],  # allowed, blocked, fallback_allowed, fallback_blocked
)

rate_limit_redis_errors_total = Counter(
    "signal_gateway_rate_limit_redis_errors_total",
    "Redis failures during rate limit checks",
    ["reason"],  # timeout, error
)

trade_log_writes_total = Counter(
    "signal_gateway_trade_log_writes_total",
    "Trade log storage writes",
    ["result"],  # stored, failed, skipped
)

# ============================================================================
# Execution Metrics
# ============================================================================

executions_total = Counter(
    "signal_gateway_executions_total",
    "Completed executions",
    ["action", "status"],  # status: filled, no_position, no_action, error
)

order_submissions_total = Counter(
    "signal_gateway_order_submissions_total",
    "Orders sent to the venue",
    ["action", "result"],  # result: submitted, failed
)

execution_duration_seconds = Histogram(
    "signal_gateway_execution_duration_seconds",
    "Time from admission to result, including queueing behind the same instrument",
    ["action"],
)

executions_in_flight = Gauge(
    "signal_gateway_executions_in_flight",
    "Executions admitted and not yet finished",
)

execution_timeouts_total = Counter(
    "signal_gateway_execution_timeouts_total",
    "Executions cancelled by the per-execution timeout",
)

# ============================================================================
# Service Health Metrics
# ============================================================================

redis_connection_status = Gauge(
    "signal_gateway_redis_connection_status",
    "Redis connection status (1=up, 0=down)",
)

paper_mode = Gauge(
    "signal_gateway_paper_mode",
    "Paper venue status (1=paper, 0=live)",
)


def initialize_metrics(test_mode: bool) -> None:
    paper_mode.set(1 if test_mode else 0)
    redis_connection_status.set(0)
    executions_in_flight.set(0)


class MetricsEventSink:
    """Translate execution events into Prometheus updates."""

    def emit(self, event: str, **fields: Any) -> None:
        action = str(fields.get("action") or "unknown")
        if event == "execution_admitted":
            executions_in_flight.inc()
        elif event == "execution_completed":
            executions_in_flight.dec()
            executions_total.labels(action=action, status=fields.get("status", "unknown")).inc()
            execution_duration_seconds.labels(action=action).observe(fields.get("duration_seconds", 0))
        elif event == "execution_failed":
            executions_in_flight.dec()
            executions_total.labels(action=action, status="error").inc()
            execution_duration_seconds.labels(action=action).observe(fields.get("duration_seconds", 0))
        elif event == "order_submitted":
            order_submissions_total.labels(action=action, result="submitted").inc()
        elif event == "order_failed":
            order_submissions_total.labels(action=action, result="failed").inc()
        elif event == "execution_timeout":
            execution_timeouts_total.inc()


METRIC_NAMES = [
    "signal_gateway_webhook_requests_total",
    "signal_gateway_rate_limit_checks_total",
    "signal_gateway_rate_limit_redis_errors_total",
    "signal_gateway_trade_log_writes_total",
    "signal_gateway_executions_total",
    "signal_gateway_order_submissions_total",
    "signal_gateway_execution_duration_seconds",
    "signal_gateway_executions_in_flight",
    "signal_gateway_execution_timeouts_total",
    "signal_gateway_redis_connection_status",
    "signal_gateway_paper_mode",
]
