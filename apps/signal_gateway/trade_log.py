"""
Trade audit log.

Every webhook that reaches execution leaves one record, success or error:

    {"timestamp", "action", "symbol", "amount", "status", "result" | "error", "trace_id"}

Records are always written to the structured log. When Redis is configured
they are also stored under ``trade:<epoch_ms>:<random>`` with a TTL
(30 days by default). A storage failure is logged and counted; it never
fails a trade that has already been executed.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from datetime import UTC, datetime
from typing import Any

import redis.asyncio as redis
from redis.exceptions import RedisError

from apps.signal_gateway.metrics import trade_log_writes_total
from libs.common.logging import get_trace_id, log_with_context

logger = logging.getLogger(__name__)

TRADE_KEY_PREFIX = "trade"


def build_trade_entry(
    *,
    action: str,
    symbol: str,
    amount: Any,
    result: dict[str, Any] | None = None,
    error: str | None = None,
) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        "action": action,
        "symbol": symbol,
        "amount": str(amount),
        "status": "error" if error is not None else "success",
        "trace_id": get_trace_id(),
    }
    if error is not None:
        entry["error"] = error
    else:
        entry["result"] = result
    return entry


class TradeLog:
    """Append-only trade audit trail.

    Args:
        redis_client: Optional async Redis client; None keeps logs only
        ttl_seconds: Expiry for stored records
    """

    def __init__(self, redis_client: redis.Redis | None, ttl_seconds: int) -> None:
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def make_key() -> str:
        return f"{TRADE_KEY_PREFIX}:{int(time.time() * 1000)}:{secrets.token_hex(5)}"

    async def record(self, entry: dict[str, Any]) -> str | None:
        """Write ``entry``; return the storage key, or None if not stored."""
        level = "ERROR" if entry.get("status") == "error" else "INFO"
        log_with_context(logger, level, "trade_recorded", **entry)

        if self.redis is None:
            trade_log_writes_total.labels(result="skipped").inc()
            return None

        key = self.make_key()
        try:
            await self.redis.set(key, json.dumps(entry, default=str), ex=self.ttl_seconds)
        except (RedisError, OSError) as exc:
            trade_log_writes_total.labels(result="failed").inc()
            logger.error(
                "Failed to store trade log record",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            return None

        trade_log_writes_total.labels(result="stored").inc()
        return key
