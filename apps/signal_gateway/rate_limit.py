"""Per-client rate limiting for the webhook endpoint.

Sliding window in a Redis sorted set, evaluated atomically by a Lua script
that uses Redis TIME so several gateway instances share one clock.

A slow or failing Redis must not take trading down with it: each check is
bounded by ``redis_timeout_seconds`` and a failure resolves according to
``fallback_mode`` ("allow" or "deny").
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import redis.asyncio as redis

from apps.signal_gateway.metrics import rate_limit_checks_total, rate_limit_redis_errors_total

logger = logging.getLogger(__name__)


@dataclass
class RateLimitConfig:
    """Configuration for rate limiting an action."""

    action: str = "webhook"
    max_requests: int = 10
    window_seconds: int = 60
    fallback_mode: str = "allow"  # "deny" or "allow"
    redis_timeout_seconds: float = 0.25


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    window_seconds: int
    reason: str = ""

    @property
    def headers(self) -> dict[str, str]:
        headers = {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(max(0, self.remaining)),
            "X-RateLimit-Window": str(self.window_seconds),
        }
        if not self.allowed:
            headers["Retry-After"] = str(self.window_seconds)
        return headers


# Lua script using Redis TIME to avoid clock skew
_SLIDING_WINDOW_SCRIPT = """
local redis_time = redis.call('TIME')
local now = tonumber(redis_time[1])

local key = KEYS[1]
local window = tonumber(ARGV[1])
local member = ARGV[2]

redis.call('ZADD', key, now, member)
redis.call('ZREMRANGEBYSCORE', key, 0, now - window)
local count = redis.call('ZCARD', key)
redis.call('EXPIRE', key, window)

return {count, now}
"""


class RateLimiter:
    """
    Sliding-window limiter keyed by client identity (usually the source IP).

    Example:
        >>> limiter = RateLimiter(redis_client, RateLimitConfig(max_requests=10))
        >>> decision = await limiter.check("ip:52.89.214.238")
        >>> decision.allowed, decision.remaining
        (True, 9)
    """

    def __init__(self, redis_client: redis.Redis, config: RateLimitConfig) -> None:
        self.redis = redis_client
        self.config = config

    def _decision(self, allowed: bool, remaining: int, reason: str = "") -> RateLimitDecision:
        return RateLimitDecision(
            allowed=allowed,
            limit=self.config.max_requests,
            remaining=remaining,
            window_seconds=self.config.window_seconds,
            reason=reason,
        )

    async def _evaluate(self, identity: str) -> RateLimitDecision:
        key = f"rl:{self.config.action}:{identity}"
        member = f"{identity}:{time.time_ns()}"  # Unique member per request

        # redis.Redis here is redis.asyncio.Redis (see import), so eval() returns Awaitable
        result: Any = await self.redis.eval(  # type: ignore[misc]
            _SLIDING_WINDOW_SCRIPT,
            1,
            key,
            str(self.config.window_seconds),
            member,
        )
        count = int(result[0])
        allowed = count <= self.config.max_requests
        return self._decision(
            allowed,
            self.config.max_requests - count,
            "" if allowed else "limit_exceeded",
        )

    def _fallback(self, reason: str) -> RateLimitDecision:
        if self.config.fallback_mode == "deny":
            rate_limit_checks_total.labels(result="fallback_blocked").inc()
            return self._decision(False, 0, reason)
        rate_limit_checks_total.labels(result="fallback_allowed").inc()
        return self._decision(True, self.config.max_requests, "")

    async def check(self, identity: str) -> RateLimitDecision:
        """Count one request for ``identity`` and decide whether it may proceed."""
        try:
            decision = await asyncio.wait_for(
                self._evaluate(identity), timeout=self.config.redis_timeout_seconds
            )
        except TimeoutError:
            rate_limit_redis_errors_total.labels(reason="timeout").inc()
            logger.warning("rate_limit_redis_timeout", extra={"action": self.config.action})
            return self._fallback("redis_timeout")
        except Exception as exc:
            rate_limit_redis_errors_total.labels(reason="error").inc()
            logger.error(
                "rate_limit_redis_error", extra={"action": self.config.action, "error": str(exc)}
            )
            return self._fallback("redis_error")

        rate_limit_checks_total.labels(result="allowed" if decision.allowed else "blocked").inc()
        if not decision.allowed:
            logger.warning(
                "rate_limit_exceeded",
                extra={"action": self.config.action, "key": identity, "reason": decision.reason},
            )
        return decision
