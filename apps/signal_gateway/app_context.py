"""Application context for dependency injection in Signal Gateway.

Holds every long-lived resource the routes need so tests can inject doubles
and shutdown can close everything from one place.

Usage:
    async def my_route(ctx: AppContext = Depends(get_context)):
        result = await ctx.executor.execute(signal)
        await ctx.trade_log.record(entry)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import redis.asyncio as redis

from apps.signal_gateway.config import Settings
from apps.signal_gateway.metrics import MetricsEventSink
from apps.signal_gateway.rate_limit import RateLimitConfig, RateLimiter
from apps.signal_gateway.trade_log import TradeLog
from libs.exchange import ExchangeClient, GateFuturesClient, PaperFuturesClient
from libs.execution import FanOutEventSink, LoggingEventSink, TradeExecutor

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Container for application dependencies.

    Attributes:
        client: Venue client shared by every execution
        executor: Signal executor (sizer, controller, serializer)
        trade_log: Audit trail writer
        rate_limiter: None when Redis is not configured
        redis: Shared async Redis client, None when not configured
    """

    client: ExchangeClient
    executor: TradeExecutor
    trade_log: TradeLog
    rate_limiter: RateLimiter | None = None
    redis: redis.Redis | None = None


def build_exchange_client(settings: Settings) -> ExchangeClient:
    """Paper venue in test mode, Gate.io otherwise.

    Raises:
        ConfigurationError: Live mode without credentials
    """
    if settings.test_mode:
        return PaperFuturesClient(
            balance_available=settings.paper_balance_available,
            leverage=settings.paper_leverage,
            position_mode=settings.default_position_mode,
            settle=settings.futures_settle,
        )
    api_key, api_secret = settings.require_credentials()
    return GateFuturesClient(
        api_key=api_key,
        api_secret=api_secret,
        base_url=settings.gate_base_url,
        settle=settings.futures_settle,
        default_position_mode=settings.default_position_mode,
        timeout=settings.http_timeout_seconds,
    )


def create_context(settings: Settings) -> AppContext:
    client = build_exchange_client(settings)
    executor = TradeExecutor(
        client,
        default_leverage=settings.default_leverage,
        default_mode=settings.default_position_mode,
        timeout_seconds=settings.execution_timeout_seconds,
        events=FanOutEventSink(LoggingEventSink(), MetricsEventSink()),
    )

    redis_client: redis.Redis | None = None
    rate_limiter: RateLimiter | None = None
    if settings.redis_url:
        redis_client = redis.from_url(settings.redis_url, decode_responses=True)
        rate_limiter = RateLimiter(
            redis_client,
            RateLimitConfig(
                action="webhook",
                max_requests=settings.rate_limit_max_requests,
                window_seconds=settings.rate_limit_window_seconds,
                fallback_mode=settings.rate_limit_fallback_mode,
            ),
        )
    else:
        logger.warning("REDIS_URL not set: rate limiting and trade log storage disabled")

    return AppContext(
        client=client,
        executor=executor,
        trade_log=TradeLog(redis_client, settings.trade_log_ttl_seconds),
        rate_limiter=rate_limiter,
        redis=redis_client,
    )


async def close_context(ctx: AppContext) -> None:
    await ctx.client.aclose()
    if ctx.redis is not None:
        await ctx.redis.aclose()
