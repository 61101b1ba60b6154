"""Health check endpoints for Signal Gateway."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError

from apps.signal_gateway.app_context import AppContext
from apps.signal_gateway.config import Settings
from apps.signal_gateway.dependencies import get_config, get_context, get_version
from apps.signal_gateway.metrics import redis_connection_status
from apps.signal_gateway.schemas import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def root(
    version: str = Depends(get_version),
    config: Settings = Depends(get_config),
) -> dict[str, Any]:
    return {
        "service": config.service_name,
        "version": version,
        "status": "running",
        "mode": "paper" if config.test_mode else "live",
    }


@router.get("/health", tags=["health"])
async def health_check(
    ctx: AppContext = Depends(get_context),
    config: Settings = Depends(get_config),
    version: str = Depends(get_version),
) -> HealthResponse:
    """
    Health check endpoint.

    Reports ``degraded`` when Redis is configured but unreachable; trading
    still works in that state (rate limiting falls back, trade records
    stay in the log only).

    Examples:
        >>> response = requests.get("http://localhost:8010/health")
        >>> response.json()
        {
            "status": "healthy",
            "service": "signal-gateway",
            "version": "0.1.0",
            "mode": "paper",
            "redis_connected": null,
            "active_instruments": 0,
            "timestamp": "2025-03-02T08:15:00Z"
        }
    """
    redis_connected: bool | None = None
    if ctx.redis is not None:
        try:
            redis_connected = bool(await ctx.redis.ping())
        except (RedisError, OSError) as e:
            logger.warning("Redis health check failed", extra={"error": str(e)})
            redis_connected = False
        redis_connection_status.set(1 if redis_connected else 0)

    return HealthResponse(
        status="degraded" if redis_connected is False else "healthy",
        service=config.service_name,
        version=version,
        mode="paper" if config.test_mode else "live",
        redis_connected=redis_connected,
        active_instruments=len(ctx.executor.serializer.active_keys),
        timestamp=datetime.now(UTC),
    )
