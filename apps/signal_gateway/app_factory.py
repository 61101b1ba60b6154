"""Application factory for Signal Gateway.

Usage:
    # In tests
    from apps.signal_gateway.app_factory import create_app

    def test_health(fake_context, settings):
        app = create_app(settings, context=fake_context, configure_logs=False)
        with TestClient(app) as client:
            assert client.get("/health").status_code == 200

    # In production (main.py)
    app = create_app()
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from prometheus_client import make_asgi_app

from apps.signal_gateway import __version__
from apps.signal_gateway.app_context import AppContext, close_context, create_context
from apps.signal_gateway.config import Settings
from apps.signal_gateway.errors import GatewayError, gateway_error_handler
from apps.signal_gateway.metrics import initialize_metrics
from apps.signal_gateway.routes import health, webhooks
from libs.common.logging import add_trace_id_middleware, configure_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    context: AppContext | None = None,
    configure_logs: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration; loaded from the environment when omitted
        context: Pre-built AppContext (tests). When given, the app does not
            build or close its own venue client and Redis connection.
        configure_logs: Install the JSON log handler on startup

    Returns:
        FastAPI: Configured application instance

    Raises:
        ConfigurationError: On startup, live mode without Gate.io credentials
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if configure_logs:
            configure_logging(service_name=settings.service_name, log_level=settings.log_level)
        initialize_metrics(settings.test_mode)

        owns_context = context is None
        ctx = context if context is not None else create_context(settings)
        app.state.config = settings
        app.state.context = ctx
        app.state.version = __version__

        logger.info(
            "Signal gateway started",
            extra={
                "mode": "paper" if settings.test_mode else "live",
                "settle": settings.futures_settle,
                "position_mode": settings.position_mode,
                "redis_enabled": ctx.redis is not None,
            },
        )
        try:
            yield
        finally:
            if owns_context:
                await close_context(ctx)
            logger.info("Signal gateway stopped")

    app = FastAPI(
        title="Signal Gateway",
        description="Executes trading signals on perpetual futures",
        version=__version__,
        lifespan=lifespan,
    )

    add_trace_id_middleware(app)
    app.add_exception_handler(GatewayError, gateway_error_handler)  # type: ignore[arg-type]

    app.mount("/metrics", make_asgi_app())

    app.include_router(health.router)
    app.include_router(webhooks.router)

    return app
