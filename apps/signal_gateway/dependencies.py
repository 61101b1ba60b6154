"""FastAPI dependency providers for Signal Gateway.

Usage:
    from apps.signal_gateway.dependencies import get_config, get_context

    @router.post("/example")
    async def example_route(
        ctx: AppContext = Depends(get_context),
        config: Settings = Depends(get_config),
    ):
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from fastapi import Request

if TYPE_CHECKING:
    from apps.signal_gateway.app_context import AppContext
    from apps.signal_gateway.config import Settings


def get_context(request: Request) -> AppContext:
    """Get the AppContext stored on app.state by the lifespan.

    Raises:
        RuntimeError: If the lifespan has not initialized the context
    """
    ctx = getattr(request.app.state, "context", None)
    if ctx is None:
        raise RuntimeError(
            "AppContext not initialized in app.state. "
            "The lifespan in app_factory.py sets it before routes are served."
        )
    return cast("AppContext", ctx)


def get_config(request: Request) -> Settings:
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise RuntimeError("Settings not initialized in app.state.")
    return cast("Settings", config)


def get_version(request: Request) -> str:
    return cast(str, getattr(request.app.state, "version", "unknown"))
