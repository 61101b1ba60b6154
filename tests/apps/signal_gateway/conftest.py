"""
Pytest fixtures for signal gateway tests.

This module provides:
- Gateway settings in paper mode with a webhook secret
- A builder that wires an AppContext around any ExchangeClient and returns a
  started TestClient (lifespan run, no log handler changes)

Example:
    def test_health(build_gateway):
        client = build_gateway()
        assert client.get("/health").json()["mode"] == "paper"
"""

from collections.abc import Callable, Iterator
from contextlib import ExitStack
from typing import Any

import pytest
from fastapi.testclient import TestClient

from apps.signal_gateway.app_context import AppContext
from apps.signal_gateway.app_factory import create_app
from apps.signal_gateway.config import Settings
from apps.signal_gateway.trade_log import TradeLog
from libs.exchange.paper import PaperFuturesClient
from libs.execution.executor import TradeExecutor


@pytest.fixture()
def gateway_settings() -> Settings:
    return Settings(
        test_mode=True,
        environment="test",
        webhook_secret="s3cret",
        enable_ip_whitelist=False,
        redis_url=None,
        _env_file=None,  # type: ignore[call-arg]
    )


@pytest.fixture()
def build_gateway(gateway_settings: Settings) -> Iterator[Callable[..., TestClient]]:
    """
    Build a started TestClient around an injected AppContext.

    Keyword Args:
        exchange: ExchangeClient (defaults to a fresh PaperFuturesClient)
        settings: Overrides gateway_settings
        rate_limiter, trade_log, redis_client: Optional context members
        timeout_seconds, events: Passed to TradeExecutor

    Returns a TestClient whose ``app.state.context`` is the built context.
    """
    stack = ExitStack()

    def _build(
        exchange: Any = None,
        *,
        settings: Settings | None = None,
        rate_limiter: Any = None,
        trade_log: TradeLog | None = None,
        redis_client: Any = None,
        timeout_seconds: float | None = None,
        events: Any = None,
    ) -> TestClient:
        client = exchange if exchange is not None else PaperFuturesClient()
        ctx = AppContext(
            client=client,
            executor=TradeExecutor(client, timeout_seconds=timeout_seconds, events=events),
            trade_log=trade_log or TradeLog(None, 60),
            rate_limiter=rate_limiter,
            redis=redis_client,
        )
        app = create_app(settings or gateway_settings, context=ctx, configure_logs=False)
        return stack.enter_context(TestClient(app))

    yield _build
    stack.close()
