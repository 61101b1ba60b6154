"""
Webhook route: inbound trading signals.

Admission runs in a fixed order and stops at the first failure:

    1. Rate limit per client IP               -> 429
    2. JSON object body                       -> 400
    3. IP allow-list and payload secret       -> 401
    4. Payload schema                         -> 400
    5. Symbol exists on the venue             -> 400
    6. Execute (serialized per instrument)    -> 200 / 400 / 422 / 502 / 504 / 500
    7. Trade log record (success or error)

Every answer uses the ``{"success": ..., "data" | "error": ...}`` envelope.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from apps.signal_gateway.app_context import AppContext
from apps.signal_gateway.auth import authenticate_webhook, get_client_ip
from apps.signal_gateway.config import Settings
from apps.signal_gateway.dependencies import get_config, get_context
from apps.signal_gateway.errors import GatewayError, error_response, status_for
from apps.signal_gateway.metrics import webhook_requests_total
from apps.signal_gateway.schemas import WebhookSignal
from apps.signal_gateway.trade_log import build_trade_entry
from libs.exchange.exceptions import ExchangeError
from libs.execution.exceptions import InvalidSignal
from libs.execution.executor import build_signal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Webhooks"])


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    message = str(first.get("msg", "invalid value")).removeprefix("Value error, ")
    return f"{field}: {message}"


@router.post("/webhook", response_model=None)
async def receive_webhook(
    request: Request,
    ctx: AppContext = Depends(get_context),
    config: Settings = Depends(get_config),
) -> JSONResponse:
    """
    Execute a trading signal.

    Request body:
        {"action": "long_entry", "amount": 10, "symbol": "BTC/USDT:USDT",
         "leverage": 5, "secret": "..."}

    Returns:
        200 with ``{"success": true, "data": {...}}`` when the signal was
        executed or resolved to a no-op (nothing to close)
    """
    rate_headers: dict[str, str] = {}
    if ctx.rate_limiter is not None:
        decision = await ctx.rate_limiter.check(f"ip:{get_client_ip(request) or 'unknown'}")
        rate_headers = decision.headers
        if not decision.allowed:
            raise GatewayError(
                status.HTTP_429_TOO_MANY_REQUESTS,
                "Too many requests",
                outcome="rate_limited",
                headers=rate_headers,
            )

    try:
        payload: Any = await request.json()
    except ValueError:
        raise GatewayError(status.HTTP_400_BAD_REQUEST, "Invalid JSON payload") from None
    if not isinstance(payload, dict):
        raise GatewayError(status.HTTP_400_BAD_REQUEST, "Webhook payload must be a JSON object")

    authenticate_webhook(request, payload, config)

    try:
        inbound = WebhookSignal.model_validate(payload)
    except ValidationError as e:
        raise GatewayError(status.HTTP_400_BAD_REQUEST, _validation_message(e)) from None

    try:
        await ctx.executor.validate_instrument(inbound.symbol)
    except ExchangeError as e:
        logger.warning(
            "Symbol validation failed", extra={"symbol": inbound.symbol, "error": str(e)}
        )
        raise GatewayError(
            status.HTTP_400_BAD_REQUEST, f"Invalid symbol {inbound.symbol}: {e}"
        ) from None

    try:
        signal = build_signal(inbound.action, inbound.amount, inbound.symbol, inbound.leverage)
    except InvalidSignal as e:
        raise GatewayError(status.HTTP_400_BAD_REQUEST, str(e)) from None

    try:
        result = await ctx.executor.execute(signal)
    except Exception as e:
        status_code = status_for(e)
        if status_code >= 500 and not isinstance(e, ExchangeError):
            logger.exception(f"Webhook execution failed: {type(e).__name__}")
        await ctx.trade_log.record(
            build_trade_entry(
                action=inbound.action.value,
                symbol=inbound.symbol,
                amount=inbound.amount,
                error=str(e),
            )
        )
        webhook_requests_total.labels(outcome="error").inc()
        return error_response(status_code, str(e), rate_headers)

    result_data = result.to_dict()
    await ctx.trade_log.record(
        build_trade_entry(
            action=inbound.action.value,
            symbol=inbound.symbol,
            amount=inbound.amount,
            result=result_data,
        )
    )
    webhook_requests_total.labels(outcome=result.status.value).inc()

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "success": True,
            "data": {
                "action": inbound.action.value,
                "symbol": inbound.symbol,
                "amount": str(inbound.amount),
                "leverage": str(inbound.leverage) if inbound.leverage is not None else None,
                "result": result_data,
                "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            },
        },
        headers=rate_headers,
    )
