"""
Webhook authentication.

Alerting platforms such as TradingView cannot send custom headers, so the
gateway authenticates with what it has:

1. Source IP allow-list (optional, ``ENABLE_IP_WHITELIST``)
2. Shared secret inside the JSON payload (optional, ``WEBHOOK_SECRET``)

The client IP is taken from ``CF-Connecting-IP`` when behind Cloudflare,
then the first ``X-Forwarded-For`` entry, then the socket peer.
"""

import hmac
import logging
from typing import Any

from fastapi import Request, status

from apps.signal_gateway.config import Settings
from apps.signal_gateway.errors import GatewayError

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str | None:
    """Best-effort client IP for allow-listing and rate limiting."""
    cf_ip = request.headers.get("CF-Connecting-IP", "").strip()
    if cf_ip:
        return cf_ip
    forwarded = request.headers.get("X-Forwarded-For", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    if request.client:
        return request.client.host
    return None


def verify_webhook_secret(provided: Any, expected: str) -> bool:
    """Constant-time comparison of the payload secret.

    Examples:
        >>> verify_webhook_secret("s3cret", "s3cret")
        True
        >>> verify_webhook_secret(None, "s3cret")
        False
    """
    if not isinstance(provided, str) or not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def authenticate_webhook(request: Request, payload: dict[str, Any], settings: Settings) -> str | None:
    """
    Authenticate a webhook request.

    Args:
        request: Incoming request (headers, peer)
        payload: Parsed JSON body
        settings: Gateway settings

    Returns:
        The client IP used for the decision

    Raises:
        GatewayError: 401 when the IP is not allowed or the secret is wrong
    """
    client_ip = get_client_ip(request)

    if settings.enable_ip_whitelist:
        if not client_ip or client_ip not in settings.allowed_ip_list:
            logger.warning(
                "Webhook rejected: source IP not allowed",
                extra={"client_ip": client_ip or "unknown"},
            )
            raise GatewayError(
                status.HTTP_401_UNAUTHORIZED,
                f"Unauthorized IP address: {client_ip or 'unknown'}",
                outcome="unauthorized",
            )

    if settings.webhook_secret:
        if not verify_webhook_secret(payload.get("secret"), settings.webhook_secret):
            logger.warning("Webhook rejected: invalid or missing secret", extra={"client_ip": client_ip})
            raise GatewayError(
                status.HTTP_401_UNAUTHORIZED,
                "Invalid or missing secret token",
                outcome="unauthorized",
            )
    elif settings.environment not in ("dev", "test"):
        logger.warning(
            "Webhook secret verification disabled (WEBHOOK_SECRET not set)",
            extra={"environment": settings.environment},
        )

    return client_ip
