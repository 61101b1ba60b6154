"""
Pydantic schemas for Signal Gateway API.

Defines the inbound webhook payload and the response envelopes.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from libs.common import TimestampSerializerMixin
from libs.execution.models import TradeAction

WEBHOOK_ACTIONS = ("long_entry", "long_exit", "short_entry", "short_exit")


class WebhookSignal(BaseModel):
    """
    Trading signal as sent by an alerting platform.

    Examples:
        Open a long with 10% of available balance at 5x:
        >>> WebhookSignal(action="long_entry", amount=10, symbol="BTC/USDT:USDT", leverage=5)

        Close 0.01 BTC of an open short:
        >>> WebhookSignal(action="short_exit", amount="0.01", symbol="BTC_USDT")

    Notes:
        - ``amount`` is a percentage/fraction of balance for entries and a
          base-asset quantity for exits
        - ``secret`` is consumed by authentication and never echoed back
    """

    model_config = ConfigDict(extra="ignore")

    action: TradeAction
    amount: Decimal = Field(..., gt=0, le=100)
    symbol: str = Field(..., min_length=1, max_length=64)
    leverage: Decimal | None = Field(default=None, gt=0, le=125)
    secret: str | None = Field(default=None, repr=False)

    @field_validator("action", mode="before")
    @classmethod
    def _parse_action(cls, value: Any) -> TradeAction:
        try:
            return TradeAction(value)
        except ValueError:
            raise ValueError(
                f"Invalid action: {value}. Must be one of: {', '.join(WEBHOOK_ACTIONS)}"
            ) from None

    @field_validator("symbol")
    @classmethod
    def _strip_symbol(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Symbol must not be blank")
        return value


class WebhookResponse(BaseModel):
    """Envelope for every webhook answer, success or failure."""

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None


class HealthResponse(TimestampSerializerMixin, BaseModel):
    """
    Health check response.

    Examples:
        >>> HealthResponse(
        ...     status="healthy",
        ...     service="signal-gateway",
        ...     version="0.1.0",
        ...     mode="paper",
        ...     redis_connected=None,
        ...     timestamp=datetime.now(UTC),
        ... )
    """

    status: Literal["healthy", "degraded"]
    service: str
    version: str
    mode: Literal["live", "paper"]
    redis_connected: bool | None = None
    active_instruments: int = 0
    timestamp: datetime
