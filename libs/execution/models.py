"""
Execution domain records.

Signals come in as ``TradeSignal``, sizing produces a ``SizingDecision``
carrying the ``SizedOrder`` to submit, and every execution ends with an
``ExecutionResult``. All quantities are ``Decimal``; contract counts are
``int``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from libs.exchange.models import PositionMode, PositionSide


class TradeAction(str, Enum):
    """Directional trade intent.

    Webhook senders use the ``long_entry`` / ``long_exit`` / ``short_entry``
    / ``short_exit`` spelling; both spellings parse to the same member.

    Examples:
        >>> TradeAction("long_entry") is TradeAction.OPEN_LONG
        True
        >>> TradeAction("CLOSE_SHORT").side
        <PositionSide.SHORT: 'short'>
    """

    OPEN_LONG = "open_long"
    CLOSE_LONG = "close_long"
    OPEN_SHORT = "open_short"
    CLOSE_SHORT = "close_short"

    @classmethod
    def _missing_(cls, value: object) -> TradeAction | None:
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        normalized = _ACTION_ALIASES.get(normalized, normalized)
        for member in cls:
            if member.value == normalized:
                return member
        return None

    @property
    def is_open(self) -> bool:
        return self in (TradeAction.OPEN_LONG, TradeAction.OPEN_SHORT)

    @property
    def side(self) -> PositionSide:
        if self in (TradeAction.OPEN_LONG, TradeAction.CLOSE_LONG):
            return PositionSide.LONG
        return PositionSide.SHORT

    @property
    def order_text(self) -> str:
        """Client order label; the venue requires a ``t-`` prefix."""
        return _ORDER_TEXT[self]


_ACTION_ALIASES = {
    "long_entry": "open_long",
    "long_exit": "close_long",
    "short_entry": "open_short",
    "short_exit": "close_short",
}

_ORDER_TEXT = {
    TradeAction.OPEN_LONG: "t-long-entry",
    TradeAction.CLOSE_LONG: "t-long-exit",
    TradeAction.OPEN_SHORT: "t-short-entry",
    TradeAction.CLOSE_SHORT: "t-short-exit",
}


@dataclass(frozen=True)
class TradeSignal:
    """
    An inbound trading signal.

    Attributes:
        action: What to do
        allocation: For opens, the share of available balance as a fraction
            in (0, 1] or a percentage in (1, 100]. For closes, the base-asset
            quantity to close.
        instrument: Symbol in any accepted spelling (``BTC/USDT:USDT``, ``BTC_USDT``)
        leverage: Explicit leverage override, highest priority when set
    """

    action: TradeAction
    allocation: Decimal
    instrument: str
    leverage: Decimal | None = None


class LeverageSource(str, Enum):
    SIGNAL = "signal"
    POSITION = "position"
    MARGIN = "margin"
    CONTRACT = "contract"
    ACCOUNT = "account"
    DEFAULT = "default"


@dataclass(frozen=True)
class LeverageResolution:
    value: Decimal
    source: LeverageSource

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError(f"Leverage must be positive, got {self.value}")


@dataclass(frozen=True)
class SizedOrder:
    """An order ready for submission. The sign of ``signed_size`` is the side."""

    instrument: str
    signed_size: int
    reduce_only: bool

    def __post_init__(self) -> None:
        if self.signed_size == 0:
            raise ValueError(f"Order for {self.instrument} has zero size")


@dataclass(frozen=True)
class SizingDecision:
    """How an open order was sized, kept for the result and the audit trail."""

    order: SizedOrder
    fraction: Decimal
    available: Decimal
    balance_source: str
    leverage: LeverageResolution
    contract_size: Decimal
    mark_price: Decimal
    notional: Decimal
    base_amount: Decimal
    mode: PositionMode

    @property
    def contracts(self) -> int:
        return abs(self.order.signed_size)

    def as_fields(self) -> dict[str, Any]:
        return {
            "contracts": self.contracts,
            "fraction": self.fraction,
            "available": self.available,
            "balance_source": self.balance_source,
            "leverage": self.leverage.value,
            "leverage_source": self.leverage.source.value,
            "contract_size": self.contract_size,
            "mark_price": self.mark_price,
            "notional": self.notional,
            "base_amount": self.base_amount,
            "position_mode": self.mode.value,
        }


class ExecutionStatus(str, Enum):
    FILLED = "filled"
    NO_POSITION = "no_position"
    NO_ACTION = "no_action"


@dataclass(frozen=True)
class ExecutionResult:
    """
    Outcome of one signal.

    ``FILLED`` carries the order fields; ``NO_POSITION`` and ``NO_ACTION``
    carry only a message. Errors are raised, never returned.
    """

    status: ExecutionStatus
    instrument: str
    action: TradeAction
    order_id: str | None = None
    signed_size: int | None = None
    filled_size: int | None = None
    fill_price: Decimal | None = None
    venue_status: str | None = None
    finish_as: str | None = None
    message: str | None = None
    sizing: SizingDecision | None = None

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation; Decimals become strings."""
        data: dict[str, Any] = {
            "status": self.status.value,
            "instrument": self.instrument,
            "action": self.action.value,
        }
        if self.status is ExecutionStatus.FILLED:
            data.update(
                order_id=self.order_id,
                signed_size=self.signed_size,
                filled_size=self.filled_size,
                fill_price=str(self.fill_price) if self.fill_price is not None else None,
                venue_status=self.venue_status,
                finish_as=self.finish_as,
            )
        if self.message:
            data["message"] = self.message
        if self.sizing is not None:
            data["sizing"] = {
                key: str(value) if isinstance(value, Decimal) else value
                for key, value in self.sizing.as_fields().items()
            }
        return data
