"""
Normalized venue records.

Exchange clients translate raw venue payloads into these types at the
boundary; sizing and lifecycle code never sees raw dicts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class PositionMode(str, Enum):
    """Position accounting mode.

    DUAL: long and short legs are tracked independently and can coexist.
    SINGLE: one net signed position per contract.
    """

    DUAL = "dual"
    SINGLE = "single"


class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"


@dataclass(frozen=True)
class ContractMetadata:
    """Contract specification and reference price for one instrument."""

    instrument: str
    contract_size: Decimal
    mark_price: Decimal
    leverage_min: Decimal | None = None
    leverage_max: Decimal | None = None


@dataclass(frozen=True)
class AccountBalance:
    """Futures account balance.

    ``leverage`` is account-level leverage when the venue reports one on the
    account payload; it is a low-priority sizing fallback.
    """

    available: Decimal
    currency: str
    leverage: Decimal | None = None


@dataclass(frozen=True)
class MarginAccount:
    """Margin sub-account for an instrument (quote-currency side)."""

    instrument: str
    available: Decimal
    leverage: Decimal | None = None


@dataclass(frozen=True)
class ContractAccount:
    """Per-contract futures account settings."""

    instrument: str
    leverage: Decimal | None = None


@dataclass(frozen=True)
class Position:
    """Open exposure for one instrument.

    Sizes are contract counts and always non-negative; the side is carried by
    which field holds the size.
    """

    instrument: str
    long_size: Decimal
    short_size: Decimal
    mode: PositionMode
    leverage: Decimal | None = None
    long_leverage: Decimal | None = None
    short_leverage: Decimal | None = None

    def __post_init__(self) -> None:
        if self.long_size < 0 or self.short_size < 0:
            raise ValueError(
                f"Position sizes must be non-negative (long={self.long_size}, short={self.short_size})"
            )

    def size_for(self, side: PositionSide) -> Decimal:
        return self.long_size if side is PositionSide.LONG else self.short_size

    def leverage_for(self, side: PositionSide) -> Decimal | None:
        """Side-specific leverage, falling back to the shared leverage field."""
        side_leverage = self.long_leverage if side is PositionSide.LONG else self.short_leverage
        if side_leverage is not None and side_leverage > 0:
            return side_leverage
        if self.leverage is not None and self.leverage > 0:
            return self.leverage
        return None

    @property
    def net_size(self) -> Decimal:
        return self.long_size - self.short_size


@dataclass(frozen=True)
class OrderAck:
    """Venue acknowledgement for a submitted or cancelled order.

    ``size`` and ``left`` are signed contract counts as reported by the venue;
    for an IOC order ``left`` is what was cancelled unfilled.
    """

    order_id: str
    status: str
    size: int
    left: int = 0
    fill_price: Decimal | None = None
    finish_as: str | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def filled_size(self) -> int:
        return self.size - self.left
