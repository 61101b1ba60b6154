"""
In-memory paper venue.

``PaperFuturesClient`` implements the same capability as the live Gate.io
client without any network access. It is used when the gateway runs with
``TEST_MODE=true`` and in tests that want realistic venue behaviour rather
than a hand-built mock.

Simulation rules:
    - Balance and leverage are fixed; margin usage and PnL are not modelled
    - Every contract exists, with contract size 1 and a static mock price
    - Orders fill immediately and completely at the mock price
    - ``reduce_only`` orders fill at most the exposure they can reduce; the
      remainder is reported as ``left`` with ``finish_as="reduce_only"``
"""

from __future__ import annotations

import itertools
import logging
from decimal import Decimal
from typing import Any

from libs.exchange.exceptions import ExchangeAPIError
from libs.exchange.models import (
    AccountBalance,
    ContractAccount,
    ContractMetadata,
    MarginAccount,
    OrderAck,
    Position,
    PositionMode,
)
from libs.exchange.parsing import normalize_position, parse_contract, parse_order_ack, parse_symbol

logger = logging.getLogger(__name__)

DEFAULT_MOCK_PRICES: dict[str, Decimal] = {
    "BTC": Decimal("65000"),
    "ETH": Decimal("3500"),
    "BNB": Decimal("600"),
    "SOL": Decimal("150"),
    "XRP": Decimal("0.65"),
    "ADA": Decimal("0.60"),
    "DOT": Decimal("8.5"),
    "DOGE": Decimal("0.15"),
    "AVAX": Decimal("40"),
    "MATIC": Decimal("1.2"),
}
FALLBACK_PRICE = Decimal("100")
TAKER_FEE_RATE = Decimal("0.0006")


class PaperFuturesClient:
    """Simulated perpetual futures venue.

    Args:
        balance_available: Available collateral reported by ``get_balance``
        leverage: Leverage reported on the account and every position leg
        position_mode: DUAL keeps independent long/short legs, SINGLE nets them
        settle: Settlement currency
        prices: Mock prices keyed by base currency (``BTC``), merged over
            the defaults
        max_orders: Finished orders kept for ``cancel_order``; oldest are dropped
    """

    def __init__(
        self,
        *,
        balance_available: Decimal = Decimal("9000"),
        leverage: Decimal = Decimal("10"),
        position_mode: PositionMode = PositionMode.DUAL,
        settle: str = "usdt",
        prices: dict[str, Decimal] | None = None,
        max_orders: int = 500,
    ) -> None:
        self.balance_available = Decimal(balance_available)
        self.leverage = Decimal(leverage)
        self.position_mode = position_mode
        self.settle = settle.lower()
        self.prices = {**DEFAULT_MOCK_PRICES, **(prices or {})}
        # contract -> [long, short] in dual mode, [net, 0] in single mode
        self._books: dict[str, list[int]] = {}
        self._orders: dict[str, OrderAck] = {}
        self.max_orders = max_orders
        self._ids = itertools.count(1)
        logger.warning(
            "Paper trading venue active, no orders reach a real exchange",
            extra={"position_mode": position_mode.value, "settle": self.settle},
        )

    def contract_name(self, symbol: str) -> str:
        return parse_symbol(symbol)

    def mark_price(self, instrument: str) -> Decimal:
        base = self.contract_name(instrument).split("_")[0]
        return self.prices.get(base, FALLBACK_PRICE)

    async def aclose(self) -> None:
        return None

    async def get_balance(self) -> AccountBalance:
        return AccountBalance(
            available=self.balance_available,
            currency=self.settle.upper(),
            leverage=self.leverage,
        )

    async def get_margin_account(self, instrument: str) -> MarginAccount | None:
        return None

    async def get_contract_account(self, instrument: str) -> ContractAccount | None:
        return None

    async def get_contract(self, instrument: str) -> ContractMetadata:
        contract = self.contract_name(instrument)
        price = str(self.mark_price(contract))
        return parse_contract(
            {
                "name": contract,
                "quanto_multiplier": "1",
                "mark_price": price,
                "last_price": price,
                "index_price": price,
                "leverage_min": "1",
                "leverage_max": "100",
            },
            contract,
        )

    def _position_payload(self, contract: str) -> Any:
        """Render the book in the shape the live venue uses for this mode."""
        book = self._books.get(contract)
        if not book or book == [0, 0]:
            return None
        leverage = str(self.leverage)
        if self.position_mode is PositionMode.SINGLE:
            return {"contract": contract, "size": book[0], "leverage": leverage, "mode": "single"}
        return [
            {"contract": contract, "size": book[0], "leverage": leverage, "mode": "dual_long"},
            {"contract": contract, "size": -book[1], "leverage": leverage, "mode": "dual_short"},
        ]

    async def get_position(self, instrument: str) -> Position | None:
        contract = self.contract_name(instrument)
        return normalize_position(self._position_payload(contract), contract, self.position_mode)

    def _fill(self, contract: str, signed_size: int, reduce_only: bool) -> tuple[int, str]:
        """Apply an order to the book and return (filled signed size, finish_as)."""
        book = self._books.setdefault(contract, [0, 0])

        if self.position_mode is PositionMode.SINGLE:
            net = book[0]
            if reduce_only:
                # Only the part that moves the net position toward zero fills.
                if net == 0 or (net > 0) == (signed_size > 0):
                    reducible = 0
                else:
                    reducible = min(abs(signed_size), abs(net))
                filled = reducible if signed_size > 0 else -reducible
            else:
                filled = signed_size
            book[0] = net + filled
        elif reduce_only:
            # Sells reduce the long leg, buys reduce the short leg.
            leg = 0 if signed_size < 0 else 1
            reducible = min(abs(signed_size), book[leg])
            book[leg] -= reducible
            filled = reducible if signed_size > 0 else -reducible
        else:
            leg = 0 if signed_size > 0 else 1
            book[leg] += abs(signed_size)
            filled = signed_size

        if book == [0, 0]:
            del self._books[contract]
        return filled, "filled" if filled == signed_size else "reduce_only"

    async def place_order(
        self,
        instrument: str,
        signed_size: int,
        *,
        reduce_only: bool,
        text: str = "t-signal",
    ) -> OrderAck:
        contract = self.contract_name(instrument)
        if signed_size == 0:
            raise ExchangeAPIError(
                "Order size must not be zero",
                status_code=400,
                label="INVALID_PARAM_VALUE",
                method="POST",
                path="/orders",
            )
        filled, finish_as = self._fill(contract, signed_size, reduce_only)
        if filled == 0:
            raise ExchangeAPIError(
                f"Reduce-only order on {contract} has no exposure to reduce",
                status_code=400,
                label="REDUCE_ONLY_FAIL",
                method="POST",
                path="/orders",
            )

        price = self.mark_price(contract)
        notional = abs(filled) * price
        order_id = f"paper-{next(self._ids)}"
        ack = parse_order_ack(
            {
                "id": order_id,
                "contract": contract,
                "size": signed_size,
                "left": signed_size - filled,
                "price": "0",
                "fill_price": str(price),
                "tif": "ioc",
                "text": text,
                "reduce_only": reduce_only,
                "status": "finished",
                "finish_as": finish_as,
                "fee": str(notional * TAKER_FEE_RATE),
                "fee_currency": self.settle.upper(),
            }
        )
        self._orders[order_id] = ack
        if len(self._orders) > self.max_orders:
            del self._orders[next(iter(self._orders))]
        logger.info(
            f"Paper fill: {contract} size={filled} @ {price}",
            extra={"order_id": order_id, "reduce_only": reduce_only, "finish_as": finish_as},
        )
        return ack

    async def cancel_order(self, order_id: str) -> OrderAck:
        # IOC orders are finished on placement; cancelling returns the final state.
        ack = self._orders.get(order_id)
        if ack is None:
            raise ExchangeAPIError(
                f"Order {order_id} not found",
                status_code=404,
                label="ORDER_NOT_FOUND",
                method="DELETE",
                path=f"/orders/{order_id}",
            )
        return ack

    async def list_open_orders(self, instrument: str | None = None) -> list[dict[str, Any]]:
        return []
