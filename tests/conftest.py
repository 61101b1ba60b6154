"""
Shared fixtures for tests.

Provides an in-memory ExchangeClient double whose venue state is set per
test, and an event sink that records what the execution core emits.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import pytest

from libs.exchange.exceptions import ExchangeError
from libs.exchange.models import (
    AccountBalance,
    ContractAccount,
    ContractMetadata,
    MarginAccount,
    OrderAck,
    Position,
)
from libs.exchange.parsing import parse_symbol


class RecordingEventSink:
    """Keeps every emitted event as (name, fields)."""

    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, event: str, **fields: Any) -> None:
        self.events.append((event, fields))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def find(self, event: str) -> list[dict[str, Any]]:
        return [fields for name, fields in self.events if name == event]


class FakeExchangeClient:
    """ExchangeClient double with settable venue state.

    Set ``<lookup>_error`` to make the matching call raise.
    """

    def __init__(
        self,
        *,
        balance: AccountBalance | None = None,
        margin: MarginAccount | None = None,
        contract_account: ContractAccount | None = None,
        contract: ContractMetadata | None = None,
        position: Position | None = None,
    ) -> None:
        self.balance = balance or AccountBalance(available=Decimal("1000"), currency="USDT")
        self.margin = margin
        self.contract_account = contract_account
        self.contract = contract or ContractMetadata(
            instrument="BTC_USDT", contract_size=Decimal("1"), mark_price=Decimal("100")
        )
        self.position = position
        self.contract_error: ExchangeError | None = None
        self.position_error: ExchangeError | None = None
        self.place_error: Exception | None = None
        self.calls: list[str] = []
        self.orders: list[dict[str, Any]] = []

    def contract_name(self, symbol: str) -> str:
        return parse_symbol(symbol)

    async def get_balance(self) -> AccountBalance:
        self.calls.append("get_balance")
        return self.balance

    async def get_margin_account(self, instrument: str) -> MarginAccount | None:
        self.calls.append("get_margin_account")
        return self.margin

    async def get_contract_account(self, instrument: str) -> ContractAccount | None:
        self.calls.append("get_contract_account")
        return self.contract_account

    async def get_contract(self, instrument: str) -> ContractMetadata:
        self.calls.append("get_contract")
        if self.contract_error is not None:
            raise self.contract_error
        return self.contract

    async def get_position(self, instrument: str) -> Position | None:
        self.calls.append("get_position")
        if self.position_error is not None:
            raise self.position_error
        return self.position

    async def place_order(
        self, instrument: str, signed_size: int, *, reduce_only: bool, text: str = "t-signal"
    ) -> OrderAck:
        self.calls.append("place_order")
        if self.place_error is not None:
            raise self.place_error
        self.orders.append(
            {"instrument": instrument, "size": signed_size, "reduce_only": reduce_only, "text": text}
        )
        return OrderAck(
            order_id=f"order-{len(self.orders)}",
            status="finished",
            size=signed_size,
            left=0,
            fill_price=self.contract.mark_price,
            finish_as="filled",
        )

    async def cancel_order(self, order_id: str) -> OrderAck:
        return OrderAck(order_id=order_id, status="finished", size=0)

    async def list_open_orders(self, instrument: str | None = None) -> list[dict[str, Any]]:
        return []

    async def aclose(self) -> None:
        return None


@pytest.fixture()
def recording_sink() -> RecordingEventSink:
    return RecordingEventSink()


@pytest.fixture()
def fake_client() -> FakeExchangeClient:
    return FakeExchangeClient()
