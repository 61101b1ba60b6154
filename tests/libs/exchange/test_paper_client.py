"""Tests for the in-memory paper venue."""

from __future__ import annotations

from decimal import Decimal

import pytest

from libs.exchange.client import ExchangeClient
from libs.exchange.exceptions import ExchangeAPIError
from libs.exchange.models import PositionMode, PositionSide
from libs.exchange.paper import FALLBACK_PRICE, PaperFuturesClient


@pytest.fixture()
def paper() -> PaperFuturesClient:
    return PaperFuturesClient()


def test_satisfies_exchange_client_protocol(paper: PaperFuturesClient) -> None:
    assert isinstance(paper, ExchangeClient)


@pytest.mark.asyncio()
async def test_balance_and_optional_accounts(paper: PaperFuturesClient) -> None:
    balance = await paper.get_balance()

    assert balance.available == Decimal("9000")
    assert balance.currency == "USDT"
    assert balance.leverage == Decimal("10")
    assert await paper.get_margin_account("BTC_USDT") is None
    assert await paper.get_contract_account("BTC_USDT") is None


@pytest.mark.asyncio()
async def test_contract_uses_mock_price_and_fallback(paper: PaperFuturesClient) -> None:
    btc = await paper.get_contract("BTC/USDT:USDT")
    unknown = await paper.get_contract("PEPE_USDT")

    assert btc.instrument == "BTC_USDT"
    assert btc.contract_size == Decimal("1")
    assert btc.mark_price == Decimal("65000")
    assert unknown.mark_price == FALLBACK_PRICE


@pytest.mark.asyncio()
async def test_price_overrides_merge_with_defaults() -> None:
    paper = PaperFuturesClient(prices={"BTC": Decimal("70000")})

    assert (await paper.get_contract("BTC_USDT")).mark_price == Decimal("70000")
    assert (await paper.get_contract("ETH_USDT")).mark_price == Decimal("3500")


class TestDualMode:
    @pytest.mark.asyncio()
    async def test_long_and_short_legs_coexist(self, paper: PaperFuturesClient) -> None:
        await paper.place_order("BTC_USDT", 5, reduce_only=False)
        await paper.place_order("BTC_USDT", -2, reduce_only=False)

        position = await paper.get_position("BTC_USDT")

        assert position is not None
        assert position.mode is PositionMode.DUAL
        assert position.long_size == Decimal("5")
        assert position.short_size == Decimal("2")
        assert position.leverage_for(PositionSide.LONG) == Decimal("10")

    @pytest.mark.asyncio()
    async def test_reduce_only_close_empties_leg(self, paper: PaperFuturesClient) -> None:
        await paper.place_order("ETH_USDT", 4, reduce_only=False)

        ack = await paper.place_order("ETH_USDT", -4, reduce_only=True, text="t-long-exit")

        assert ack.order_id.startswith("paper-")
        assert ack.filled_size == -4
        assert ack.finish_as == "filled"
        assert ack.fill_price == Decimal("3500")
        assert await paper.get_position("ETH_USDT") is None

    @pytest.mark.asyncio()
    async def test_reduce_only_fills_only_reducible_amount(self, paper: PaperFuturesClient) -> None:
        await paper.place_order("BTC_USDT", 3, reduce_only=False)

        ack = await paper.place_order("BTC_USDT", -10, reduce_only=True)

        assert ack.filled_size == -3
        assert ack.left == -7
        assert ack.finish_as == "reduce_only"
        assert await paper.get_position("BTC_USDT") is None

    @pytest.mark.asyncio()
    async def test_reduce_only_does_not_touch_other_leg(self, paper: PaperFuturesClient) -> None:
        await paper.place_order("BTC_USDT", -6, reduce_only=False)

        with pytest.raises(ExchangeAPIError) as exc_info:
            await paper.place_order("BTC_USDT", -1, reduce_only=True)

        assert exc_info.value.label == "REDUCE_ONLY_FAIL"
        position = await paper.get_position("BTC_USDT")
        assert position is not None
        assert position.short_size == Decimal("6")


class TestSingleMode:
    @pytest.mark.asyncio()
    async def test_orders_net_against_each_other(self) -> None:
        paper = PaperFuturesClient(position_mode=PositionMode.SINGLE)
        await paper.place_order("BTC_USDT", 5, reduce_only=False)
        await paper.place_order("BTC_USDT", -2, reduce_only=False)

        position = await paper.get_position("BTC_USDT")

        assert position is not None
        assert position.mode is PositionMode.SINGLE
        assert position.long_size == Decimal("3")
        assert position.short_size == Decimal("0")

    @pytest.mark.asyncio()
    async def test_reduce_only_cannot_flip_position(self) -> None:
        paper = PaperFuturesClient(position_mode=PositionMode.SINGLE)
        await paper.place_order("BTC_USDT", -2, reduce_only=False)

        ack = await paper.place_order("BTC_USDT", 5, reduce_only=True)

        assert ack.filled_size == 2
        assert ack.finish_as == "reduce_only"
        assert await paper.get_position("BTC_USDT") is None

    @pytest.mark.asyncio()
    async def test_reduce_only_same_direction_rejected(self) -> None:
        paper = PaperFuturesClient(position_mode=PositionMode.SINGLE)
        await paper.place_order("BTC_USDT", 2, reduce_only=False)

        with pytest.raises(ExchangeAPIError) as exc_info:
            await paper.place_order("BTC_USDT", 1, reduce_only=True)

        assert exc_info.value.label == "REDUCE_ONLY_FAIL"


@pytest.mark.asyncio()
async def test_zero_size_rejected(paper: PaperFuturesClient) -> None:
    with pytest.raises(ExchangeAPIError) as exc_info:
        await paper.place_order("BTC_USDT", 0, reduce_only=False)

    assert exc_info.value.status_code == 400
    assert exc_info.value.label == "INVALID_PARAM_VALUE"


@pytest.mark.asyncio()
async def test_cancel_returns_final_state_or_404(paper: PaperFuturesClient) -> None:
    ack = await paper.place_order("BTC_USDT", 1, reduce_only=False)

    assert await paper.cancel_order(ack.order_id) == ack
    assert await paper.list_open_orders() == []
    with pytest.raises(ExchangeAPIError) as exc_info:
        await paper.cancel_order("paper-999")
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio()
async def test_only_recent_orders_are_kept() -> None:
    paper = PaperFuturesClient(max_orders=2)
    first, second, third = [await paper.place_order("ETH_USDT", 1, reduce_only=False) for _ in range(3)]

    with pytest.raises(ExchangeAPIError):
        await paper.cancel_order(first.order_id)
    assert await paper.cancel_order(second.order_id) == second
    assert await paper.cancel_order(third.order_id) == third
