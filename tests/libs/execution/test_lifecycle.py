"""Tests for OrderLifecycleController action mapping and close handling."""

from __future__ import annotations

from decimal import Decimal

import pytest

from libs.exchange.exceptions import ExchangeAPIError, ExchangeConnectionError
from libs.exchange.models import ContractMetadata, Position, PositionMode
from libs.execution.exceptions import OrderSubmissionError
from libs.execution.lifecycle import OrderLifecycleController
from libs.execution.models import ExecutionStatus, TradeAction, TradeSignal
from libs.execution.sizing import PositionSizer


def _controller(client, sink=None) -> OrderLifecycleController:
    return OrderLifecycleController(client, PositionSizer(client, events=sink), events=sink)


def _position(long_size: str = "0", short_size: str = "0", mode: PositionMode = PositionMode.DUAL) -> Position:
    return Position(
        instrument="BTC_USDT",
        long_size=Decimal(long_size),
        short_size=Decimal(short_size),
        mode=mode,
    )


class TestOpen:
    @pytest.mark.asyncio()
    async def test_open_long_buys(self, fake_client, recording_sink) -> None:
        result = await _controller(fake_client, recording_sink).handle(
            TradeSignal(TradeAction.OPEN_LONG, Decimal("10"), "BTC/USDT:USDT", leverage=Decimal("5"))
        )

        assert result.status is ExecutionStatus.FILLED
        assert result.signed_size == 5
        assert result.sizing is not None
        assert fake_client.orders == [
            {"instrument": "BTC_USDT", "size": 5, "reduce_only": False, "text": "t-long-entry"}
        ]
        assert recording_sink.names()[-2:] == ["order_submitting", "order_submitted"]

    @pytest.mark.asyncio()
    async def test_open_short_sells(self, fake_client) -> None:
        result = await _controller(fake_client).handle(
            TradeSignal(TradeAction.OPEN_SHORT, Decimal("10"), "BTC_USDT", leverage=Decimal("5"))
        )

        assert result.signed_size == -5
        assert fake_client.orders[0]["size"] == -5
        assert fake_client.orders[0]["reduce_only"] is False

    @pytest.mark.asyncio()
    async def test_contract_lookup_failure_places_nothing(self, fake_client) -> None:
        fake_client.contract_error = ExchangeAPIError("not found", status_code=400, label="CONTRACT_NOT_FOUND")

        with pytest.raises(ExchangeAPIError):
            await _controller(fake_client).handle(TradeSignal(TradeAction.OPEN_LONG, Decimal("10"), "BTC_USDT"))

        assert "place_order" not in fake_client.calls

    @pytest.mark.asyncio()
    async def test_submission_failure_is_wrapped(self, fake_client, recording_sink) -> None:
        cause = ExchangeConnectionError("connection reset")
        fake_client.place_error = cause

        with pytest.raises(OrderSubmissionError) as exc_info:
            await _controller(fake_client, recording_sink).handle(
                TradeSignal(TradeAction.OPEN_LONG, Decimal("10"), "BTC_USDT")
            )

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.action == "open_long"
        assert exc_info.value.instrument == "BTC_USDT"
        failed = recording_sink.find("order_failed")
        assert failed[0]["error_type"] == "ExchangeConnectionError"

    @pytest.mark.asyncio()
    async def test_programming_error_is_not_reported_as_venue_failure(self, fake_client, recording_sink) -> None:
        fake_client.place_error = TypeError("unsupported operand")

        with pytest.raises(TypeError):
            await _controller(fake_client, recording_sink).handle(
                TradeSignal(TradeAction.OPEN_LONG, Decimal("10"), "BTC_USDT")
            )

        assert recording_sink.find("order_failed") == []


class TestCloseDual:
    @pytest.mark.asyncio()
    async def test_close_long_clamped_to_held(self, fake_client, recording_sink) -> None:
        fake_client.position = _position(long_size="3")

        result = await _controller(fake_client, recording_sink).handle(
            TradeSignal(TradeAction.CLOSE_LONG, Decimal("10"), "BTC_USDT")
        )

        assert result.status is ExecutionStatus.FILLED
        assert result.signed_size == -3
        assert fake_client.orders == [
            {"instrument": "BTC_USDT", "size": -3, "reduce_only": True, "text": "t-long-exit"}
        ]
        sized = recording_sink.find("close_sized")[0]
        assert sized["requested"] == 10
        assert sized["contracts"] == 3
        assert sized["clamped"] is True

    @pytest.mark.asyncio()
    async def test_close_short_buys_back(self, fake_client) -> None:
        fake_client.position = _position(long_size="9", short_size="4")

        result = await _controller(fake_client).handle(
            TradeSignal(TradeAction.CLOSE_SHORT, Decimal("2"), "BTC_USDT")
        )

        assert result.signed_size == 2
        assert fake_client.orders[0]["reduce_only"] is True
        assert fake_client.orders[0]["text"] == "t-short-exit"

    @pytest.mark.asyncio()
    async def test_fractional_held_size_floors(self, fake_client) -> None:
        fake_client.position = _position(long_size="2.7")

        result = await _controller(fake_client).handle(
            TradeSignal(TradeAction.CLOSE_LONG, Decimal("5"), "BTC_USDT")
        )

        assert result.signed_size == -2

    @pytest.mark.asyncio()
    async def test_no_position_places_nothing(self, fake_client, recording_sink) -> None:
        result = await _controller(fake_client, recording_sink).handle(
            TradeSignal(TradeAction.CLOSE_LONG, Decimal("1"), "BTC_USDT")
        )

        assert result.status is ExecutionStatus.NO_POSITION
        assert "place_order" not in fake_client.calls
        assert "get_contract" not in fake_client.calls
        assert recording_sink.find("close_skipped")[0]["reason"] == "no_position"

    @pytest.mark.asyncio()
    async def test_wrong_side_is_no_position(self, fake_client) -> None:
        fake_client.position = _position(short_size="5")

        result = await _controller(fake_client).handle(
            TradeSignal(TradeAction.CLOSE_LONG, Decimal("1"), "BTC_USDT")
        )

        assert result.status is ExecutionStatus.NO_POSITION
        assert fake_client.orders == []

    @pytest.mark.asyncio()
    async def test_amount_below_one_contract_is_no_action(self, fake_client, recording_sink) -> None:
        fake_client.position = _position(long_size="3")
        fake_client.contract = ContractMetadata(
            instrument="BTC_USDT", contract_size=Decimal("0.01"), mark_price=Decimal("100")
        )

        result = await _controller(fake_client, recording_sink).handle(
            TradeSignal(TradeAction.CLOSE_LONG, Decimal("0.005"), "BTC_USDT")
        )

        assert result.status is ExecutionStatus.NO_ACTION
        assert fake_client.orders == []
        assert recording_sink.find("close_skipped")[0]["reason"] == "no_action"


class TestCloseSingle:
    @pytest.mark.asyncio()
    async def test_requested_size_passes_through(self, fake_client, recording_sink) -> None:
        fake_client.position = _position(long_size="3", mode=PositionMode.SINGLE)

        result = await _controller(fake_client, recording_sink).handle(
            TradeSignal(TradeAction.CLOSE_LONG, Decimal("10"), "BTC_USDT")
        )

        assert result.signed_size == -10
        assert fake_client.orders[0]["reduce_only"] is True
        assert recording_sink.find("close_sized")[0]["clamped"] is False

    @pytest.mark.asyncio()
    async def test_position_lookup_error_propagates(self, fake_client) -> None:
        fake_client.position_error = ExchangeAPIError("busy", status_code=503)

        with pytest.raises(ExchangeAPIError):
            await _controller(fake_client).handle(
                TradeSignal(TradeAction.CLOSE_SHORT, Decimal("1"), "BTC_USDT")
            )

        assert fake_client.orders == []
