"""
Order lifecycle: map a trade action onto one venue order.

    action        dual mode                          single mode
    open_long     +contracts                         same
    open_short    -contracts                         same
    close_long    -min(requested, long), reduce      -requested, reduce
    close_short   +min(requested, short), reduce     +requested, reduce

Closes look up the position first and become no-ops when there is nothing on
the requested side or the requested amount is below one contract. Single
mode passes the requested size through unclamped and relies on the venue's
reduce-only handling.
"""

from decimal import ROUND_FLOOR

from libs.exchange.client import ExchangeClient
from libs.exchange.exceptions import ExchangeError
from libs.exchange.models import OrderAck, PositionMode, PositionSide
from libs.execution.events import ExecutionEventSink, NullEventSink
from libs.execution.exceptions import OrderSubmissionError
from libs.execution.models import (
    ExecutionResult,
    ExecutionStatus,
    SizedOrder,
    SizingDecision,
    TradeAction,
    TradeSignal,
)
from libs.execution.sizing import PositionSizer


class OrderLifecycleController:
    """
    Executes one signal as at most one order.

    Example:
        >>> controller = OrderLifecycleController(client, sizer)
        >>> result = await controller.handle(
        ...     TradeSignal(TradeAction.CLOSE_LONG, Decimal("0.01"), "BTC_USDT")
        ... )
        >>> result.status
        <ExecutionStatus.NO_POSITION: 'no_position'>
    """

    def __init__(
        self,
        client: ExchangeClient,
        sizer: PositionSizer,
        *,
        events: ExecutionEventSink | None = None,
    ) -> None:
        self.client = client
        self.sizer = sizer
        self.events = events or NullEventSink()

    async def handle(self, signal: TradeSignal) -> ExecutionResult:
        if signal.action.is_open:
            return await self._open(signal)
        return await self._close(signal)

    async def _open(self, signal: TradeSignal) -> ExecutionResult:
        decision = await self.sizer.size_open(
            signal.instrument,
            signal.allocation,
            signal.action.side,
            leverage_override=signal.leverage,
        )
        ack = await self._submit(signal.action, decision.order)
        return self._filled(signal.action, decision.order, ack, sizing=decision)

    async def _close(self, signal: TradeSignal) -> ExecutionResult:
        action = signal.action
        side = action.side
        contract = self.client.contract_name(signal.instrument)

        position = await self.client.get_position(contract)
        held = position.size_for(side) if position else 0
        if position is None or held <= 0:
            self.events.emit(
                "close_skipped", instrument=contract, action=action.value, reason="no_position"
            )
            return ExecutionResult(
                status=ExecutionStatus.NO_POSITION,
                instrument=contract,
                action=action,
                message=f"No {side.value} position to close on {contract}",
            )

        requested = await self.sizer.size_close(contract, signal.allocation)
        if position.mode is PositionMode.DUAL:
            held_contracts = int(held.to_integral_value(rounding=ROUND_FLOOR))
            size = min(requested, held_contracts)
            clamped = size < requested
        else:
            size = requested
            clamped = False

        if size <= 0:
            self.events.emit(
                "close_skipped",
                instrument=contract,
                action=action.value,
                reason="no_action",
                requested=requested,
                held=held,
            )
            return ExecutionResult(
                status=ExecutionStatus.NO_ACTION,
                instrument=contract,
                action=action,
                message=f"Close amount {signal.allocation} is below one contract on {contract}",
            )

        self.events.emit(
            "close_sized",
            instrument=contract,
            action=action.value,
            position_mode=position.mode.value,
            requested=requested,
            held=held,
            contracts=size,
            clamped=clamped,
        )
        order = SizedOrder(
            instrument=contract,
            signed_size=-size if side is PositionSide.LONG else size,
            reduce_only=True,
        )
        ack = await self._submit(action, order)
        return self._filled(action, order, ack)

    async def _submit(self, action: TradeAction, order: SizedOrder) -> OrderAck:
        self.events.emit(
            "order_submitting",
            instrument=order.instrument,
            action=action.value,
            signed_size=order.signed_size,
            reduce_only=order.reduce_only,
        )
        try:
            ack = await self.client.place_order(
                order.instrument,
                order.signed_size,
                reduce_only=order.reduce_only,
                text=action.order_text,
            )
        except ExchangeError as e:
            self.events.emit(
                "order_failed",
                instrument=order.instrument,
                action=action.value,
                signed_size=order.signed_size,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise OrderSubmissionError(
                f"Failed to place {action.value} order for {order.instrument}: {e}",
                action=action.value,
                instrument=order.instrument,
            ) from e

        self.events.emit(
            "order_submitted",
            instrument=order.instrument,
            action=action.value,
            order_id=ack.order_id,
            signed_size=order.signed_size,
            filled_size=ack.filled_size,
            venue_status=ack.status,
            finish_as=ack.finish_as,
        )
        return ack

    @staticmethod
    def _filled(
        action: TradeAction,
        order: SizedOrder,
        ack: OrderAck,
        sizing: SizingDecision | None = None,
    ) -> ExecutionResult:
        return ExecutionResult(
            status=ExecutionStatus.FILLED,
            instrument=order.instrument,
            action=action,
            order_id=ack.order_id,
            signed_size=order.signed_size,
            filled_size=ack.filled_size,
            fill_price=ack.fill_price,
            venue_status=ack.status,
            finish_as=ack.finish_as,
            sizing=sizing,
        )
