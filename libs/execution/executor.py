"""
Signal execution entry point.

``TradeExecutor`` wires the sizer, the lifecycle controller and the
per-instrument serializer around one exchange client. Callers hand it a
``TradeSignal`` and get an ``ExecutionResult`` back, or the error that
stopped the execution.
"""

import asyncio
import time
from decimal import Decimal, InvalidOperation

from libs.exchange.client import ExchangeClient
from libs.exchange.models import ContractMetadata, PositionMode
from libs.execution.events import ExecutionEventSink, NullEventSink
from libs.execution.exceptions import InvalidAllocation, InvalidSignal, UnsupportedAction
from libs.execution.lifecycle import OrderLifecycleController
from libs.execution.models import ExecutionResult, TradeAction, TradeSignal
from libs.execution.serializer import ExecutionSerializer
from libs.execution.sizing import PositionSizer


def build_signal(
    action: str | TradeAction,
    amount: object,
    symbol: str,
    leverage: object | None = None,
) -> TradeSignal:
    """Build a ``TradeSignal`` from loosely typed input.

    Raises:
        UnsupportedAction: Unknown action string
        InvalidAllocation: ``amount`` is not a finite number
        InvalidSignal: Empty symbol or non-positive leverage
    """
    try:
        trade_action = TradeAction(action)
    except ValueError:
        raise UnsupportedAction(f"Unsupported action: {action!r}") from None

    if not isinstance(symbol, str) or not symbol.strip():
        raise InvalidSignal("Symbol is required")

    try:
        allocation = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        raise InvalidAllocation(f"Amount must be numeric, got {amount!r}") from None
    if not allocation.is_finite():
        raise InvalidAllocation(f"Amount must be finite, got {amount!r}")

    lev: Decimal | None = None
    if leverage is not None:
        try:
            lev = leverage if isinstance(leverage, Decimal) else Decimal(str(leverage))
        except (InvalidOperation, ValueError):
            raise InvalidSignal(f"Leverage must be numeric, got {leverage!r}") from None
        if not lev.is_finite() or lev <= 0:
            raise InvalidSignal(f"Leverage must be positive, got {leverage!r}")

    return TradeSignal(
        action=trade_action,
        allocation=allocation,
        instrument=symbol.strip(),
        leverage=lev,
    )


class TradeExecutor:
    """
    Execute trade signals against one venue.

    Attributes:
        client: Venue capability shared by all components
        sizer: PositionSizer
        controller: OrderLifecycleController
        serializer: ExecutionSerializer keyed by contract name

    Example:
        >>> executor = TradeExecutor(client, default_leverage=Decimal("3"), timeout_seconds=30)
        >>> result = await executor.execute(build_signal("long_entry", "10", "BTC/USDT:USDT"))
        >>> result.status.value
        'filled'
    """

    def __init__(
        self,
        client: ExchangeClient,
        *,
        default_leverage: Decimal = Decimal("1"),
        default_mode: PositionMode = PositionMode.DUAL,
        timeout_seconds: float | None = None,
        events: ExecutionEventSink | None = None,
    ) -> None:
        self.client = client
        self.events = events or NullEventSink()
        self.sizer = PositionSizer(
            client,
            default_leverage=default_leverage,
            default_mode=default_mode,
            events=self.events,
        )
        self.controller = OrderLifecycleController(client, self.sizer, events=self.events)
        self.serializer = ExecutionSerializer(timeout_seconds=timeout_seconds, events=self.events)

    async def validate_instrument(self, symbol: str) -> ContractMetadata:
        """Look the contract up on the venue; raises ExchangeError if unknown."""
        return await self.client.get_contract(self.client.contract_name(symbol))

    async def execute(self, signal: TradeSignal) -> ExecutionResult:
        key = self.client.contract_name(signal.instrument)
        self.events.emit(
            "execution_admitted",
            instrument=key,
            action=signal.action.value,
            allocation=signal.allocation,
            leverage=signal.leverage,
        )
        started = time.perf_counter()
        try:
            result = await self.serializer.execute(key, lambda: self.controller.handle(signal))
        except (Exception, asyncio.CancelledError) as e:
            self.events.emit(
                "execution_failed",
                instrument=key,
                action=signal.action.value,
                error_type=type(e).__name__,
                error=str(e),
                duration_seconds=time.perf_counter() - started,
            )
            raise

        self.events.emit(
            "execution_completed",
            instrument=key,
            action=signal.action.value,
            status=result.status.value,
            order_id=result.order_id,
            duration_seconds=time.perf_counter() - started,
        )
        return result
