"""
Position sizing.

Turns a percentage allocation into a whole number of contracts:

    notional  = fraction x available balance x leverage
    base      = notional / mark price
    contracts = floor(base / contract size)

Balance and leverage each come from an ordered fallback chain of venue
sources; the first strictly positive value wins. Chains are plain lists of
``(probe, source)`` pairs evaluated by ``resolve_first_positive`` so their
order is visible in one place and testable on its own.

Example:
    >>> sizer = PositionSizer(client, default_leverage=Decimal("1"))
    >>> decision = await sizer.size_open("BTC_USDT", "10", PositionSide.LONG)
    >>> decision.order.signed_size, decision.leverage.source
    (13, <LeverageSource.POSITION: 'position'>)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, TypeVar

from libs.exchange.client import ExchangeClient
from libs.exchange.models import (
    AccountBalance,
    ContractAccount,
    MarginAccount,
    Position,
    PositionMode,
    PositionSide,
)
from libs.execution.events import ExecutionEventSink, NullEventSink
from libs.execution.exceptions import (
    ContractUnavailable,
    InsufficientBalance,
    InvalidAllocation,
    OrderTooSmall,
)
from libs.execution.models import LeverageResolution, LeverageSource, SizedOrder, SizingDecision

S = TypeVar("S")
Probe = Callable[[], Awaitable[Decimal | None]]

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, bool):
        raise InvalidAllocation(f"Allocation must be numeric, got {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAllocation(f"Allocation must be numeric, got {value!r}") from None
    if not amount.is_finite():
        raise InvalidAllocation(f"Allocation must be finite, got {value!r}")
    return amount


def normalize_allocation(value: object) -> Decimal:
    """Normalize an allocation to a fraction in (0, 1].

    Values above 1 are percentages and are divided by 100, so ``"10"`` and
    ``0.10`` size identically.

    Raises:
        InvalidAllocation: Non-numeric, non-finite, non-positive or above 100

    Examples:
        >>> normalize_allocation("10")
        Decimal('0.1')
        >>> normalize_allocation(Decimal("0.25"))
        Decimal('0.25')
    """
    amount = _to_decimal(value)
    if amount <= 0:
        raise InvalidAllocation(f"Allocation must be positive, got {amount}")
    if amount > HUNDRED:
        raise InvalidAllocation(f"Allocation must not exceed 100%, got {amount}")
    return amount / HUNDRED if amount > 1 else amount


async def resolve_first_positive(chain: Sequence[tuple[Probe, S]]) -> tuple[Decimal, S] | None:
    """Evaluate probes in order and return the first strictly positive value.

    Probes after the winner are never awaited.
    """
    for probe, source in chain:
        value = await probe()
        if value is not None and value > 0:
            return value, source
    return None


_UNSET: Any = object()


class _VenueSnapshot:
    """Fetches each venue record at most once per sizing decision."""

    def __init__(self, client: ExchangeClient, instrument: str) -> None:
        self.client = client
        self.instrument = instrument
        self._margin: MarginAccount | None = _UNSET
        self._balance: AccountBalance = _UNSET
        self._position: Position | None = _UNSET
        self._contract_account: ContractAccount | None = _UNSET

    async def margin(self) -> MarginAccount | None:
        if self._margin is _UNSET:
            self._margin = await self.client.get_margin_account(self.instrument)
        return self._margin

    async def balance(self) -> AccountBalance:
        if self._balance is _UNSET:
            self._balance = await self.client.get_balance()
        return self._balance

    async def position(self) -> Position | None:
        if self._position is _UNSET:
            self._position = await self.client.get_position(self.instrument)
        return self._position

    async def contract_account(self) -> ContractAccount | None:
        if self._contract_account is _UNSET:
            self._contract_account = await self.client.get_contract_account(self.instrument)
        return self._contract_account

    @property
    def known_position(self) -> Position | None:
        return None if self._position is _UNSET else self._position


class PositionSizer:
    """
    Computes contract counts from allocations and venue state.

    Attributes:
        client: Venue capability
        default_leverage: Used when no leverage source reports a positive value
        default_mode: Reported when the position was not looked up or is absent
        events: Sink for ``sizing_resolved`` / ``balance_unavailable``
    """

    def __init__(
        self,
        client: ExchangeClient,
        *,
        default_leverage: Decimal = Decimal("1"),
        default_mode: PositionMode = PositionMode.DUAL,
        events: ExecutionEventSink | None = None,
    ) -> None:
        if default_leverage <= 0:
            raise ValueError(f"default_leverage must be positive, got {default_leverage}")
        self.client = client
        self.default_leverage = Decimal(default_leverage)
        self.default_mode = default_mode
        self.events = events or NullEventSink()

    async def _resolve_balance(self, venue: _VenueSnapshot) -> tuple[Decimal, str]:
        async def margin_available() -> Decimal | None:
            margin = await venue.margin()
            return margin.available if margin else None

        async def futures_available() -> Decimal | None:
            return (await venue.balance()).available

        resolved = await resolve_first_positive(
            [(margin_available, "margin"), (futures_available, "futures")]
        )
        if resolved is None:
            self.events.emit("balance_unavailable", instrument=venue.instrument)
            raise InsufficientBalance(
                f"No positive available balance for {venue.instrument} (checked margin, futures)"
            )
        return resolved

    async def _resolve_leverage(
        self,
        venue: _VenueSnapshot,
        side: PositionSide,
        override: Decimal | None,
    ) -> LeverageResolution:
        async def from_signal() -> Decimal | None:
            return override

        async def from_position() -> Decimal | None:
            position = await venue.position()
            return position.leverage_for(side) if position else None

        async def from_margin() -> Decimal | None:
            margin = await venue.margin()
            return margin.leverage if margin else None

        async def from_contract_account() -> Decimal | None:
            account = await venue.contract_account()
            return account.leverage if account else None

        async def from_account() -> Decimal | None:
            return (await venue.balance()).leverage

        resolved = await resolve_first_positive(
            [
                (from_signal, LeverageSource.SIGNAL),
                (from_position, LeverageSource.POSITION),
                (from_margin, LeverageSource.MARGIN),
                (from_contract_account, LeverageSource.CONTRACT),
                (from_account, LeverageSource.ACCOUNT),
            ]
        )
        if resolved is None:
            return LeverageResolution(self.default_leverage, LeverageSource.DEFAULT)
        return LeverageResolution(*resolved)

    async def size_open(
        self,
        instrument: str,
        allocation: object,
        side: PositionSide,
        leverage_override: Decimal | None = None,
    ) -> SizingDecision:
        """
        Size an opening order.

        Args:
            instrument: Symbol or contract name
            allocation: Fraction (0, 1] or percentage (1, 100] of available balance
            side: LONG buys, SHORT sells
            leverage_override: Signal leverage, wins over every venue source

        Returns:
            SizingDecision with a non-reduce-only SizedOrder

        Raises:
            InvalidAllocation: Allocation out of range
            InsufficientBalance: No balance source is positive
            ContractUnavailable: Contract size or mark price is not positive
            OrderTooSmall: Contracts floor to zero
            ExchangeError: A required venue lookup failed
        """
        fraction = normalize_allocation(allocation)
        contract = self.client.contract_name(instrument)
        venue = _VenueSnapshot(self.client, contract)

        available, balance_source = await self._resolve_balance(venue)
        leverage = await self._resolve_leverage(venue, side, leverage_override)

        metadata = await self.client.get_contract(contract)
        if metadata.contract_size <= 0:
            raise ContractUnavailable(
                f"Contract size unavailable for {contract}", field="contract_size", instrument=contract
            )
        if metadata.mark_price <= 0:
            raise ContractUnavailable(
                f"Mark price unavailable for {contract}", field="mark_price", instrument=contract
            )

        notional = fraction * available * leverage.value
        base_amount = notional / metadata.mark_price
        contracts = int((base_amount / metadata.contract_size).to_integral_value(rounding=ROUND_FLOOR))
        if contracts <= 0:
            raise OrderTooSmall(
                f"Order for {contract} rounds to zero contracts "
                f"(notional={notional}, mark_price={metadata.mark_price}, "
                f"contract_size={metadata.contract_size})"
            )

        position = venue.known_position
        decision = SizingDecision(
            order=SizedOrder(
                instrument=contract,
                signed_size=contracts if side is PositionSide.LONG else -contracts,
                reduce_only=False,
            ),
            fraction=fraction,
            available=available,
            balance_source=balance_source,
            leverage=leverage,
            contract_size=metadata.contract_size,
            mark_price=metadata.mark_price,
            notional=notional,
            base_amount=base_amount,
            mode=position.mode if position else self.default_mode,
        )
        self.events.emit("sizing_resolved", instrument=contract, side=side.value, **decision.as_fields())
        return decision

    async def size_close(self, instrument: str, base_amount: object) -> int:
        """Convert a base-asset quantity to whole contracts, never negative.

        Raises:
            InvalidAllocation: Amount is not a finite number
            ContractUnavailable: Contract size is not positive
        """
        amount = _to_decimal(base_amount)
        contract = self.client.contract_name(instrument)
        metadata = await self.client.get_contract(contract)
        if metadata.contract_size <= 0:
            raise ContractUnavailable(
                f"Contract size unavailable for {contract}", field="contract_size", instrument=contract
            )
        contracts = (abs(amount) / metadata.contract_size).to_integral_value(rounding=ROUND_FLOOR)
        return max(0, int(contracts))
