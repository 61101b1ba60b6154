"""
Normalization of raw Gate.io futures payloads.

The venue is inconsistent: numbers arrive as strings or numbers, balances
live under different field names depending on the account type, and
positions come back either as one aggregate object or as a list of per-side
legs. Every helper here is a pure function from a raw payload to a record in
``libs.exchange.models`` so the shapes can be tested without a network.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from libs.exchange.models import (
    AccountBalance,
    ContractAccount,
    ContractMetadata,
    MarginAccount,
    OrderAck,
    Position,
    PositionMode,
)

ZERO = Decimal("0")

# Probed in order; first strictly positive value wins.
FUTURES_BALANCE_FIELDS = (
    "account_available_main",
    "available",
    "available_balance",
    "available_margin",
    "balance",
    "total",
)
MARGIN_BALANCE_FIELDS = ("available", "available_balance", "balance")
ACCOUNT_LEVERAGE_FIELDS = (
    "leverage",
    "cross_leverage_limit",
    "position_leverage",
    "long_leverage",
    "short_leverage",
    "max_leverage",
)

_DUAL_MODE_NAMES = {"dual", "dual_long_short", "dual_long", "dual_short"}


def parse_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """Parse a venue number into a finite Decimal.

    Accepts ints, floats and numeric strings. ``None``, blanks, garbage,
    booleans, NaN and infinities all return ``default``.

    Examples:
        >>> parse_decimal("65000.5")
        Decimal('65000.5')
        >>> parse_decimal("n/a") is ZERO
        True
        >>> parse_decimal(None, default=None) is None
        True
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        parsed = value
    else:
        try:
            parsed = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return default
    if not parsed.is_finite():
        return default
    return parsed


def first_positive(payload: Mapping[str, Any] | None, fields: Iterable[str]) -> Decimal | None:
    """Return the first strictly positive numeric field of ``payload``."""
    if not payload or not isinstance(payload, Mapping):
        return None
    for name in fields:
        value = parse_decimal(payload.get(name))
        if value is not None and value > 0:
            return value
    return None


def parse_symbol(symbol: str) -> str:
    """Convert a unified symbol to a Gate.io futures contract name.

    Examples:
        >>> parse_symbol("BTC/USDT:USDT")
        'BTC_USDT'
        >>> parse_symbol("eth_usdt")
        'ETH_USDT'
    """
    base = symbol.strip().split(":")[0]
    return base.replace("/", "_").upper()


def parse_position_mode(payload: Mapping[str, Any] | None, default: PositionMode) -> PositionMode:
    """Read the position mode from a position-like payload.

    ``mode`` wins over ``position_mode``, which wins over a boolean
    ``dual_mode``. Gate.io reports per-leg modes (``dual_long``,
    ``dual_short``); both mean the account is in dual mode.
    """
    if not payload:
        return default
    for name in ("mode", "position_mode"):
        raw = payload.get(name)
        if isinstance(raw, str) and raw:
            lowered = raw.lower()
            if lowered in _DUAL_MODE_NAMES:
                return PositionMode.DUAL
            if lowered == "single":
                return PositionMode.SINGLE
    dual_mode = payload.get("dual_mode")
    if isinstance(dual_mode, bool):
        return PositionMode.DUAL if dual_mode else PositionMode.SINGLE
    return default


def parse_balance(payload: Mapping[str, Any] | None, settle: str) -> AccountBalance:
    available = first_positive(payload, FUTURES_BALANCE_FIELDS) or ZERO
    currency = str((payload or {}).get("currency") or settle).upper()
    leverage = first_positive(payload, ACCOUNT_LEVERAGE_FIELDS)
    return AccountBalance(available=available, currency=currency, leverage=leverage)


def parse_margin_account(payload: Mapping[str, Any] | None, instrument: str) -> MarginAccount:
    """Normalize a margin account.

    The quote side (``quote.available``) is the futures collateral currency
    and is preferred; top-level fields are the fallback.
    """
    payload = payload or {}
    available: Decimal | None = None
    quote = payload.get("quote")
    if isinstance(quote, Mapping):
        available = first_positive(quote, ("available",))
    if available is None:
        available = first_positive(payload, MARGIN_BALANCE_FIELDS)
    return MarginAccount(
        instrument=instrument,
        available=available or ZERO,
        leverage=first_positive(payload, ACCOUNT_LEVERAGE_FIELDS),
    )


def parse_contract_account(payload: Mapping[str, Any] | None, instrument: str) -> ContractAccount:
    return ContractAccount(
        instrument=instrument,
        leverage=first_positive(payload, ACCOUNT_LEVERAGE_FIELDS),
    )


def parse_contract(payload: Mapping[str, Any] | None, instrument: str) -> ContractMetadata:
    """Normalize contract details.

    Contract size is ``quanto_multiplier`` when present, otherwise
    ``contract_size``. Mark price falls back to last, then index price.
    Unresolvable values come back as zero and are rejected by the sizer.
    """
    payload = payload or {}
    if payload.get("quanto_multiplier") is not None:
        contract_size = parse_decimal(payload.get("quanto_multiplier"))
    else:
        contract_size = parse_decimal(payload.get("contract_size"))
    mark_price = first_positive(payload, ("mark_price", "last_price", "index_price")) or ZERO
    return ContractMetadata(
        instrument=instrument,
        contract_size=contract_size if contract_size is not None else ZERO,
        mark_price=mark_price,
        leverage_min=parse_decimal(payload.get("leverage_min"), default=None),
        leverage_max=parse_decimal(payload.get("leverage_max"), default=None),
    )


def _leg_side(entry: Mapping[str, Any], size: Decimal) -> str | None:
    mode = str(entry.get("mode") or "").lower()
    if mode == "dual_long":
        return "long"
    if mode == "dual_short":
        return "short"
    if size > 0:
        return "long"
    if size < 0:
        return "short"
    return None


def _normalize_legs(
    entries: list[Any], instrument: str, default_mode: PositionMode
) -> Position | None:
    legs = [entry for entry in entries if isinstance(entry, Mapping)]
    if not legs:
        return None

    long_size = ZERO
    short_size = ZERO
    long_leverage: Decimal | None = None
    short_leverage: Decimal | None = None
    mode: PositionMode | None = None

    for entry in legs:
        size = parse_decimal(entry.get("size")) or ZERO
        leverage = first_positive(entry, ("leverage",))
        side = _leg_side(entry, size)
        if side == "long":
            long_size += abs(size)
            long_leverage = long_leverage or leverage
        elif side == "short":
            short_size += abs(size)
            short_leverage = short_leverage or leverage
        if mode is None and any(key in entry for key in ("mode", "position_mode", "dual_mode")):
            mode = parse_position_mode(entry, default=default_mode)

    return Position(
        instrument=instrument,
        long_size=long_size,
        short_size=short_size,
        mode=mode or default_mode,
        long_leverage=long_leverage,
        short_leverage=short_leverage,
    )


def _normalize_aggregate(
    payload: Mapping[str, Any], instrument: str, default_mode: PositionMode
) -> Position:
    size = parse_decimal(payload.get("size")) or ZERO

    long_size = parse_decimal(payload.get("long_size")) or ZERO
    if long_size <= 0:
        long_size = size if size > 0 else ZERO

    # Venues report the short leg either as a negative or a positive number.
    short_size = abs(parse_decimal(payload.get("short_size")) or ZERO)
    if short_size == 0:
        short_size = abs(size) if size < 0 else ZERO

    return Position(
        instrument=str(payload.get("contract") or instrument),
        long_size=long_size,
        short_size=short_size,
        mode=parse_position_mode(payload, default=default_mode),
        leverage=first_positive(payload, ("leverage",)),
        long_leverage=first_positive(payload, ("long_leverage",)),
        short_leverage=first_positive(payload, ("short_leverage",)),
    )


def normalize_position(
    raw: Any, instrument: str, default_mode: PositionMode
) -> Position | None:
    """Normalize either position payload shape into one ``Position``.

    Shapes:
        - aggregate object: ``{"size": -3, "mode": "single", ...}``, optionally
          with explicit ``long_size`` / ``short_size``
        - aggregate object wrapping legs: ``{"positions": [...]}``
        - list of legs: ``[{"size": 2, "mode": "dual_long"}, {"size": -1, ...}]``

    Returns None for an empty payload.
    """
    if not raw:
        return None
    if isinstance(raw, list):
        return _normalize_legs(raw, instrument, default_mode)
    if not isinstance(raw, Mapping):
        return None
    legs = raw.get("positions")
    has_sizes = any(key in raw for key in ("size", "long_size", "short_size"))
    if isinstance(legs, list) and not has_sizes:
        return _normalize_legs(legs, instrument, parse_position_mode(raw, default_mode))
    return _normalize_aggregate(raw, instrument, default_mode)


def parse_order_ack(payload: Mapping[str, Any] | None) -> OrderAck:
    payload = payload or {}
    size = parse_decimal(payload.get("size")) or ZERO
    left = parse_decimal(payload.get("left")) or ZERO
    return OrderAck(
        order_id=str(payload.get("id") or ""),
        status=str(payload.get("status") or "unknown"),
        size=int(size),
        left=int(left),
        fill_price=first_positive(payload, ("fill_price",)),
        finish_as=payload.get("finish_as"),
        raw=dict(payload),
    )
