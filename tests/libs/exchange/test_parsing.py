"""Tests for Gate.io payload normalization."""

from __future__ import annotations

from decimal import Decimal

import pytest

from libs.exchange.models import PositionMode, PositionSide
from libs.exchange.parsing import (
    first_positive,
    normalize_position,
    parse_balance,
    parse_contract,
    parse_contract_account,
    parse_decimal,
    parse_margin_account,
    parse_order_ack,
    parse_position_mode,
    parse_symbol,
)


class TestParseDecimal:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("65000.5", Decimal("65000.5")),
            (12, Decimal("12")),
            (" 3 ", Decimal("3")),
            (Decimal("0.1"), Decimal("0.1")),
        ],
    )
    def test_parses_numbers(self, raw: object, expected: Decimal) -> None:
        assert parse_decimal(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "n/a", True, "NaN", "Infinity", float("inf")])
    def test_unparseable_returns_default(self, raw: object) -> None:
        assert parse_decimal(raw) == Decimal("0")
        assert parse_decimal(raw, default=None) is None


class TestFirstPositive:
    def test_skips_zero_and_garbage(self) -> None:
        payload = {"a": "0", "b": "abc", "c": "-5", "d": "7.5", "e": "9"}
        assert first_positive(payload, ("a", "b", "c", "d", "e")) == Decimal("7.5")

    def test_none_when_nothing_positive(self) -> None:
        assert first_positive({"a": "0"}, ("a", "missing")) is None
        assert first_positive(None, ("a",)) is None


class TestParseSymbol:
    @pytest.mark.parametrize(
        ("symbol", "contract"),
        [
            ("BTC/USDT:USDT", "BTC_USDT"),
            ("BTC/USDT", "BTC_USDT"),
            ("btc_usdt", "BTC_USDT"),
            ("ETH_USDT", "ETH_USDT"),
        ],
    )
    def test_normalizes_to_contract_name(self, symbol: str, contract: str) -> None:
        assert parse_symbol(symbol) == contract


class TestPositionMode:
    @pytest.mark.parametrize("raw", ["dual_long_short", "dual", "dual_long", "dual_short", "DUAL"])
    def test_dual_spellings(self, raw: str) -> None:
        assert parse_position_mode({"mode": raw}, PositionMode.SINGLE) is PositionMode.DUAL

    def test_single(self) -> None:
        assert parse_position_mode({"mode": "single"}, PositionMode.DUAL) is PositionMode.SINGLE

    def test_boolean_dual_mode(self) -> None:
        assert parse_position_mode({"dual_mode": True}, PositionMode.SINGLE) is PositionMode.DUAL
        assert parse_position_mode({"dual_mode": False}, PositionMode.DUAL) is PositionMode.SINGLE

    def test_default_when_missing(self) -> None:
        assert parse_position_mode({}, PositionMode.SINGLE) is PositionMode.SINGLE
        assert parse_position_mode({"mode": "weird"}, PositionMode.DUAL) is PositionMode.DUAL


class TestBalances:
    def test_futures_balance_field_priority(self) -> None:
        payload = {"account_available_main": "0", "available": "", "available_balance": "250", "total": "900"}
        balance = parse_balance(payload, "usdt")
        assert balance.available == Decimal("250")
        assert balance.currency == "USDT"

    def test_futures_balance_zero_when_empty(self) -> None:
        assert parse_balance({}, "usdt").available == Decimal("0")

    def test_account_leverage(self) -> None:
        balance = parse_balance({"available": "10", "cross_leverage_limit": "20"}, "usdt")
        assert balance.leverage == Decimal("20")

    def test_margin_prefers_quote_available(self) -> None:
        margin = parse_margin_account({"quote": {"available": "55"}, "available": "99"}, "BTC_USDT")
        assert margin.available == Decimal("55")

    def test_margin_falls_back_to_top_level(self) -> None:
        margin = parse_margin_account({"quote": {"available": "0"}, "balance": "42", "leverage": "3"}, "BTC_USDT")
        assert margin.available == Decimal("42")
        assert margin.leverage == Decimal("3")

    def test_contract_account_leverage_fields(self) -> None:
        account = parse_contract_account({"leverage": "0", "max_leverage": "50"}, "BTC_USDT")
        assert account.leverage == Decimal("50")


class TestParseContract:
    def test_quanto_multiplier_wins(self) -> None:
        meta = parse_contract(
            {"quanto_multiplier": "0.0001", "contract_size": "1", "mark_price": "65000"}, "BTC_USDT"
        )
        assert meta.contract_size == Decimal("0.0001")
        assert meta.mark_price == Decimal("65000")

    def test_contract_size_fallback(self) -> None:
        meta = parse_contract({"contract_size": "10", "mark_price": "1"}, "XRP_USDT")
        assert meta.contract_size == Decimal("10")

    def test_mark_price_falls_back_to_last_then_index(self) -> None:
        assert parse_contract({"quanto_multiplier": "1", "last_price": "5"}, "X").mark_price == Decimal("5")
        assert parse_contract(
            {"quanto_multiplier": "1", "mark_price": "0", "index_price": "7"}, "X"
        ).mark_price == Decimal("7")

    def test_unresolvable_values_are_zero(self) -> None:
        meta = parse_contract({}, "X")
        assert meta.contract_size == Decimal("0")
        assert meta.mark_price == Decimal("0")


class TestNormalizePosition:
    def test_empty_payloads(self) -> None:
        assert normalize_position(None, "BTC_USDT", PositionMode.DUAL) is None
        assert normalize_position([], "BTC_USDT", PositionMode.DUAL) is None
        assert normalize_position({}, "BTC_USDT", PositionMode.DUAL) is None

    def test_single_aggregate_short(self) -> None:
        position = normalize_position(
            {"contract": "BTC_USDT", "size": -3, "mode": "single", "leverage": "5"},
            "BTC_USDT",
            PositionMode.DUAL,
        )
        assert position is not None
        assert position.mode is PositionMode.SINGLE
        assert position.long_size == Decimal("0")
        assert position.short_size == Decimal("3")
        assert position.leverage_for(PositionSide.SHORT) == Decimal("5")

    def test_aggregate_with_explicit_legs(self) -> None:
        position = normalize_position(
            {"long_size": "4", "short_size": "-2", "dual_mode": True, "long_leverage": "10"},
            "BTC_USDT",
            PositionMode.SINGLE,
        )
        assert position is not None
        assert position.mode is PositionMode.DUAL
        assert position.long_size == Decimal("4")
        assert position.short_size == Decimal("2")
        assert position.leverage_for(PositionSide.LONG) == Decimal("10")
        assert position.leverage_for(PositionSide.SHORT) is None

    def test_leg_list(self) -> None:
        position = normalize_position(
            [
                {"size": 2, "mode": "dual_long", "leverage": "8"},
                {"size": -5, "mode": "dual_short", "leverage": "4"},
            ],
            "ETH_USDT",
            PositionMode.SINGLE,
        )
        assert position is not None
        assert position.mode is PositionMode.DUAL
        assert position.long_size == Decimal("2")
        assert position.short_size == Decimal("5")
        assert position.leverage_for(PositionSide.LONG) == Decimal("8")
        assert position.leverage_for(PositionSide.SHORT) == Decimal("4")

    def test_leg_list_without_mode_uses_sign(self) -> None:
        position = normalize_position([{"size": -1}], "ETH_USDT", PositionMode.DUAL)
        assert position is not None
        assert position.short_size == Decimal("1")
        assert position.mode is PositionMode.DUAL

    def test_wrapped_leg_list(self) -> None:
        position = normalize_position(
            {"mode": "dual_long_short", "positions": [{"size": 7}]}, "BTC_USDT", PositionMode.SINGLE
        )
        assert position is not None
        assert position.long_size == Decimal("7")
        assert position.mode is PositionMode.DUAL


def test_parse_order_ack_filled_size() -> None:
    ack = parse_order_ack(
        {"id": 123, "status": "finished", "size": -10, "left": -4, "fill_price": "65000", "finish_as": "ioc"}
    )
    assert ack.order_id == "123"
    assert ack.filled_size == -6
    assert ack.fill_price == Decimal("65000")
    assert ack.finish_as == "ioc"
