"""
Perpetual futures venue access.

This library provides:
- ExchangeClient: the capability sizing and order lifecycle code depends on
- GateFuturesClient: live Gate.io API v4 implementation (httpx, signed requests)
- PaperFuturesClient: in-memory venue for test mode
- Normalized records (balances, contracts, positions, order acks)

Example:
    >>> from libs.exchange import GateFuturesClient
    >>>
    >>> client = GateFuturesClient(api_key="...", api_secret="...", settle="usdt")
    >>> position = await client.get_position("BTC/USDT:USDT")
    >>> position.long_size if position else 0
    Decimal('12')
    >>> await client.aclose()
"""

from libs.exchange.client import DEFAULT_BASE_URL, ExchangeClient, GateFuturesClient
from libs.exchange.exceptions import ExchangeAPIError, ExchangeConnectionError, ExchangeError
from libs.exchange.models import (
    AccountBalance,
    ContractAccount,
    ContractMetadata,
    MarginAccount,
    OrderAck,
    Position,
    PositionMode,
    PositionSide,
)
from libs.exchange.paper import PaperFuturesClient
from libs.exchange.parsing import normalize_position, parse_position_mode, parse_symbol

__all__ = [
    # Clients
    "ExchangeClient",
    "GateFuturesClient",
    "PaperFuturesClient",
    "DEFAULT_BASE_URL",
    # Records
    "AccountBalance",
    "ContractAccount",
    "ContractMetadata",
    "MarginAccount",
    "OrderAck",
    "Position",
    "PositionMode",
    "PositionSide",
    # Parsing
    "normalize_position",
    "parse_position_mode",
    "parse_symbol",
    # Exceptions
    "ExchangeError",
    "ExchangeAPIError",
    "ExchangeConnectionError",
]
