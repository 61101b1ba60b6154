"""
Gate.io perpetual futures client.

Provides the ``ExchangeClient`` capability the sizing and lifecycle code is
written against, and ``GateFuturesClient``, its live implementation over the
Gate.io REST API v4.

The client is stateless apart from its HTTP connection pool: every call goes
to the venue, nothing is cached. It never retries. A failed call surfaces as
``ExchangeError`` to the caller.

Optional lookups (margin account, contract account) return None when the
venue answers with a 4xx, since many accounts simply do not have them. Server
errors and transport failures always raise.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlencode

import httpx

from libs.exchange.exceptions import ExchangeAPIError, ExchangeConnectionError, ExchangeError
from libs.exchange.models import (
    AccountBalance,
    ContractAccount,
    ContractMetadata,
    MarginAccount,
    OrderAck,
    Position,
    PositionMode,
)
from libs.exchange.parsing import (
    normalize_position,
    parse_balance,
    parse_contract,
    parse_contract_account,
    parse_margin_account,
    parse_order_ack,
    parse_symbol,
)
from libs.exchange.signing import auth_headers

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.gateio.ws"
API_PREFIX = "/api/v4"


@runtime_checkable
class ExchangeClient(Protocol):
    """Venue capability consumed by PositionSizer and OrderLifecycleController."""

    def contract_name(self, symbol: str) -> str: ...

    async def get_balance(self) -> AccountBalance: ...

    async def get_margin_account(self, instrument: str) -> MarginAccount | None: ...

    async def get_contract_account(self, instrument: str) -> ContractAccount | None: ...

    async def get_contract(self, instrument: str) -> ContractMetadata: ...

    async def get_position(self, instrument: str) -> Position | None: ...

    async def place_order(
        self,
        instrument: str,
        signed_size: int,
        *,
        reduce_only: bool,
        text: str = "t-signal",
    ) -> OrderAck: ...

    async def cancel_order(self, order_id: str) -> OrderAck: ...

    async def list_open_orders(self, instrument: str | None = None) -> list[dict[str, Any]]: ...

    async def aclose(self) -> None: ...


def _error_detail(result: Any) -> tuple[str | None, str]:
    """Extract (label, message) from a Gate.io error body."""
    if isinstance(result, dict):
        label = result.get("label")
        message = result.get("message") or result.get("detail") or label or json.dumps(result)
        return label, str(message)
    return None, str(result) if result else "empty response"


class GateFuturesClient:
    """
    Gate.io USDT/BTC-settled perpetual futures client.

    Attributes:
        settle: Settlement currency path segment (``usdt`` or ``btc``)
        default_position_mode: Mode assumed when a position payload omits it

    Examples:
        >>> async with GateFuturesClient(api_key="k", api_secret="s") as client:
        ...     contract = await client.get_contract("BTC/USDT:USDT")
        ...     contract.mark_price
        Decimal('65012.3')
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        settle: str = "usdt",
        default_position_mode: PositionMode = PositionMode.DUAL,
        timeout: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._api_secret = api_secret
        self.settle = settle.lower()
        self.default_position_mode = default_position_mode
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout, connect=min(timeout, 5.0)),
        )

    async def __aenter__(self) -> GateFuturesClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def contract_name(self, symbol: str) -> str:
        return parse_symbol(symbol)

    @property
    def _futures_prefix(self) -> str:
        return f"{API_PREFIX}/futures/{self.settle}"

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Send a signed request and return the decoded JSON body.

        The query string is encoded once and used for both the signature and
        the URL so the two can never disagree.

        Raises:
            ExchangeConnectionError: Transport failure or timeout
            ExchangeAPIError: Non-2xx response
        """
        query = urlencode(params) if params else ""
        payload = json.dumps(body, separators=(",", ":")) if body is not None else ""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            **auth_headers(self._api_key, self._api_secret, method, path, query, payload),
        }
        url = f"{path}?{query}" if query else path

        logger.debug(f"Gate.io request: {method} {url}")
        try:
            response = await self._client.request(
                method, url, content=payload or None, headers=headers
            )
        except httpx.TimeoutException as e:
            raise ExchangeConnectionError(f"Gate.io request timed out: {method} {path}") from e
        except httpx.TransportError as e:
            raise ExchangeConnectionError(f"Gate.io request failed: {method} {path}: {e}") from e

        result: Any = None
        if response.status_code != 204 and response.content.strip():
            try:
                result = response.json()
            except ValueError:
                logger.warning(f"Non-JSON response from Gate.io on {method} {path}")
                result = response.text

        if response.is_error:
            label, message = _error_detail(result)
            logger.error(
                f"Gate.io API error: status={response.status_code}, {method} {path}",
                extra={"label": label, "error_message": message},
            )
            raise ExchangeAPIError(
                f"Gate.io API error ({response.status_code}) on {method} {path}: {message}",
                status_code=response.status_code,
                label=label,
                method=method,
                path=path,
            )

        return result

    async def _optional(self, method: str, path: str, **kwargs: Any) -> Any:
        """Like ``_request`` but a 4xx answer means "absent" and yields None."""
        try:
            return await self._request(method, path, **kwargs)
        except ExchangeAPIError as e:
            if not e.is_client_error:
                raise
            logger.info(
                f"Optional lookup returned {e.status_code}: {method} {path}",
                extra={"label": e.label},
            )
            return None

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    async def get_balance(self) -> AccountBalance:
        """Futures account balance for the settlement currency."""
        result = await self._request("GET", f"{self._futures_prefix}/accounts")
        return parse_balance(result, self.settle)

    async def get_margin_account(self, instrument: str) -> MarginAccount | None:
        """Margin account for the contract's currency pair, if one exists."""
        pair = self.contract_name(instrument)
        result = await self._optional(
            "GET", f"{API_PREFIX}/margin/user/account", params={"currency_pair": pair}
        )
        if isinstance(result, list):
            matches = [item for item in result if isinstance(item, dict)]
            found = next((item for item in matches if item.get("currency_pair") == pair), None)
            return parse_margin_account(found, pair) if found else None
        if isinstance(result, dict) and result.get("currency_pair") in (None, pair):
            return parse_margin_account(result, pair)
        return None

    async def get_contract_account(self, instrument: str) -> ContractAccount | None:
        """Per-contract futures account settings (leverage), if reported.

        Tries the contract-scoped endpoint first, then the account list
        filtered by contract.
        """
        contract = self.contract_name(instrument)

        def _match(result: Any) -> dict[str, Any] | None:
            if isinstance(result, list):
                return next(
                    (item for item in result if isinstance(item, dict) and item.get("contract") == contract),
                    None,
                )
            if isinstance(result, dict) and contract in (result.get("contract"), result.get("symbol")):
                return result
            return None

        found = _match(await self._optional("GET", f"{self._futures_prefix}/accounts/{contract}"))
        if found is None:
            found = _match(
                await self._optional(
                    "GET", f"{self._futures_prefix}/accounts", params={"contract": contract}
                )
            )
        return parse_contract_account(found, contract) if found else None

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    async def get_contract(self, instrument: str) -> ContractMetadata:
        contract = self.contract_name(instrument)
        result = await self._request("GET", f"{self._futures_prefix}/contracts/{contract}")
        return parse_contract(result, contract)

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    async def get_position(self, instrument: str) -> Position | None:
        """Current position, normalized.

        The single-contract endpoint is rejected by the venue for accounts in
        dual mode, so a 4xx there falls back to the position list filtered by
        contract.
        """
        contract = self.contract_name(instrument)

        single = await self._optional("GET", f"{self._futures_prefix}/positions/{contract}")
        position = normalize_position(single, contract, self.default_position_mode)
        if position is not None:
            return position

        listed = await self._request("GET", f"{self._futures_prefix}/positions")
        if isinstance(listed, list):
            legs = [item for item in listed if isinstance(item, dict) and item.get("contract") == contract]
            return normalize_position(legs, contract, self.default_position_mode)
        return None

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def place_order(
        self,
        instrument: str,
        signed_size: int,
        *,
        reduce_only: bool,
        text: str = "t-signal",
    ) -> OrderAck:
        """Submit a market IOC order.

        Args:
            instrument: Symbol or contract name
            signed_size: Contracts; positive buys, negative sells
            reduce_only: Only allow the order to shrink exposure
            text: Client label; Gate.io requires the ``t-`` prefix
        """
        contract = self.contract_name(instrument)
        order = {
            "contract": contract,
            "size": signed_size,
            "price": "0",
            "tif": "ioc",
            "text": text,
            "reduce_only": reduce_only,
        }
        result = await self._request("POST", f"{self._futures_prefix}/orders", body=order)
        if not isinstance(result, dict):
            raise ExchangeError(f"Unexpected order response for {contract}: {result!r}")
        return parse_order_ack(result)

    async def cancel_order(self, order_id: str) -> OrderAck:
        result = await self._request("DELETE", f"{self._futures_prefix}/orders/{order_id}")
        return parse_order_ack(result)

    async def list_open_orders(self, instrument: str | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"status": "open"}
        if instrument:
            params = {"contract": self.contract_name(instrument), **params}
        result = await self._request("GET", f"{self._futures_prefix}/orders", params=params)
        return [item for item in result or [] if isinstance(item, dict)]
