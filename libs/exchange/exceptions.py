"""Errors raised by exchange clients."""

from libs.common.exceptions import TradingPlatformError


class ExchangeError(TradingPlatformError):
    """Base exception for venue communication failures."""

    pass


class ExchangeConnectionError(ExchangeError):
    """Transport-level failure (DNS, connect, read timeout)."""

    pass


class ExchangeAPIError(ExchangeError):
    """Venue answered with a non-success HTTP status.

    Attributes:
        status_code: HTTP status returned by the venue
        label: Venue error label (Gate.io returns e.g. ``CONTRACT_NOT_FOUND``)
        method: HTTP method of the failed request
        path: Request path of the failed request
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        label: str | None = None,
        method: str = "",
        path: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.label = label
        self.method = method
        self.path = path

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status_code < 500
