"""
HTTP error mapping for Signal Gateway.

Every failure leaves the gateway as ``{"success": false, "error": "..."}``
with a status chosen by ``status_for``.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from apps.signal_gateway.metrics import webhook_requests_total
from libs.exchange.exceptions import ExchangeError
from libs.execution.exceptions import (
    ExecutionTimeout,
    InvalidSignal,
    OrderSubmissionError,
    OrderTooSmall,
    ResolutionError,
)


class GatewayError(Exception):
    """
    Request rejected by the gateway itself (rate limit, auth, validation).

    Attributes:
        status_code: HTTP status to answer with
        error: Client-facing message
        outcome: Metrics label for the rejection
        headers: Extra response headers (e.g. ``Retry-After``)
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        *,
        outcome: str = "invalid",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.outcome = outcome
        self.headers = headers or {}


def status_for(exc: BaseException) -> int:
    """Map an execution failure to an HTTP status.

    Examples:
        >>> status_for(OrderTooSmall("rounds to zero"))
        422
    """
    if isinstance(exc, InvalidSignal):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, ResolutionError | OrderTooSmall):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, OrderSubmissionError | ExchangeError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, ExecutionTimeout):
        return status.HTTP_504_GATEWAY_TIMEOUT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_response(status_code: int, error: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": error},
        headers=headers,
    )


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    webhook_requests_total.labels(outcome=exc.outcome).inc()
    return error_response(exc.status_code, exc.error, exc.headers)
