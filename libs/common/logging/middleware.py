"""ASGI middleware that binds a trace ID to each HTTP request.

Example:
    >>> from fastapi import FastAPI
    >>> from libs.common.logging.middleware import add_trace_id_middleware
    >>>
    >>> app = FastAPI()
    >>> add_trace_id_middleware(app)
"""

from collections.abc import Callable

from fastapi import FastAPI
from starlette.types import ASGIApp

from libs.common.logging.context import (
    FALLBACK_TRACE_HEADERS,
    TRACE_ID_HEADER,
    clear_trace_id,
    generate_trace_id,
    set_trace_id,
)


def extract_trace_id(raw_headers: list[tuple[bytes, bytes]]) -> str:
    """Pick the trace ID from request headers, generating one if absent.

    ``X-Trace-ID`` wins, then ``X-Request-ID``, then ``CF-Ray``.
    """
    headers = {name.lower(): value for name, value in raw_headers}
    for header in (TRACE_ID_HEADER, *FALLBACK_TRACE_HEADERS):
        value = headers.get(header.lower().encode())
        if value:
            return value.decode()
    return generate_trace_id()


class ASGITraceIDMiddleware:
    """Set the trace ID for the request and echo it in ``X-Trace-ID``.

    Implemented at the raw ASGI level (not ``BaseHTTPMiddleware``) so the
    header is also added to responses produced by exception handlers.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        trace_id = extract_trace_id(list(scope.get("headers", [])))
        set_trace_id(trace_id)

        async def send_with_trace_id(message: dict) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((TRACE_ID_HEADER.lower().encode(), trace_id.encode()))
                message["headers"] = headers
            await send(message)

        try:
            await self.app(scope, receive, send_with_trace_id)
        finally:
            clear_trace_id()


def add_trace_id_middleware(app: FastAPI) -> None:
    app.add_middleware(ASGITraceIDMiddleware)
