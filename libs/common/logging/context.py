"""Trace ID context propagation.

Every inbound webhook gets a trace ID. It is stored in a context variable so
that log records emitted anywhere inside the request, including inside the
per-instrument execution slot, carry the same ID.

Example:
    >>> from libs.common.logging.context import LogContext, get_trace_id
    >>> with LogContext("req-42"):
    ...     get_trace_id()
    'req-42'
"""

import contextvars
import uuid
from types import TracebackType

_trace_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)

# Header names checked on inbound requests, in priority order. Cloudflare's
# CF-Ray is accepted so traces line up with edge logs when deployed behind it.
TRACE_ID_HEADER = "X-Trace-ID"
FALLBACK_TRACE_HEADERS = ("X-Request-ID", "CF-Ray")


def generate_trace_id() -> str:
    """Generate a new UUID4 trace ID."""
    return str(uuid.uuid4())


def get_trace_id() -> str | None:
    """Return the trace ID for the current context, or None."""
    return _trace_id_var.get()


def set_trace_id(trace_id: str) -> None:
    """Set the trace ID for the current context.

    Raises:
        ValueError: If trace_id is empty
    """
    if not trace_id:
        raise ValueError("Trace ID cannot be empty")
    _trace_id_var.set(trace_id)


def clear_trace_id() -> None:
    _trace_id_var.set(None)


def get_or_create_trace_id() -> str:
    """Return the current trace ID, generating and storing one if unset."""
    trace_id = get_trace_id()
    if trace_id is None:
        trace_id = generate_trace_id()
        set_trace_id(trace_id)
    return trace_id


class LogContext:
    """Context manager that scopes a trace ID and restores the previous one.

    Useful for background work that is not attached to an HTTP request,
    e.g. replaying a stored signal from a script.
    """

    def __init__(self, trace_id: str | None = None) -> None:
        self.trace_id = trace_id or generate_trace_id()
        self.previous_trace_id: str | None = None

    def __enter__(self) -> str:
        self.previous_trace_id = get_trace_id()
        set_trace_id(self.trace_id)
        return self.trace_id

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self.previous_trace_id is not None:
            set_trace_id(self.previous_trace_id)
        else:
            clear_trace_id()
