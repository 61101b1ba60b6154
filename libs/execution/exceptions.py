"""
Execution exceptions.

Every failure of the signal-to-order path is an ``ExecutionError``. The
gateway maps the branches onto HTTP statuses:

    InvalidSignal            -> 400  (bad input, nothing was looked up)
    ResolutionError          -> 422  (venue state cannot support the order)
    OrderTooSmall            -> 422
    OrderSubmissionError     -> 502  (venue rejected or failed the order)
    ExecutionTimeout         -> 504

No-op outcomes (nothing to close, zero requested) are results, not errors.

Example:
    >>> try:
    ...     result = await executor.execute(signal)
    ... except OrderTooSmall as e:
    ...     logger.warning(f"Signal skipped: {e}")
"""

from libs.common.exceptions import TradingPlatformError


class ExecutionError(TradingPlatformError):
    """Base exception for signal execution failures."""

    pass


class InvalidSignal(ExecutionError):
    """Signal rejected before any venue call."""

    pass


class InvalidAllocation(InvalidSignal):
    """
    Allocation is non-numeric, non-finite, non-positive or above 100.

    Example:
        >>> normalize_allocation("-5")
        Traceback (most recent call last):
        InvalidAllocation: Allocation must be positive, got -5
    """

    pass


class UnsupportedAction(InvalidSignal):
    """Action string does not name a known trade action."""

    pass


class ResolutionError(ExecutionError):
    """Venue state could not be resolved into a sizing input."""

    pass


class InsufficientBalance(ResolutionError):
    """No balance source reported a positive available amount."""

    pass


class ContractUnavailable(ResolutionError):
    """
    Contract metadata is unusable for sizing.

    Attributes:
        field: The metadata field that failed (``contract_size`` or ``mark_price``)
        instrument: Contract name
    """

    def __init__(self, message: str, *, field: str, instrument: str = "") -> None:
        super().__init__(message)
        self.field = field
        self.instrument = instrument


class OrderTooSmall(ExecutionError):
    """Computed contract count floors to zero."""

    pass


class OrderSubmissionError(ExecutionError):
    """
    The venue failed while placing an order.

    The underlying venue exception is chained as ``__cause__``. The order's
    outcome on the venue is unknown to the caller; it is never retried.

    Attributes:
        action: Trade action being executed
        instrument: Contract name
    """

    def __init__(self, message: str, *, action: str, instrument: str) -> None:
        super().__init__(message)
        self.action = action
        self.instrument = instrument


class ExecutionTimeout(ExecutionError):
    """
    Execution exceeded the configured per-execution timeout.

    The task was cancelled; if it was cancelled mid-submission the order's
    venue outcome is unknown.
    """

    def __init__(self, message: str, *, instrument: str, timeout_seconds: float) -> None:
        super().__init__(message)
        self.instrument = instrument
        self.timeout_seconds = timeout_seconds
