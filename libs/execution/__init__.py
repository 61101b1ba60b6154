"""
Signal execution library.

This library provides:
- PositionSizer: allocation -> contracts, with balance/leverage fallback chains
- OrderLifecycleController: open/close long/short in dual and single mode
- ExecutionSerializer: one execution at a time per instrument, FIFO
- TradeExecutor: the three wired together behind ``execute(signal)``

Example:
    >>> from libs.exchange import PaperFuturesClient
    >>> from libs.execution import LoggingEventSink, TradeExecutor, build_signal
    >>>
    >>> executor = TradeExecutor(PaperFuturesClient(), events=LoggingEventSink())
    >>> result = await executor.execute(build_signal("long_entry", "10", "ETH/USDT:USDT"))
    >>> result.signed_size
    2
"""

from libs.execution.events import (
    ExecutionEventSink,
    FanOutEventSink,
    LoggingEventSink,
    NullEventSink,
)
from libs.execution.exceptions import (
    ContractUnavailable,
    ExecutionError,
    ExecutionTimeout,
    InsufficientBalance,
    InvalidAllocation,
    InvalidSignal,
    OrderSubmissionError,
    OrderTooSmall,
    ResolutionError,
    UnsupportedAction,
)
from libs.execution.executor import TradeExecutor, build_signal
from libs.execution.lifecycle import OrderLifecycleController
from libs.execution.models import (
    ExecutionResult,
    ExecutionStatus,
    LeverageResolution,
    LeverageSource,
    SizedOrder,
    SizingDecision,
    TradeAction,
    TradeSignal,
)
from libs.execution.serializer import ExecutionSerializer
from libs.execution.sizing import PositionSizer, normalize_allocation, resolve_first_positive

__all__ = [
    # Components
    "TradeExecutor",
    "PositionSizer",
    "OrderLifecycleController",
    "ExecutionSerializer",
    "build_signal",
    "normalize_allocation",
    "resolve_first_positive",
    # Records
    "TradeAction",
    "TradeSignal",
    "SizedOrder",
    "SizingDecision",
    "LeverageResolution",
    "LeverageSource",
    "ExecutionResult",
    "ExecutionStatus",
    # Events
    "ExecutionEventSink",
    "LoggingEventSink",
    "NullEventSink",
    "FanOutEventSink",
    # Exceptions
    "ExecutionError",
    "InvalidSignal",
    "InvalidAllocation",
    "UnsupportedAction",
    "ResolutionError",
    "InsufficientBalance",
    "ContractUnavailable",
    "OrderTooSmall",
    "OrderSubmissionError",
    "ExecutionTimeout",
]
