"""
Execution event sinks.

The execution core reports what it does through an injected
``ExecutionEventSink`` instead of calling a logger directly. The default
sink turns each event into a structured log record; the gateway stacks a
metrics sink on top of it.

Events emitted by the core:
    execution_admitted    signal accepted by the executor
    execution_queued      another execution for the same contract is ahead
    sizing_resolved       open order sized (full breakdown)
    balance_unavailable   a balance source reported nothing usable
    close_skipped         close turned into a no-op (reason=no_position|no_action)
    close_sized           close order sized (requested, held, clamped)
    order_submitting / order_submitted / order_failed
    execution_completed / execution_failed / execution_timeout
"""

import logging
from typing import Any, Protocol, runtime_checkable

from libs.common.logging import log_with_context

_DEFAULT_LEVELS = {
    "order_failed": "ERROR",
    "execution_failed": "ERROR",
    "execution_timeout": "ERROR",
    "close_skipped": "WARNING",
    "balance_unavailable": "DEBUG",
    "execution_queued": "DEBUG",
}


@runtime_checkable
class ExecutionEventSink(Protocol):
    def emit(self, event: str, **fields: Any) -> None: ...


class LoggingEventSink:
    """Write events as structured log records through ``log_with_context``.

    Args:
        logger: Target logger (defaults to ``libs.execution``)
        level: Level for events without an explicit entry in ``levels``
        levels: Per-event level overrides
    """

    def __init__(
        self,
        logger: logging.Logger | None = None,
        level: str = "INFO",
        levels: dict[str, str] | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger("libs.execution")
        self.level = level
        self.levels = {**_DEFAULT_LEVELS, **(levels or {})}

    def emit(self, event: str, **fields: Any) -> None:
        log_with_context(self.logger, self.levels.get(event, self.level), event, event=event, **fields)


class NullEventSink:
    def emit(self, event: str, **fields: Any) -> None:
        return None


class FanOutEventSink:
    """Forward every event to several sinks, in order."""

    def __init__(self, *sinks: ExecutionEventSink) -> None:
        self.sinks = sinks

    def emit(self, event: str, **fields: Any) -> None:
        for sink in self.sinks:
            sink.emit(event, **fields)
