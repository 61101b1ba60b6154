"""
Per-instrument execution serialization.

At most one execution runs per key at a time; executions for the same key
run in admission order; different keys never wait on each other. Each key
owns an ``asyncio.Lock`` (FIFO for waiters) plus a count of executions that
hold or wait for it. The entry is dropped when the count returns to zero, so
the map only holds keys with work in flight.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from libs.execution.events import ExecutionEventSink, NullEventSink
from libs.execution.exceptions import ExecutionTimeout

T = TypeVar("T")


@dataclass
class _Slot:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    pending: int = 0


class ExecutionSerializer:
    """
    Run tasks one at a time per key.

    Args:
        timeout_seconds: Per-execution limit measured from acquiring the slot.
            None or 0 disables it.
        events: Sink for ``execution_queued`` / ``execution_timeout``

    Example:
        >>> serializer = ExecutionSerializer(timeout_seconds=30)
        >>> result = await serializer.execute("BTC_USDT", lambda: controller.handle(signal))
    """

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        events: ExecutionEventSink | None = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds or None
        self.events = events or NullEventSink()
        self._slots: dict[str, _Slot] = {}

    def pending(self, key: str) -> int:
        """Executions holding or waiting for ``key``."""
        slot = self._slots.get(key)
        return slot.pending if slot else 0

    @property
    def active_keys(self) -> list[str]:
        return list(self._slots)

    async def execute(self, key: str, task: Callable[[], Awaitable[T]]) -> T:
        """Run ``task`` once every earlier execution for ``key`` has finished.

        The slot is released on every exit path. A failure of ``task`` is
        raised to this caller only; queued executions proceed.

        Raises:
            ExecutionTimeout: ``task`` exceeded ``timeout_seconds`` and was cancelled
        """
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = _Slot()
        slot.pending += 1
        if slot.pending > 1:
            self.events.emit("execution_queued", instrument=key, ahead=slot.pending - 1)

        try:
            async with slot.lock:
                return await self._run(key, task)
        finally:
            slot.pending -= 1
            if slot.pending == 0 and self._slots.get(key) is slot:
                del self._slots[key]

    async def _run(self, key: str, task: Callable[[], Awaitable[T]]) -> T:
        if self.timeout_seconds is None:
            return await task()
        try:
            return await asyncio.wait_for(task(), timeout=self.timeout_seconds)
        except TimeoutError:
            self.events.emit(
                "execution_timeout", instrument=key, timeout_seconds=self.timeout_seconds
            )
            raise ExecutionTimeout(
                f"Execution for {key} exceeded {self.timeout_seconds}s and was cancelled",
                instrument=key,
                timeout_seconds=self.timeout_seconds,
            ) from None
