"""Cancellable delayed callbacks on the event loop."""

import asyncio
from typing import Any, Callable, Protocol


class TimerHandle(Protocol):
    """Handle returned by a scheduler; only cancellation is needed."""

    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Anything that can run a callback after a delay."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle:
        ...


class LoopScheduler:
    """Scheduler backed by the running asyncio loop (prompt_toolkit's loop)."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(delay, callback, *args)
