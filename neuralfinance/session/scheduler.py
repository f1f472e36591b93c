"""Deferred execution of poll ticks.

The controller never re-enters itself directly; it asks a scheduler to run
the next tick later. The scheduler does not know about the single
in-flight rule, the controller enforces it.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Protocol

Tick = Callable[[], Awaitable[None]]


class Scheduler(Protocol):
    def call_later(self, delay_s: float, tick: Tick) -> None:
        """Run ``tick`` once after ``delay_s`` seconds."""

    def cancel_all(self) -> None:
        """Drop ticks that have not started yet; called when a session ends."""


class AsyncioScheduler:
    """Runs ticks as tasks on the running event loop."""

    def __init__(self) -> None:
        self._handles: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task] = set()

    def call_later(self, delay_s: float, tick: Tick) -> None:
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._handles.discard(handle)
            task = loop.create_task(tick())
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        handle = loop.call_later(max(0.0, float(delay_s)), _fire)
        self._handles.add(handle)

    def cancel_all(self) -> None:
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()
