from __future__ import annotations
import asyncio
from typing import Any, Callable, Optional, Set

from rps_shared.log import get_logger

logger = get_logger(__name__)


class ScheduledTask:
    """Cancellable handle for one callback scheduled on the event loop."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.cancelled = False
        self.fired = False
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if not self.pending:
            return
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
        logger.debug("Cancelled scheduled task %s", self.name or "<anonymous>")


class Scheduler:
    """
    Thin wrapper around ``loop.call_later`` that remembers every pending
    task so teardown can cancel all of them at once.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._pending: Set[ScheduledTask] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any, name: str = "") -> ScheduledTask:
        loop = self._loop or asyncio.get_running_loop()
        task = ScheduledTask(name)

        def _fire() -> None:
            self._pending.discard(task)
            if task.cancelled:
                return
            task.fired = True
            callback(*args)

        task._handle = loop.call_later(delay, _fire)
        self._pending.add(task)
        return task

    def cancel(self, task: Optional[ScheduledTask]) -> None:
        if task is None:
            return
        task.cancel()
        self._pending.discard(task)

    def cancel_all(self) -> None:
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
