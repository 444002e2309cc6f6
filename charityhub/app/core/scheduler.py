"""Deferred callback scheduling on the running event loop.

Notification auto-dismiss timers and the demo notification sequence are
scheduled through a ``Scheduler`` so tests can substitute a manual clock.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional

from charityhub.app.core.logging import get_logger

logger = get_logger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class Scheduler(ABC):
    """Runs async callbacks after a delay expressed in milliseconds."""

    @abstractmethod
    def call_later(self, delay_ms: int, callback: TimerCallback) -> None:
        """Schedule ``callback`` to be awaited once ``delay_ms`` has elapsed."""
        pass

    @abstractmethod
    def cancel_all(self) -> int:
        """Cancel every pending callback. Returns the number cancelled."""
        pass

    @property
    @abstractmethod
    def pending(self) -> int:
        """Number of callbacks not yet run."""
        pass


class AsyncioScheduler(Scheduler):
    """Scheduler backed by ``loop.call_later``.

    Each due callback runs as its own task; failures are logged and do
    not affect other timers.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handles: set[asyncio.TimerHandle] = set()
        self._tasks: set[asyncio.Task] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.get_running_loop()
        return self._loop

    def call_later(self, delay_ms: int, callback: TimerCallback) -> None:
        loop = self._get_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def _fire() -> None:
            self._handles.discard(handle)
            task = loop.create_task(callback())
            self._tasks.add(task)
            task.add_done_callback(self._on_done)

        handle = loop.call_later(max(0, delay_ms) / 1000, _fire)
        self._handles.add(handle)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Scheduled callback failed: {exc!r}", exc_info=exc)

    def cancel_all(self) -> int:
        cancelled = len(self._handles) + len(self._tasks)
        for handle in self._handles:
            handle.cancel()
        for task in self._tasks:
            task.cancel()
        self._handles.clear()
        self._tasks.clear()
        return cancelled

    @property
    def pending(self) -> int:
        return len(self._handles)
