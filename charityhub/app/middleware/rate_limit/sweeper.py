"""Periodic cleanup of expired rate limit windows."""

import asyncio
from typing import Optional

from charityhub.app.core.logging import get_logger
from charityhub.app.middleware.rate_limit.backends import RateLimitBackend

logger = get_logger(__name__)


class RateLimitSweeper:
    """Background task that bounds memory used by abandoned identifiers.

    Usage:
        sweeper = RateLimitSweeper(backend, interval=60.0)
        await sweeper.start()
        ...
        await sweeper.stop()
    """

    def __init__(self, backend: RateLimitBackend, interval: float = 60.0):
        """Initialize the sweeper.

        Args:
            backend: Backend whose expired entries are deleted
            interval: Seconds between sweeps (default: 60.0)
        """
        self._backend = backend
        self._interval = interval
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None

    async def sweep(self) -> int:
        """Run one cleanup pass now."""
        removed = await self._backend.cleanup()
        if removed:
            logger.debug(f"Rate limit sweep removed {removed} expired entries")
        return removed

    async def start(self) -> None:
        if self._task is not None:
            logger.debug("Rate limit sweeper already running")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started rate limit sweeper (interval: {self._interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return

        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Rate limit sweeper did not stop gracefully, cancelling")
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None
            logger.info("Stopped rate limit sweeper")

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                # Normal case: interval elapsed
                pass
            if self._stop_event.is_set():
                break
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Error during rate limit sweep: {e}")
