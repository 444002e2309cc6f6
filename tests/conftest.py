"""Shared fixtures: a controllable clock and a manual timer scheduler."""

import pytest

from charityhub.app.core.scheduler import Scheduler, TimerCallback
from charityhub.app.core.storage import InMemoryStore, reset_store

# 2024-05-01T12:00:00.000Z
START_MS = 1_714_564_800_000


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: int = START_MS):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class ManualScheduler(Scheduler):
    """Scheduler whose timers fire only when the test advances time.

    Shares the FakeClock so scheduled delays and ``clock()`` agree.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self._timers: list[tuple[int, int, TimerCallback]] = []
        self._seq = 0

    def call_later(self, delay_ms: int, callback: TimerCallback) -> None:
        self._seq += 1
        self._timers.append((self.clock.now + max(0, delay_ms), self._seq, callback))

    def cancel_all(self) -> int:
        cancelled = len(self._timers)
        self._timers.clear()
        return cancelled

    @property
    def pending(self) -> int:
        return len(self._timers)

    def due_times(self) -> list[int]:
        return sorted(due for due, _, _ in self._timers)

    async def advance(self, ms: int) -> int:
        """Move the clock forward, awaiting each timer that comes due in order.

        Returns:
            Number of callbacks run
        """
        target = self.clock.now + ms
        fired = 0
        while True:
            due = [t for t in self._timers if t[0] <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t[0], t[1]))
            self._timers.remove(timer)
            self.clock.now = max(self.clock.now, timer[0])
            await timer[2]()
            fired += 1
        self.clock.now = target
        return fired


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture(autouse=True)
def _reset_global_store():
    yield
    reset_store()


@pytest.fixture
def api_app(clock, scheduler, store):
    """Application wired to an in-memory store, fake-clock limiter and manual timers."""
    from charityhub.app.main import create_app
    from charityhub.app.middleware.rate_limit import InMemoryRateLimiter, RateLimiter

    limiter = RateLimiter(backend=InMemoryRateLimiter(clock=clock), partition_by_preset=True)
    return create_app(store=store, rate_limiter=limiter, scheduler=scheduler)


@pytest.fixture
def client(api_app):
    from fastapi.testclient import TestClient

    with TestClient(api_app) as test_client:
        yield test_client
