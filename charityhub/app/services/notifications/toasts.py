"""Toast projection of the notification history.

Toasts are not stored: they are the most recent unread notifications,
each with a decaying progress value used only for visual feedback. The
authoritative removal timer lives in the notification center.
"""

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, List, Optional

from charityhub.app.core.config import settings
from charityhub.app.core.utils import Clock, now_ms
from charityhub.app.services.notifications.models import Notification

TOAST_LIMIT = 5


def select_toasts(
    notifications: Iterable[Notification], limit: int = TOAST_LIMIT
) -> List[Notification]:
    """First ``limit`` unread notifications of a newest-first list."""
    return [n for n in notifications if not n.read][:limit]


def toast_progress(elapsed_ms: float, duration_ms: int) -> Optional[float]:
    """Remaining share of a toast's lifetime, from 100 down to 0.

    Persistent toasts (``duration_ms == 0``) have no progress bar.
    """
    if duration_ms <= 0:
        return None
    return max(0.0, 100.0 - (max(0.0, elapsed_ms) / duration_ms) * 100.0)


@dataclass
class Toast:
    notification: Notification
    progress: Optional[float]


def build_toasts(
    notifications: Iterable[Notification],
    now: int,
    limit: int = TOAST_LIMIT,
) -> List[Toast]:
    """Toasts with progress measured from each notification's creation."""
    return [
        Toast(
            notification=n,
            progress=toast_progress(now - n.created_ms, n.duration),
        )
        for n in select_toasts(notifications, limit)
    ]


class ToastCountdown:
    """Local countdown started when a toast is first shown.

    Advisory only: reaching zero does not remove the notification.
    """

    def __init__(
        self,
        duration_ms: int,
        clock: Clock = now_ms,
        tick_ms: Optional[int] = None,
    ):
        self.duration_ms = duration_ms
        self.tick_ms = tick_ms or settings.notification_toast_tick_ms
        self._clock = clock
        self.started_at = clock()

    def sample(self) -> Optional[float]:
        return toast_progress(self._clock() - self.started_at, self.duration_ms)

    @property
    def finished(self) -> bool:
        return self.sample() == 0.0

    async def ticks(self) -> AsyncIterator[float]:
        """Yield the progress every ``tick_ms`` until it reaches zero."""
        if self.duration_ms <= 0:
            return
        while True:
            progress = self.sample()
            yield progress
            if progress == 0.0:
                break
            await asyncio.sleep(self.tick_ms / 1000)
