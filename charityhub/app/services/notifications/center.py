"""Notification center: bounded, persisted notification history.

State machine per notification: created (unread) -> read -> removed.
Removal happens on explicit dismissal, on the auto-dismiss timer (only
when ``duration > 0``) or on ``clear_all``; it is idempotent by id.
"""

import asyncio
import inspect
from typing import List, Optional

from charityhub.app.core.config import settings
from charityhub.app.core.logging import get_log_context, get_logger
from charityhub.app.core.scheduler import AsyncioScheduler, Scheduler
from charityhub.app.core.utils import Clock, now_ms
from charityhub.app.exceptions import NotificationNotFoundError
from charityhub.app.services.notifications.models import (
    Notification,
    NotificationAction,
    NotificationType,
    build_notification,
)
from charityhub.app.services.notifications.persistence import NotificationRepository
from charityhub.app.services.notifications.toasts import Toast, build_toasts

logger = get_logger(__name__)


class NotificationCenter:
    """Holds the live notification list, newest first.

    Usage:
        center = NotificationCenter(repository=NotificationRepository(store))
        await center.load()
        await center.success("Saved", "Your changes were saved.")
    """

    def __init__(
        self,
        repository: Optional[NotificationRepository] = None,
        scheduler: Optional[Scheduler] = None,
        max_notifications: Optional[int] = None,
        default_duration_ms: Optional[int] = None,
        clock: Clock = now_ms,
    ):
        """Initialize the center.

        Args:
            repository: Durable history (None = memory only)
            scheduler: Timer scheduler for auto-dismiss
            max_notifications: History bound (None = settings, default 50)
            default_duration_ms: Duration when none is given (None = settings, default 5000)
            clock: Millisecond time source
        """
        self._repository = repository
        self._scheduler = scheduler or AsyncioScheduler()
        self.max_notifications = max_notifications or settings.notification_max_items
        self.default_duration_ms = (
            default_duration_ms
            if default_duration_ms is not None
            else settings.notification_default_duration_ms
        )
        self._clock = clock
        self._notifications: List[Notification] = []
        self._lock = asyncio.Lock()

    @property
    def notifications(self) -> List[Notification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)

    def __len__(self) -> int:
        return len(self._notifications)

    def get(self, notification_id: str) -> Optional[Notification]:
        for notification in self._notifications:
            if notification.id == notification_id:
                return notification
        return None

    def toasts(self, limit: Optional[int] = None) -> List[Toast]:
        return build_toasts(
            self._notifications,
            now=self._clock(),
            limit=limit or settings.notification_toast_limit,
        )

    async def _persist(self) -> None:
        if self._repository is not None:
            await self._repository.save(self._notifications)

    def _schedule_dismiss(self, notification_id: str, delay_ms: int) -> None:
        async def _dismiss() -> None:
            await self.remove(notification_id)

        self._scheduler.call_later(delay_ms, _dismiss)

    async def load(self) -> int:
        """Replace the live list with the persisted history.

        Loaded notifications with a duration get their remaining
        auto-dismiss time re-scheduled. Returns the number loaded.
        """
        if self._repository is None:
            return 0
        loaded = await self._repository.load()
        loaded.sort(key=lambda n: n.created_ms, reverse=True)
        loaded = loaded[: self.max_notifications]

        async with self._lock:
            self._notifications = loaded

        now = self._clock()
        for notification in loaded:
            expires_at = notification.expires_at_ms
            if expires_at is not None:
                self._schedule_dismiss(notification.id, max(0, expires_at - now))
        logger.info(f"Loaded {len(loaded)} notifications from history")
        return len(loaded)

    async def show(
        self,
        type: NotificationType | str,
        title: str,
        message: str,
        duration: Optional[int] = None,
        action: Optional[NotificationAction] = None,
    ) -> str:
        """Create a notification at the head of the list and return its id."""
        if duration is None:
            duration = self.default_duration_ms
        if duration < 0:
            raise ValueError("duration must not be negative")

        notification = build_notification(
            type=type,
            title=title,
            message=message,
            duration=duration,
            created_ms=self._clock(),
            action=action,
        )

        async with self._lock:
            self._notifications.insert(0, notification)
            del self._notifications[self.max_notifications:]
            await self._persist()

        if duration > 0:
            self._schedule_dismiss(notification.id, duration)

        logger.debug(
            f"Notification created: {notification.title}",
            extra=get_log_context(notification_id=notification.id),
        )
        return notification.id

    async def success(self, title: str, message: str, duration: Optional[int] = None) -> str:
        return await self.show(NotificationType.SUCCESS, title, message, duration)

    async def error(self, title: str, message: str, duration: Optional[int] = None) -> str:
        # Errors persist until dismissed unless a duration is given
        return await self.show(
            NotificationType.ERROR, title, message, 0 if duration is None else duration
        )

    async def warning(self, title: str, message: str, duration: Optional[int] = None) -> str:
        return await self.show(NotificationType.WARNING, title, message, duration)

    async def info(self, title: str, message: str, duration: Optional[int] = None) -> str:
        return await self.show(NotificationType.INFO, title, message, duration)

    async def remove(self, notification_id: str) -> bool:
        """Delete a notification. Returns False if it was already gone."""
        async with self._lock:
            remaining = [n for n in self._notifications if n.id != notification_id]
            if len(remaining) == len(self._notifications):
                return False
            self._notifications = remaining
            await self._persist()
        return True

    async def mark_as_read(self, notification_id: str) -> bool:
        async with self._lock:
            notification = self.get(notification_id)
            if notification is None:
                return False
            if not notification.read:
                notification.read = True
                await self._persist()
        return True

    async def mark_all_as_read(self) -> int:
        """Mark every notification read. Returns how many were unread."""
        async with self._lock:
            changed = 0
            for notification in self._notifications:
                if not notification.read:
                    notification.read = True
                    changed += 1
            await self._persist()
        return changed

    async def clear_all(self) -> int:
        async with self._lock:
            cleared = len(self._notifications)
            self._notifications = []
            await self._persist()
        return cleared

    async def invoke_action(self, notification_id: str) -> bool:
        """Run a notification's action callback, then dismiss it.

        Returns False (and leaves the notification alone) when it has no
        action. A callback lost across a restart only dismisses.

        Raises:
            NotificationNotFoundError: If the id is unknown.
        """
        notification = self.get(notification_id)
        if notification is None:
            raise NotificationNotFoundError(notification_id)
        if notification.action is None:
            return False

        callback = notification.action.callback
        if callback is not None:
            result = callback()
            if inspect.isawaitable(result):
                await result
        await self.remove(notification_id)
        return True

    def shutdown(self) -> int:
        """Cancel pending auto-dismiss timers."""
        return self._scheduler.cancel_all()
