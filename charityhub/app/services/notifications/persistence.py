"""Durable notification history.

The whole list is stored as one JSON array under a fixed namespaced key,
read once at startup and rewritten in full on every mutation. Store
faults never propagate: the caller keeps working from memory.
"""

from typing import Iterable, List

from pydantic import TypeAdapter, ValidationError

from charityhub.app.core.config import settings
from charityhub.app.core.logging import get_logger
from charityhub.app.core.storage import KeyValueStore, StoreError
from charityhub.app.services.notifications.models import Notification

logger = get_logger(__name__)

_notification_list = TypeAdapter(List[Notification])


def serialize_notifications(notifications: Iterable[Notification]) -> str:
    """Encode notifications as a JSON array with ISO-8601 timestamps."""
    return _notification_list.dump_json(list(notifications)).decode("utf-8")


def deserialize_notifications(raw: str | bytes) -> List[Notification]:
    """Decode a JSON array produced by ``serialize_notifications``.

    Raises:
        ValidationError: If the document is not valid JSON or does not
            match the notification schema.
    """
    return _notification_list.validate_json(raw)


class NotificationRepository:
    """Loads and saves the notification list through a key-value store."""

    def __init__(self, store: KeyValueStore, key: str | None = None):
        self._store = store
        self.key = key or settings.notification_storage_key

    async def load(self) -> List[Notification]:
        """Read the persisted list; an unreadable store yields an empty history."""
        try:
            raw = await self._store.get(self.key)
        except StoreError as e:
            logger.error(f"Error loading notifications from store: {e}")
            return []
        if not raw:
            return []
        try:
            return deserialize_notifications(raw)
        except ValidationError as e:
            logger.error(
                f"Discarding unreadable notification history under '{self.key}': "
                f"{e.error_count()} validation error(s)"
            )
            return []

    async def save(self, notifications: Iterable[Notification]) -> bool:
        """Rewrite the persisted list. Returns False if the store failed."""
        try:
            await self._store.set(self.key, serialize_notifications(notifications))
        except StoreError as e:
            logger.error(f"Error saving notifications to store: {e}")
            return False
        return True
