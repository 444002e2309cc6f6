"""Notification data models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from charityhub.app.core.utils import datetime_to_ms, ms_to_datetime, to_iso8601


class NotificationType(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class NotificationAction(BaseModel):
    """Optional call to action shown on a notification.

    Only the label is persisted; the callback lives in memory for the
    lifetime of the process that created it.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    label: str
    callback: Optional[Callable[[], Any]] = Field(default=None, exclude=True)


class Notification(BaseModel):
    """A single entry of the notification history.

    ``duration`` is in milliseconds; 0 means persistent (never auto-dismissed).
    """

    id: str
    type: NotificationType
    title: str
    message: str
    duration: int = Field(default=5000, ge=0)
    timestamp: datetime
    read: bool = False
    action: Optional[NotificationAction] = None

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return to_iso8601(value)

    @property
    def persistent(self) -> bool:
        return self.duration == 0

    @property
    def created_ms(self) -> int:
        return datetime_to_ms(self.timestamp)

    @property
    def expires_at_ms(self) -> Optional[int]:
        """Instant the auto-dismiss timer fires, or None when persistent."""
        if self.persistent:
            return None
        return self.created_ms + self.duration


def new_notification_id(created_ms: int) -> str:
    """Unique id derived from creation time plus 9 random characters."""
    return f"notification-{created_ms}-{uuid.uuid4().hex[:9]}"


def build_notification(
    type: NotificationType | str,
    title: str,
    message: str,
    duration: int,
    created_ms: int,
    action: Optional[NotificationAction] = None,
) -> Notification:
    return Notification(
        id=new_notification_id(created_ms),
        type=NotificationType(type),
        title=title,
        message=message,
        duration=duration,
        timestamp=ms_to_datetime(created_ms),
        read=False,
        action=action,
    )
