"""Notification history, persistence and toast projection."""

from charityhub.app.services.notifications.center import NotificationCenter
from charityhub.app.services.notifications.models import (
    Notification,
    NotificationAction,
    NotificationType,
)
from charityhub.app.services.notifications.persistence import (
    NotificationRepository,
    deserialize_notifications,
    serialize_notifications,
)
from charityhub.app.services.notifications.toasts import (
    Toast,
    ToastCountdown,
    build_toasts,
    select_toasts,
    toast_progress,
)

__all__ = [
    "Notification",
    "NotificationAction",
    "NotificationCenter",
    "NotificationRepository",
    "NotificationType",
    "Toast",
    "ToastCountdown",
    "build_toasts",
    "deserialize_notifications",
    "select_toasts",
    "serialize_notifications",
    "toast_progress",
]
