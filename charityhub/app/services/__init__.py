"""Services package for CharityHub."""

from charityhub.app.services.events import EventBus, NotificationEventBridge, Signal
from charityhub.app.services.notifications import (
    NotificationCenter,
    NotificationRepository,
)

__all__ = [
    "EventBus",
    "NotificationCenter",
    "NotificationEventBridge",
    "NotificationRepository",
    "Signal",
]
