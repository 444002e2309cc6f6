"""Signal catalog, event bus and the notification bridge."""

from charityhub.app.services.events.bridge import (
    NotificationEventBridge,
    NotificationSpec,
    render_signal,
)
from charityhub.app.services.events.bus import EventBus
from charityhub.app.services.events.signals import (
    SIGNAL_PAYLOADS,
    Signal,
    SignalPayload,
    get_signal,
    parse_payload,
)

__all__ = [
    "EventBus",
    "NotificationEventBridge",
    "NotificationSpec",
    "SIGNAL_PAYLOADS",
    "Signal",
    "SignalPayload",
    "get_signal",
    "parse_payload",
    "render_signal",
]
