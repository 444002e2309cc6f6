"""FastAPI dependencies resolving services built by ``create_app``."""

from fastapi import Request

from charityhub.app.core.storage import KeyValueStore
from charityhub.app.middleware.rate_limit import RateLimiter
from charityhub.app.services.events import EventBus, NotificationEventBridge
from charityhub.app.services.notifications import NotificationCenter


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_notification_center(request: Request) -> NotificationCenter:
    return request.app.state.notification_center


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_event_bridge(request: Request) -> NotificationEventBridge:
    return request.app.state.event_bridge


def get_kv_store(request: Request) -> KeyValueStore:
    return request.app.state.store
