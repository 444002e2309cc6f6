"""API endpoints package for CharityHub."""

from charityhub.app.api.contact import router as contact_router
from charityhub.app.api.events import router as events_router
from charityhub.app.api.notifications import router as notifications_router

__all__ = [
    "contact_router",
    "events_router",
    "notifications_router",
]
