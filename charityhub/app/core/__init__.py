"""Core utilities for the CharityHub application."""

from charityhub.app.core.config import settings
from charityhub.app.core.logging import get_logger, setup_logging
from charityhub.app.core.scheduler import AsyncioScheduler, Scheduler
from charityhub.app.core.storage import (
    FileStore,
    InMemoryStore,
    KeyValueStore,
    RedisStore,
    StoreError,
    get_store,
    reset_store,
)

__all__ = [
    "AsyncioScheduler",
    "FileStore",
    "InMemoryStore",
    "KeyValueStore",
    "RedisStore",
    "Scheduler",
    "StoreError",
    "get_logger",
    "get_store",
    "reset_store",
    "settings",
    "setup_logging",
]
