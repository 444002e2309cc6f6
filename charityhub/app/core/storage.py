"""Key-value store abstraction for durable application state.

Provides a pluggable store with in-memory, JSON-file and Redis
implementations. Notification history and newsletter signups are kept
here as whole-value entries under fixed namespaced keys.
"""

import asyncio
import json
from abc import ABC, abstractmethod
from pathlib import Path

import redis
import redis.asyncio as aioredis


class StoreError(Exception):
    """Raised when the underlying store cannot be read or written."""


class KeyValueStore(ABC):
    """Abstract base class for key-value stores.

    Values are opaque strings; callers own their serialization.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Retrieve a value, or None if the key is absent.

        Raises:
            StoreError: If the backend is unavailable.
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one.

        Raises:
            StoreError: If the backend is unavailable.
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key. Missing keys are ignored."""
        pass

    async def ping(self) -> bool:
        """Check that the store is reachable."""
        try:
            await self.get("__ping__")
        except StoreError:
            return False
        return True

    async def close(self) -> None:
        """Release backend resources."""
        pass


class InMemoryStore(KeyValueStore):
    """In-memory store.

    This is the default store. Data is lost when the process restarts.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        async with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            self._data[key] = value

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)


class FileStore(KeyValueStore):
    """Store backed by a single JSON object on local disk.

    Every write rewrites the whole file through a temporary sibling so a
    crash never leaves a half-written document behind.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    def _read_all(self) -> dict[str, str]:
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise StoreError(f"Cannot read {self._path}: {e}") from e
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreError(f"Corrupt store file {self._path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"Corrupt store file {self._path}: expected an object")
        return data

    def _write_all(self, data: dict[str, str]) -> None:
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self._path)
        except OSError as e:
            raise StoreError(f"Cannot write {self._path}: {e}") from e

    async def get(self, key: str) -> str | None:
        async with self._lock:
            value = self._read_all().get(key)
            return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> None:
        async with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = self._read_all()
            if data.pop(key, None) is not None:
                self._write_all(data)


class RedisStore(KeyValueStore):
    """Redis-backed store shared by every application instance.

    Example:
        >>> store = RedisStore("redis://localhost:6379/0")
        >>> await store.set("charityhub:key", "value")
    """

    def __init__(self, redis_url: str, key_prefix: str = "", redis_client: object | None = None) -> None:
        self._redis_url = redis_url
        self._key_prefix = key_prefix
        self._redis = redis_client

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}:{key}" if self._key_prefix else key

    async def _get_client(self):
        if self._redis is None:
            self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
        return self._redis

    async def get(self, key: str) -> str | None:
        client = await self._get_client()
        try:
            value = await client.get(self._key(key))
        except (redis.RedisError, OSError) as e:
            raise StoreError(f"Redis get failed: {e}") from e
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str) -> None:
        client = await self._get_client()
        try:
            await client.set(self._key(key), value)
        except (redis.RedisError, OSError) as e:
            raise StoreError(f"Redis set failed: {e}") from e

    async def delete(self, key: str) -> None:
        client = await self._get_client()
        try:
            await client.delete(self._key(key))
        except (redis.RedisError, OSError) as e:
            raise StoreError(f"Redis delete failed: {e}") from e

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None


# Global store instance (singleton pattern)
_store_instance: KeyValueStore | None = None


def get_store(backend: str | None = None, force_new: bool = False) -> KeyValueStore:
    """Get or create the global key-value store.

    Args:
        backend: 'memory', 'file' or 'redis'. Defaults to settings.store_backend.
        force_new: If True, create a new instance even if one exists.
    """
    global _store_instance

    if _store_instance is not None and not force_new:
        return _store_instance

    from charityhub.app.core.config import settings

    backend = (backend or settings.store_backend).lower()
    if backend == "redis":
        _store_instance = RedisStore(settings.redis_url, key_prefix=settings.redis_key_prefix)
    elif backend == "file":
        _store_instance = FileStore(settings.store_file_path)
    else:
        _store_instance = InMemoryStore()
    return _store_instance


def reset_store() -> None:
    """Reset the global store instance.

    This is primarily useful for testing.
    """
    global _store_instance
    _store_instance = None
