"""Tests for key-value store implementations."""

import pytest
from unittest.mock import AsyncMock, patch

import redis

from charityhub.app.core.storage import (
    FileStore,
    InMemoryStore,
    RedisStore,
    StoreError,
    get_store,
    reset_store,
)


class TestInMemoryStore:
    """Test in-memory store implementation."""

    @pytest.mark.asyncio
    async def test_get_set_delete(self):
        store = InMemoryStore()
        assert await store.get("k") is None

        await store.set("k", "v")
        assert await store.get("k") == "v"

        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_delete_missing_is_ignored(self):
        await InMemoryStore().delete("nope")

    @pytest.mark.asyncio
    async def test_ping(self):
        assert await InMemoryStore().ping() is True


class TestFileStore:
    """Test JSON file store."""

    @pytest.mark.asyncio
    async def test_survives_new_instance(self, tmp_path):
        path = tmp_path / "store.json"
        await FileStore(path).set("notifications", "[]")

        assert await FileStore(path).get("notifications") == "[]"
        assert not (tmp_path / "store.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_creates_parent_directories(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "store.json"
        await FileStore(path).set("k", "v")
        assert path.exists()

    @pytest.mark.asyncio
    async def test_missing_file_reads_empty(self, tmp_path):
        assert await FileStore(tmp_path / "absent.json").get("k") is None

    @pytest.mark.asyncio
    async def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{broken", encoding="utf-8")

        store = FileStore(path)
        with pytest.raises(StoreError):
            await store.get("k")
        assert await store.ping() is False

    @pytest.mark.asyncio
    async def test_delete(self, tmp_path):
        store = FileStore(tmp_path / "store.json")
        await store.set("a", "1")
        await store.set("b", "2")
        await store.delete("a")
        assert await store.get("a") is None
        assert await store.get("b") == "2"


class TestRedisStore:
    """Test Redis store with a mocked client."""

    @pytest.mark.asyncio
    async def test_prefixes_keys(self):
        client = AsyncMock()
        client.get.return_value = "value"
        store = RedisStore("redis://localhost:6379/0", key_prefix="charityhub", redis_client=client)

        assert await store.get("k") == "value"
        client.get.assert_awaited_once_with("charityhub:k")

        await store.set("k", "v")
        client.set.assert_awaited_once_with("charityhub:k", "v")

    @pytest.mark.asyncio
    async def test_decodes_bytes(self):
        client = AsyncMock()
        client.get.return_value = b"value"
        store = RedisStore("redis://localhost", redis_client=client)
        assert await store.get("k") == "value"

    @pytest.mark.asyncio
    async def test_errors_become_store_errors(self):
        client = AsyncMock()
        client.get.side_effect = redis.ConnectionError("down")
        client.set.side_effect = redis.TimeoutError("slow")
        store = RedisStore("redis://localhost", redis_client=client)

        with pytest.raises(StoreError):
            await store.get("k")
        with pytest.raises(StoreError):
            await store.set("k", "v")

    @pytest.mark.asyncio
    async def test_close(self):
        client = AsyncMock()
        store = RedisStore("redis://localhost", redis_client=client)
        await store.close()
        client.aclose.assert_awaited_once()


class TestGetStore:
    """Test the store singleton."""

    def test_singleton(self):
        reset_store()
        assert get_store("memory") is get_store()

    def test_force_new(self):
        first = get_store("memory")
        assert get_store("memory", force_new=True) is not first

    def test_backend_from_settings(self, tmp_path):
        with patch("charityhub.app.core.config.settings") as mock_settings:
            mock_settings.store_backend = "file"
            mock_settings.store_file_path = str(tmp_path / "s.json")
            assert isinstance(get_store(force_new=True), FileStore)

    def test_redis_backend(self):
        assert isinstance(get_store("redis", force_new=True), RedisStore)
