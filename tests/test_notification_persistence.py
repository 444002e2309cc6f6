"""Tests for notification history persistence."""

import json
import pytest
from unittest.mock import AsyncMock

from pydantic import ValidationError

from charityhub.app.core.storage import StoreError
from charityhub.app.services.notifications import (
    NotificationAction,
    NotificationRepository,
)
from charityhub.app.services.notifications.models import build_notification
from charityhub.app.services.notifications.persistence import (
    deserialize_notifications,
    serialize_notifications,
)

START_MS = 1_714_564_800_123


class TestSerialization:
    """Tests for the JSON array format."""

    def test_round_trip_keeps_fields_and_milliseconds(self):
        items = [
            build_notification("success", "Donation Successful!", "Thanks", 7000, START_MS),
            build_notification("error", "Donation Failed", "Try again", 0, START_MS - 1),
        ]
        items[1].read = True

        restored = deserialize_notifications(serialize_notifications(items))

        assert [(n.id, n.type, n.title, n.message, n.read) for n in restored] == [
            (n.id, n.type, n.title, n.message, n.read) for n in items
        ]
        assert [n.created_ms for n in restored] == [START_MS, START_MS - 1]

    def test_timestamp_is_iso8601_with_z(self):
        raw = serialize_notifications([build_notification("info", "t", "m", 5000, START_MS)])
        data = json.loads(raw)
        assert data[0]["timestamp"] == "2024-05-01T12:00:00.123Z"
        assert data[0]["type"] == "info"

    def test_action_label_kept_callback_dropped(self):
        notification = build_notification(
            "info", "t", "m", 0, START_MS,
            action=NotificationAction(label="Open", callback=lambda: None),
        )
        data = json.loads(serialize_notifications([notification]))
        assert data[0]["action"] == {"label": "Open"}

        restored = deserialize_notifications(json.dumps(data))
        assert restored[0].action.label == "Open"
        assert restored[0].action.callback is None

    def test_invalid_document_raises(self):
        with pytest.raises(ValidationError):
            deserialize_notifications("{not json")
        with pytest.raises(ValidationError):
            deserialize_notifications('[{"id": "x"}]')


class TestNotificationRepository:
    """Tests for the store-backed repository."""

    @pytest.mark.asyncio
    async def test_save_then_load(self, store):
        repository = NotificationRepository(store, key="history")
        items = [build_notification("warning", "t", "m", 5000, START_MS)]

        assert await repository.save(items) is True
        loaded = await repository.load()

        assert [n.id for n in loaded] == [items[0].id]

    @pytest.mark.asyncio
    async def test_default_key(self, store):
        repository = NotificationRepository(store)
        assert repository.key == "saintlammy-notifications"

    @pytest.mark.asyncio
    async def test_missing_history_is_empty(self, store):
        assert await NotificationRepository(store).load() == []

    @pytest.mark.asyncio
    async def test_corrupt_history_is_empty(self, store):
        await store.set("history", "definitely not json")
        assert await NotificationRepository(store, key="history").load() == []

    @pytest.mark.asyncio
    async def test_store_failure_on_load(self):
        failing = AsyncMock()
        failing.get.side_effect = StoreError("unavailable")
        assert await NotificationRepository(failing, key="history").load() == []

    @pytest.mark.asyncio
    async def test_store_failure_on_save(self):
        failing = AsyncMock()
        failing.set.side_effect = StoreError("disk full")
        repository = NotificationRepository(failing, key="history")
        assert await repository.save([]) is False
