"""Tests for the notification center."""

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, Mock

from charityhub.app.exceptions import NotificationNotFoundError
from charityhub.app.services.notifications import (
    NotificationAction,
    NotificationCenter,
    NotificationRepository,
    NotificationType,
)
from charityhub.app.services.notifications.persistence import serialize_notifications
from charityhub.app.services.notifications.models import build_notification


@pytest.fixture
def repository(store):
    return NotificationRepository(store, key="test-notifications")


@pytest.fixture
def center(repository, scheduler, clock):
    return NotificationCenter(
        repository=repository,
        scheduler=scheduler,
        max_notifications=50,
        default_duration_ms=5000,
        clock=clock,
    )


@pytest_asyncio.fixture
async def seeded_center(center, clock):
    for title in ("first", "second", "third"):
        await center.info(title, "message", duration=0)
        clock.advance(1)
    return center


class TestShow:
    """Tests for creating notifications."""

    @pytest.mark.asyncio
    async def test_newest_first(self, center, clock):
        first = await center.info("First", "one")
        clock.advance(1)
        second = await center.info("Second", "two")

        assert [n.id for n in center.notifications] == [second, first]

    @pytest.mark.asyncio
    async def test_new_notification_is_unread(self, center):
        notification_id = await center.success("Saved", "Done")
        notification = center.get(notification_id)

        assert notification.read is False
        assert notification.type == NotificationType.SUCCESS
        assert notification.duration == 5000
        assert notification.id.startswith("notification-")
        assert center.unread_count == 1

    @pytest.mark.asyncio
    async def test_bound_keeps_most_recent(self, center, clock):
        ids = []
        for i in range(55):
            ids.append(await center.info(f"n{i}", "msg", duration=0))
            clock.advance(1)

        assert len(center) == 50
        assert [n.id for n in center.notifications] == list(reversed(ids[5:]))

    @pytest.mark.asyncio
    async def test_negative_duration_rejected(self, center):
        with pytest.raises(ValueError):
            await center.show(NotificationType.INFO, "t", "m", duration=-1)

    @pytest.mark.asyncio
    async def test_persists_on_every_mutation(self, center, store):
        await center.warning("Careful", "Heads up")
        raw = await store.get("test-notifications")
        assert "Careful" in raw


class TestAutoDismiss:
    """Tests for timer-driven removal."""

    @pytest.mark.asyncio
    async def test_removed_after_duration(self, center, scheduler):
        notification_id = await center.info("Ping", "pong", duration=3000)

        await scheduler.advance(2999)
        assert center.get(notification_id) is not None

        await scheduler.advance(1)
        assert center.get(notification_id) is None

    @pytest.mark.asyncio
    async def test_error_is_persistent_by_default(self, center, scheduler):
        notification_id = await center.error("Failed", "Something broke")

        assert center.get(notification_id).duration == 0
        assert scheduler.pending == 0

        await scheduler.advance(3_600_000)
        assert center.get(notification_id) is not None

    @pytest.mark.asyncio
    async def test_error_with_explicit_duration(self, center, scheduler):
        notification_id = await center.error("Failed", "Retrying", duration=2000)
        await scheduler.advance(2000)
        assert center.get(notification_id) is None

    @pytest.mark.asyncio
    async def test_timer_after_manual_removal_is_noop(self, center, scheduler):
        notification_id = await center.info("Ping", "pong", duration=1000)
        assert await center.remove(notification_id) is True

        await scheduler.advance(1000)
        assert await center.remove(notification_id) is False
        assert len(center) == 0

    @pytest.mark.asyncio
    async def test_shutdown_cancels_timers(self, center, scheduler):
        await center.info("a", "b", duration=1000)
        await center.info("c", "d", duration=1000)
        assert center.shutdown() == 2
        assert scheduler.pending == 0


class TestReadState:
    """Tests for read/unread transitions."""

    @pytest.mark.asyncio
    async def test_mark_as_read(self, center):
        notification_id = await center.info("a", "b")
        assert await center.mark_as_read(notification_id) is True
        assert center.get(notification_id).read is True
        assert center.unread_count == 0

    @pytest.mark.asyncio
    async def test_mark_unknown_returns_false(self, center):
        assert await center.mark_as_read("missing") is False

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, center):
        first = await center.info("a", "b")
        await center.info("c", "d")
        await center.mark_as_read(first)

        assert await center.mark_all_as_read() == 1
        assert center.unread_count == 0

    @pytest.mark.asyncio
    async def test_unread_count_tracks_reads(self, seeded_center):
        newest = seeded_center.notifications[0]
        assert seeded_center.unread_count == 3

        await seeded_center.mark_as_read(newest.id)
        await seeded_center.mark_as_read(newest.id)

        assert seeded_center.unread_count == 2
        assert newest.title == "third"

    @pytest.mark.asyncio
    async def test_clear_all(self, center, store):
        await center.info("a", "b")
        await center.info("c", "d")

        assert await center.clear_all() == 2
        assert len(center) == 0
        assert await store.get("test-notifications") == "[]"


class TestActions:
    """Tests for notification actions."""

    @pytest.mark.asyncio
    async def test_invoke_runs_callback_and_dismisses(self, center):
        callback = Mock()
        notification_id = await center.show(
            NotificationType.INFO,
            "Update",
            "A new version is out",
            action=NotificationAction(label="Reload", callback=callback),
        )

        assert await center.invoke_action(notification_id) is True
        callback.assert_called_once_with()
        assert center.get(notification_id) is None

    @pytest.mark.asyncio
    async def test_invoke_awaits_async_callback(self, center):
        callback = AsyncMock()
        notification_id = await center.show(
            NotificationType.INFO,
            "Update",
            "msg",
            action=NotificationAction(label="Go", callback=callback),
        )

        await center.invoke_action(notification_id)
        callback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invoke_without_action(self, center):
        notification_id = await center.info("a", "b")
        assert await center.invoke_action(notification_id) is False
        assert center.get(notification_id) is not None

    @pytest.mark.asyncio
    async def test_invoke_unknown_raises(self, center):
        with pytest.raises(NotificationNotFoundError):
            await center.invoke_action("missing")


class TestLoad:
    """Tests for restoring history."""

    @pytest.mark.asyncio
    async def test_load_restores_and_reschedules(self, store, scheduler, clock):
        now = clock()
        old_persistent = build_notification("error", "Old", "kept", 0, now - 10_000)
        expiring = build_notification("info", "Soon", "gone", 5000, now - 3000)
        await store.set("test-notifications", serialize_notifications([old_persistent, expiring]))

        center = NotificationCenter(
            repository=NotificationRepository(store, key="test-notifications"),
            scheduler=scheduler,
            clock=clock,
        )
        assert await center.load() == 2
        assert [n.id for n in center.notifications] == [expiring.id, old_persistent.id]

        await scheduler.advance(2000)
        assert center.get(expiring.id) is None
        assert center.get(old_persistent.id) is not None

    @pytest.mark.asyncio
    async def test_load_overdue_dismisses_immediately(self, store, scheduler, clock):
        stale = build_notification("info", "Stale", "late", 1000, clock() - 60_000)
        await store.set("test-notifications", serialize_notifications([stale]))

        center = NotificationCenter(
            repository=NotificationRepository(store, key="test-notifications"),
            scheduler=scheduler,
            clock=clock,
        )
        await center.load()
        await scheduler.advance(0)
        assert len(center) == 0

    @pytest.mark.asyncio
    async def test_load_trims_to_bound(self, store, scheduler, clock):
        items = [build_notification("info", f"n{i}", "m", 0, clock() + i) for i in range(10)]
        await store.set("test-notifications", serialize_notifications(items))

        center = NotificationCenter(
            repository=NotificationRepository(store, key="test-notifications"),
            scheduler=scheduler,
            max_notifications=3,
            clock=clock,
        )
        await center.load()
        assert [n.title for n in center.notifications] == ["n9", "n8", "n7"]

    @pytest.mark.asyncio
    async def test_load_without_repository(self, scheduler):
        center = NotificationCenter(scheduler=scheduler)
        assert await center.load() == 0


class TestToasts:
    """Tests for the toast projection on the center."""

    @pytest.mark.asyncio
    async def test_toasts_are_unread_and_limited(self, center, clock):
        ids = []
        for i in range(7):
            ids.append(await center.info(f"n{i}", "m"))
            clock.advance(1)
        await center.mark_as_read(ids[-1])

        toasts = center.toasts(limit=5)
        assert [t.notification.id for t in toasts] == list(reversed(ids[1:6]))

    @pytest.mark.asyncio
    async def test_toast_progress_decays(self, center, clock):
        await center.info("a", "b", duration=4000)
        clock.advance(1000)
        assert center.toasts()[0].progress == pytest.approx(75.0)

    @pytest.mark.asyncio
    async def test_memory_only_center_works(self, scheduler, clock):
        center = NotificationCenter(scheduler=scheduler, clock=clock, max_notifications=5)
        await center.info("a", "b")
        assert len(center) == 1
        assert center.toasts()[0].notification.title == "a"
