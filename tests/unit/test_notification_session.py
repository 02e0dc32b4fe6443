"""
Unit tests for per-connection notification sessions.
"""

import asyncio
import uuid
from unittest.mock import AsyncMock

import pytest

from api.schemas.notifications import (
    ListNotificationsResult,
    NotificationInfo,
    NotificationStatus,
    RealtimeEvent,
    RealtimeEventType,
)
from api.schemas.websocket import WSMessageType
from core.exceptions import TransportError
from services.notification_session import NotificationSession
from services.push import ClientPushRuntime, PushSubscriptionManager
from utils.datetime import utcnow


class RecordingSender:
    """Collects every message the session sends."""

    def __init__(self):
        self.messages: list[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    def of_type(self, type: WSMessageType) -> list[dict]:
        return [m for m in self.messages if m["type"] == type]


@pytest.fixture
def sender():
    return RecordingSender()


@pytest.fixture
async def session(service, hub, user_id, sender):
    notification_session = NotificationSession(str(user_id), service, hub, sender)
    await notification_session.start()
    yield notification_session
    await notification_session.close()


async def _create(service, user_id, **fields) -> str:
    values = {"user_id": user_id, "type": "message", "title": "New message", "message": "Hi"}
    values.update(fields)
    result = await service.create_notification(values)
    assert result.success is True
    return result.notification_id


async def _drain() -> None:
    """Let toast listener sends run."""
    await asyncio.sleep(0)
    await asyncio.sleep(0)


class TestSessionStart:
    """Tests for the initial snapshot."""

    @pytest.mark.asyncio
    async def test_init_snapshot(self, service, hub, user_id, sender):
        await _create(service, user_id)

        notification_session = NotificationSession(str(user_id), service, hub, sender)
        await notification_session.start()

        init = sender.of_type(WSMessageType.INIT)
        assert len(init) == 1
        assert init[0]["payload"]["unread_count"] == 1
        assert len(init[0]["payload"]["notifications"]) == 1
        assert init[0]["payload"]["preferences"]["global_enabled"] is True
        assert notification_session.is_active is True
        assert hub.subscriber_count(str(user_id)) == 1

        await notification_session.close()

    @pytest.mark.asyncio
    async def test_unknown_user_fails_to_start(self, service, hub, sender):
        stranger = str(uuid.uuid4())
        notification_session = NotificationSession(stranger, service, hub, sender)

        result = await notification_session.start()

        assert result.success is False
        assert result.error.code == "user_not_found"
        assert sender.of_type(WSMessageType.ERROR)[0]["payload"]["code"] == "user_not_found"
        assert sender.of_type(WSMessageType.INIT) == []
        assert notification_session.is_active is False
        assert hub.subscriber_count(stranger) == 0

    @pytest.mark.asyncio
    async def test_store_failure_fails_to_start(self, service, hub, user_id, sender):
        service.get_notifications = AsyncMock(
            return_value=ListNotificationsResult.failed(TransportError())
        )
        notification_session = NotificationSession(str(user_id), service, hub, sender)

        result = await notification_session.start()

        assert result.success is False
        assert sender.of_type(WSMessageType.ERROR)[0]["payload"]["code"] == "transport_error"
        assert hub.subscriber_count(str(user_id)) == 0


class TestSessionEvents:
    """Tests for reacting to realtime events."""

    @pytest.mark.asyncio
    async def test_new_notification_adds_and_shows_toast(self, session, service, user_id, sender):
        notification_id = await _create(service, user_id)
        await _drain()

        assert [n.id for n in session.notifications] == [notification_id]
        assert session.unread_count == 1
        assert sender.of_type(WSMessageType.NOTIFICATION_NEW)[0]["payload"]["unread_count"] == 1

        toasts = sender.of_type(WSMessageType.TOAST_SHOW)
        assert len(toasts) == 1
        assert toasts[0]["payload"]["notification_id"] == notification_id

    @pytest.mark.asyncio
    async def test_duplicate_event_is_ignored(self, session, user_id):
        notification = NotificationInfo(
            id=str(uuid.uuid4()),
            user_id=str(user_id),
            type="message",
            title="Hello",
            message="World",
            created_at=utcnow(),
        )
        event = RealtimeEvent(
            type=RealtimeEventType.NEW_NOTIFICATION,
            user_id=str(user_id),
            notification=notification,
        )

        await session.handle_event(event)
        await session.handle_event(event)

        assert len(session.notifications) == 1
        assert session.unread_count == 1
        assert len(session.toasts) == 1

    @pytest.mark.asyncio
    async def test_in_app_disabled_skips_toast(self, session, service, user_id):
        await service.update_preferences(user_id, {"channels": {"in_app": False}})
        assert session.preferences.channels.in_app is False

        await _create(service, user_id)

        assert session.unread_count == 1
        assert len(session.toasts) == 0

    @pytest.mark.asyncio
    async def test_grouped_notification_replaces_in_place(self, session, service, user_id, sender):
        first = await _create(service, user_id, title="1 new message", group_id="chat-9")
        second = await _create(service, user_id, title="2 new messages", group_id="chat-9")

        assert first == second
        assert len(session.notifications) == 1
        assert session.notifications[0].title == "2 new messages"
        assert session.unread_count == 1
        assert len(sender.of_type(WSMessageType.NOTIFICATION_UPDATED)) == 1

    @pytest.mark.asyncio
    async def test_read_event_updates_counter(self, session, service, user_id):
        first = await _create(service, user_id)
        await _create(service, user_id)

        await service.mark_as_read(user_id, [uuid.UUID(first)])

        assert session.unread_count == 1
        read = next(n for n in session.notifications if n.id == first)
        assert read.status == NotificationStatus.READ

    @pytest.mark.asyncio
    async def test_counter_never_goes_negative(self, session, user_id):
        await session.handle_event(
            RealtimeEvent(
                type=RealtimeEventType.NOTIFICATION_READ,
                user_id=str(user_id),
                notification_ids=[str(uuid.uuid4())],
            )
        )

        assert session.unread_count == 0

    @pytest.mark.asyncio
    async def test_delete_removes_notification_and_toast(self, session, service, user_id, sender):
        notification_id = await _create(service, user_id)
        assert len(session.toasts) == 1

        await service.delete_notification(user_id, uuid.UUID(notification_id))
        await _drain()

        assert session.notifications == []
        assert session.unread_count == 0
        assert len(session.toasts) == 0
        removed = sender.of_type(WSMessageType.TOAST_REMOVED)
        assert removed[-1]["payload"]["reason"] == "removed"


class TestSessionActions:
    """Tests for client-initiated changes."""

    @pytest.mark.asyncio
    async def test_mark_all_as_read(self, session, service, user_id):
        for _ in range(3):
            await _create(service, user_id)

        result = await session.mark_as_read()

        assert result.count == 3
        assert session.unread_count == 0
        assert all(n.status == NotificationStatus.READ for n in session.notifications)

    @pytest.mark.asyncio
    async def test_record_action_refreshes_notification(self, session, service, user_id):
        notification_id = await _create(service, user_id)

        result = await session.record_action(notification_id)

        assert result.success is True
        assert session.notifications[0].status == NotificationStatus.READ
        assert session.unread_count == 0

    @pytest.mark.asyncio
    async def test_dismiss_toast(self, session, service, user_id, sender):
        await _create(service, user_id)
        toast_id = session.toasts.toasts[0].id

        assert session.dismiss_toast(toast_id) is True
        assert session.dismiss_toast(toast_id) is False
        await _drain()

        assert sender.of_type(WSMessageType.TOAST_REMOVED)[-1]["payload"] == {
            "id": toast_id,
            "reason": "dismissed",
        }


class TestSessionPush:
    """Tests for push display from a live session."""

    @pytest.mark.asyncio
    async def test_push_shown_when_subscribed(self, session, service, database, user_id):
        display = AsyncMock()
        runtime = ClientPushRuntime.with_active_subscription("https://push.example.com/s1", display=display)
        session.set_push_manager(PushSubscriptionManager(database, runtime))

        await _create(service, user_id, title="Ping from Sam")

        display.assert_awaited_once()
        assert display.await_args.args[0] == "Ping from Sam"

    @pytest.mark.asyncio
    async def test_push_skipped_when_push_disabled(self, session, service, database, user_id):
        display = AsyncMock()
        runtime = ClientPushRuntime.with_active_subscription("https://push.example.com/s1", display=display)
        session.set_push_manager(PushSubscriptionManager(database, runtime))
        await service.update_preferences(user_id, {"channels": {"push": False}})

        await _create(service, user_id)

        display.assert_not_awaited()
        assert len(session.toasts) == 1


class TestSessionClose:
    """Tests for tearing a session down."""

    @pytest.mark.asyncio
    async def test_close_stops_events_and_clears_toasts(self, service, hub, user_id, sender):
        notification_session = NotificationSession(str(user_id), service, hub, sender)
        await notification_session.start()
        await _create(service, user_id)

        await notification_session.close()
        sent = len(sender.messages)
        await _create(service, user_id)
        await _drain()

        assert notification_session.is_active is False
        assert hub.subscriber_count(str(user_id)) == 0
        assert len(notification_session.toasts) == 0
        assert len(sender.messages) == sent

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, session):
        await session.close()
        await session.close()

        assert session.is_active is False
