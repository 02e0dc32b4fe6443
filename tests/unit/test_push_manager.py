"""
Unit tests for the push subscription lifecycle.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from api.schemas.notifications import NotificationInfo
from api.schemas.push import DevicePlatform, PermissionState
from services.push import (
    ClientPushRuntime,
    PushConfig,
    PushSubscriptionManager,
    ReportedSubscription,
    parse_device_info,
)

IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
EDGE_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0 Safari/537.36 Edg/120.0"
)


def _runtime(endpoint: str = "https://push.example.com/abc", **fields) -> ClientPushRuntime:
    fields.setdefault("supported", True)
    fields.setdefault("permission", PermissionState.GRANTED)
    fields.setdefault("user_agent", EDGE_UA)
    return ClientPushRuntime(
        subscription=ReportedSubscription(endpoint, p256dh="key-p256dh", auth="key-auth"),
        **fields,
    )


def _notification(**fields) -> NotificationInfo:
    values = {
        "id": "n-1",
        "user_id": "u-1",
        "type": "study_reminder",
        "title": "Time to study",
        "message": "Your flashcards are due",
        "created_at": datetime(2026, 3, 10, tzinfo=timezone.utc),
    }
    values.update(fields)
    return NotificationInfo(**values)


class TestDeviceParsing:
    """Tests for user agent parsing."""

    def test_iphone(self):
        info = parse_device_info(IPHONE_UA, device_id="dev-1")

        assert info.platform == DevicePlatform.IOS
        assert info.os == "iOS"
        assert info.browser == "Safari"
        assert info.device_id == "dev-1"

    def test_edge_is_not_reported_as_chrome(self):
        info = parse_device_info(EDGE_UA)

        assert info.platform == DevicePlatform.WEB
        assert info.browser == "Edge"
        assert info.os == "Windows"
        assert info.device_id

    def test_missing_user_agent(self):
        info = parse_device_info(None)

        assert info.platform == DevicePlatform.WEB
        assert info.browser is None
        assert info.os is None


class TestSubscribe:
    """Tests for subscribing and unsubscribing."""

    @pytest.mark.asyncio
    async def test_subscribe_stores_endpoint(self, database, user_id):
        manager = PushSubscriptionManager(database, _runtime())

        info = await manager.subscribe(user_id)

        assert info is not None
        assert info.endpoint == "https://push.example.com/abc"
        assert info.device_info.browser == "Edge"
        assert await manager.is_subscribed() is True
        assert [s.endpoint for s in await manager.get_user_subscriptions(user_id)] == [info.endpoint]

    @pytest.mark.asyncio
    async def test_resubscribe_same_endpoint_updates_row(self, database, user_id):
        first = await PushSubscriptionManager(database, _runtime()).subscribe(user_id)
        second = await PushSubscriptionManager(database, _runtime()).subscribe(user_id)

        assert first.id == second.id
        assert len(await PushSubscriptionManager(database, _runtime()).get_user_subscriptions(user_id)) == 1

    @pytest.mark.asyncio
    async def test_existing_browser_subscription_is_replaced(self, database, user_id):
        runtime = ClientPushRuntime.with_active_subscription("https://push.example.com/old")
        stale = await (await runtime.get_registration()).get_subscription()
        runtime._registration._fresh = ReportedSubscription("https://push.example.com/new", "k", "a")

        info = await PushSubscriptionManager(database, runtime).subscribe(user_id)

        assert stale.revoked is True
        assert info.endpoint == "https://push.example.com/new"

    @pytest.mark.asyncio
    async def test_unsupported_runtime_returns_none(self, database, user_id):
        manager = PushSubscriptionManager(database, _runtime(supported=False))

        assert await manager.subscribe(user_id) is None
        assert await manager.request_permission() is None
        assert manager.permission == PermissionState.DENIED
        assert await manager.is_subscribed() is False

    @pytest.mark.asyncio
    async def test_denied_permission_returns_none(self, database, user_id):
        manager = PushSubscriptionManager(database, _runtime(permission=PermissionState.DENIED))

        assert await manager.subscribe(user_id) is None
        assert await manager.get_user_subscriptions(user_id) == []

    @pytest.mark.asyncio
    async def test_no_reported_subscription_returns_none(self, database, user_id):
        runtime = ClientPushRuntime(supported=True, permission=PermissionState.GRANTED)

        assert await PushSubscriptionManager(database, runtime).subscribe(user_id) is None

    @pytest.mark.asyncio
    async def test_unsubscribe_deletes_record(self, database, user_id):
        await PushSubscriptionManager(database, _runtime()).subscribe(user_id)

        runtime = ClientPushRuntime.with_active_subscription("https://push.example.com/abc")
        manager = PushSubscriptionManager(database, runtime)

        assert await manager.unsubscribe(user_id) is True
        assert await manager.get_user_subscriptions(user_id) == []

    @pytest.mark.asyncio
    async def test_failed_revoke_does_not_block_deletion(self, database, user_id):
        await PushSubscriptionManager(database, _runtime()).subscribe(user_id)

        runtime = ClientPushRuntime.with_active_subscription("https://push.example.com/abc")
        subscription = await (await runtime.get_registration()).get_subscription()
        subscription.unsubscribe = AsyncMock(side_effect=RuntimeError("push service unreachable"))
        manager = PushSubscriptionManager(database, runtime)

        assert await manager.unsubscribe(user_id) is True
        assert await manager.get_user_subscriptions(user_id) == []

    @pytest.mark.asyncio
    async def test_unsubscribe_without_subscription(self, database, user_id):
        manager = PushSubscriptionManager(database, _runtime())

        assert await manager.unsubscribe(user_id) is False


class TestShowNotification:
    """Tests for mapping notifications onto display calls."""

    def test_urgent_requires_interaction(self):
        manager = PushSubscriptionManager(None, _runtime(), PushConfig(default_icon="/icon.png"))

        options = manager.build_display_options(_notification(priority="urgent"))

        assert options["requireInteraction"] is True
        assert options["icon"] == "/icon.png"
        assert options["tag"] == "n-1"
        assert options["renotify"] is False
        assert options["data"]["notificationId"] == "n-1"

    def test_grouped_notification_replaces_by_tag(self):
        manager = PushSubscriptionManager(None, _runtime())

        options = manager.build_display_options(
            _notification(
                group_id="flashcards-due",
                image_url="https://cdn.example.com/deck.png",
                actions=[{"id": "review", "label": "Review now"}],
                data={"deck_id": 7},
            )
        )

        assert options["requireInteraction"] is False
        assert options["tag"] == "flashcards-due"
        assert options["renotify"] is True
        assert options["image"] == "https://cdn.example.com/deck.png"
        assert options["actions"] == [{"action": "review", "title": "Review now"}]
        assert options["data"]["deck_id"] == 7

    @pytest.mark.asyncio
    async def test_show_forwards_to_display(self):
        display = AsyncMock()
        runtime = ClientPushRuntime.with_active_subscription("https://push.example.com/abc", display=display)
        manager = PushSubscriptionManager(None, runtime)

        assert await manager.show_notification(_notification()) is True

        title, options = display.await_args.args
        assert title == "Time to study"
        assert options["body"] == "Your flashcards are due"

    @pytest.mark.asyncio
    async def test_show_without_permission_is_false(self):
        runtime = ClientPushRuntime.with_active_subscription(
            "https://push.example.com/abc",
            permission=PermissionState.DEFAULT,
            display=AsyncMock(),
        )

        assert await PushSubscriptionManager(None, runtime).show_notification(_notification()) is False

    @pytest.mark.asyncio
    async def test_display_failure_is_false(self):
        runtime = ClientPushRuntime.with_active_subscription(
            "https://push.example.com/abc",
            display=AsyncMock(side_effect=RuntimeError("socket closed")),
        )

        assert await PushSubscriptionManager(None, runtime).show_notification(_notification()) is False
