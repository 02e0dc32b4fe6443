"""
Unit tests for the realtime channel hub and Redis broker.
"""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from api.schemas.notifications import RealtimeEvent, RealtimeEventType
from core.exceptions import TransportError
from services.realtime import NotificationChannelHub, RedisNotificationBroker


def _event(user_id: str = "user-1", **fields) -> RealtimeEvent:
    fields.setdefault("type", RealtimeEventType.NOTIFICATION_READ)
    return RealtimeEvent(user_id=user_id, **fields)


class TestNotificationChannelHub:
    """Tests for in-process fan-out."""

    @pytest.mark.asyncio
    async def test_publish_reaches_only_that_users_subscribers(self):
        hub = NotificationChannelHub()
        received_a, received_b = [], []

        async def on_a(event):
            received_a.append(event)

        async def on_b(event):
            received_b.append(event)

        hub.subscribe("user-a", on_a)
        hub.subscribe("user-b", on_b)

        delivered = await hub.publish(_event("user-a", notification_ids=["n1"]))

        assert delivered == 1
        assert [e.notification_ids for e in received_a] == [["n1"]]
        assert received_b == []

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_callbacks_immediately(self):
        hub = NotificationChannelHub()
        received = []

        async def first(event):
            received.append("first")
            # Tear down the second subscriber mid fan-out
            second_subscription.unsubscribe()

        async def second(event):
            received.append("second")

        hub.subscribe("user-1", first)
        second_subscription = hub.subscribe("user-1", second)

        await hub.publish(_event())

        assert received == ["first"]
        assert second_subscription.active is False
        assert hub.subscriber_count("user-1") == 1

    @pytest.mark.asyncio
    async def test_failing_subscriber_is_isolated(self):
        hub = NotificationChannelHub()
        received = []

        async def broken(event):
            raise RuntimeError("socket closed")

        async def healthy(event):
            received.append(event)

        hub.subscribe("user-1", broken)
        hub.subscribe("user-1", healthy)

        delivered = await hub.publish(_event())

        assert delivered == 1
        assert len(received) == 1

    def test_unsubscribe_is_idempotent(self):
        hub = NotificationChannelHub()

        async def noop(event):
            pass

        subscription = hub.subscribe("user-1", noop)
        subscription.unsubscribe()
        subscription.unsubscribe()

        assert hub.subscriber_count("user-1") == 0


class FakePubSub:
    """Pub/sub that yields queued messages, then blocks."""

    def __init__(self, messages):
        self._messages = messages
        self.psubscribe = AsyncMock()
        self.aclose = AsyncMock()

    async def listen(self):
        for message in self._messages:
            yield message
        await asyncio.Event().wait()


class TestRedisNotificationBroker:
    """Tests for cross-process fan-out."""

    @pytest.mark.asyncio
    async def test_publish_uses_user_channel(self):
        redis = MagicMock()
        redis.publish = AsyncMock(return_value=2)
        broker = RedisNotificationBroker(NotificationChannelHub(), redis, prefix="notifications")

        result = await broker.publish(_event("user-9"))

        assert result == 2
        channel, payload = redis.publish.call_args.args
        assert channel == "notifications:user-9"
        assert RealtimeEvent.model_validate_json(payload).user_id == "user-9"

    @pytest.mark.asyncio
    async def test_publish_failure_raises_transport_error(self):
        redis = MagicMock()
        redis.publish = AsyncMock(side_effect=RedisConnectionError("down"))
        broker = RedisNotificationBroker(NotificationChannelHub(), redis)

        with pytest.raises(TransportError):
            await broker.publish(_event())

    @pytest.mark.asyncio
    async def test_listener_relays_into_hub(self):
        hub = NotificationChannelHub()
        received = []

        async def on_event(event):
            received.append(event)

        hub.subscribe("user-1", on_event)

        pubsub = FakePubSub(
            [
                {"type": "psubscribe", "data": 1},
                {"type": "pmessage", "data": "not json"},
                {"type": "pmessage", "data": _event("user-1", notification_ids=["n7"]).model_dump_json()},
            ]
        )
        redis = MagicMock()
        redis.pubsub = MagicMock(return_value=pubsub)
        broker = RedisNotificationBroker(hub, redis, prefix="notifications")

        await broker.start()
        for _ in range(20):
            if received:
                break
            await asyncio.sleep(0.01)
        await broker.stop()

        pubsub.psubscribe.assert_awaited_once_with("notifications:*")
        pubsub.aclose.assert_awaited_once()
        assert [e.notification_ids for e in received] == [["n7"]]

    @pytest.mark.asyncio
    async def test_lost_subscription_is_logged(self, caplog):
        class DroppingPubSub(FakePubSub):
            async def listen(self):
                yield {"type": "psubscribe", "data": 1}
                raise RedisConnectionError("connection reset")

        pubsub = DroppingPubSub([])
        redis = MagicMock()
        redis.pubsub = MagicMock(return_value=pubsub)
        broker = RedisNotificationBroker(NotificationChannelHub(), redis)

        with caplog.at_level(logging.ERROR, logger="services.realtime"):
            await broker.start()
            for _ in range(20):
                if not broker.is_listening:
                    break
                await asyncio.sleep(0.01)

        assert broker.is_listening is False
        assert "lost its subscription" in caplog.text
        await broker.stop()
        pubsub.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_listener_crash_is_logged(self, caplog):
        hub = NotificationChannelHub()
        hub.publish = AsyncMock(side_effect=RuntimeError("boom"))
        pubsub = FakePubSub([{"type": "pmessage", "data": _event().model_dump_json()}])
        redis = MagicMock()
        redis.pubsub = MagicMock(return_value=pubsub)
        broker = RedisNotificationBroker(hub, redis)

        with caplog.at_level(logging.ERROR, logger="services.realtime"):
            await broker.start()
            for _ in range(20):
                if not broker.is_listening:
                    break
                await asyncio.sleep(0.01)
            await asyncio.sleep(0)

        assert "listener crashed" in caplog.text
        await broker.stop()
