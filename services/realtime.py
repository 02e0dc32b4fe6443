"""
Per-user realtime channel for notification events.

``NotificationChannelHub`` is the in-process fan-out: sessions subscribe with
a callback and get back a ``Subscription`` they own. ``RedisNotificationBroker``
carries the same events between processes over Redis pub/sub and hands them
to the local hub.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol
from uuid import uuid4

from redis.asyncio import Redis
from redis.exceptions import RedisError

from api.schemas.notifications import RealtimeEvent
from core.exceptions import TransportError

logger = logging.getLogger(__name__)

EventCallback = Callable[[RealtimeEvent], Awaitable[None]]


class NotificationPublisher(Protocol):
    """Anything the orchestrator can publish events through."""

    async def publish(self, event: RealtimeEvent) -> int: ...


class Subscription:
    """
    A live subscription to one user's channel.

    ``unsubscribe`` is synchronous: once it returns, the callback is never
    invoked again, even for an event that is already being fanned out.
    """

    def __init__(self, hub: "NotificationChannelHub", user_id: str, callback: EventCallback):
        self.id = str(uuid4())
        self.user_id = user_id
        self._hub = hub
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._hub._remove(self)

    async def deliver(self, event: RealtimeEvent) -> bool:
        if not self._active:
            return False
        await self._callback(event)
        return True


class NotificationChannelHub:
    """In-process publish/subscribe keyed by user ID."""

    def __init__(self):
        self._subscriptions: dict[str, dict[str, Subscription]] = {}

    def subscribe(self, user_id: str, callback: EventCallback) -> Subscription:
        """Register a callback for a user's events."""
        subscription = Subscription(self, user_id, callback)
        self._subscriptions.setdefault(user_id, {})[subscription.id] = subscription
        logger.debug(f"Subscribed {subscription.id} to notifications for {user_id}")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        user_subs = self._subscriptions.get(subscription.user_id)
        if not user_subs:
            return
        user_subs.pop(subscription.id, None)
        if not user_subs:
            del self._subscriptions[subscription.user_id]
        logger.debug(f"Unsubscribed {subscription.id} from {subscription.user_id}")

    def subscriber_count(self, user_id: str) -> int:
        return len(self._subscriptions.get(user_id, {}))

    async def publish(self, event: RealtimeEvent) -> int:
        """
        Deliver an event to every live subscription of its user.

        A failing subscriber is logged and skipped. Returns how many
        subscribers received the event.
        """
        targets = list(self._subscriptions.get(event.user_id, {}).values())
        delivered = 0

        for subscription in targets:
            try:
                if await subscription.deliver(event):
                    delivered += 1
            except Exception as e:
                logger.warning(
                    f"Subscriber {subscription.id} failed on {event.type} for {event.user_id}: {e}"
                )

        return delivered


class RedisNotificationBroker:
    """
    Cross-process fan-out over Redis pub/sub.

    ``publish`` writes to ``<prefix>:<user_id>``; a listener task relays every
    message on ``<prefix>:*`` into the local hub, so each process delivers
    to its own sessions.
    """

    def __init__(self, hub: NotificationChannelHub, redis: Redis, prefix: str = "notifications"):
        self.hub = hub
        self._redis = redis
        self._prefix = prefix
        self._pubsub = None
        self._listener: asyncio.Task | None = None

    def channel_for(self, user_id: str) -> str:
        return f"{self._prefix}:{user_id}"

    async def publish(self, event: RealtimeEvent) -> int:
        try:
            return await self._redis.publish(self.channel_for(event.user_id), event.model_dump_json())
        except RedisError as e:
            raise TransportError(
                message="Realtime channel unavailable",
                details={"error": str(e)},
            )

    @property
    def is_listening(self) -> bool:
        return self._listener is not None and not self._listener.done()

    async def start(self) -> None:
        self._pubsub = self._redis.pubsub()
        await self._pubsub.psubscribe(f"{self._prefix}:*")
        self._listener = asyncio.create_task(self._listen())
        self._listener.add_done_callback(self._on_listener_done)
        logger.info(f"Realtime broker listening on {self._prefix}:*")

    async def stop(self) -> None:
        if self._listener:
            if not self._listener.done():
                self._listener.cancel()
                try:
                    await self._listener
                except asyncio.CancelledError:
                    pass
            self._listener = None
        if self._pubsub is not None:
            await self._pubsub.aclose()
            self._pubsub = None
        logger.info("Realtime broker stopped")

    async def _listen(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "pmessage":
                    continue
                try:
                    event = RealtimeEvent.model_validate_json(message["data"])
                except ValueError as e:
                    logger.warning(f"Dropping malformed realtime message: {e}")
                    continue
                await self.hub.publish(event)
        except RedisError as e:
            logger.error(f"Realtime broker lost its subscription: {e}")

    def _on_listener_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Realtime broker listener crashed: {exc!r}")
