"""
Runtime wiring for the notification engine.

``NotificationEngine`` owns the database, the optional Redis client, the
realtime hub and the websocket connections for one process. The API
lifespan creates one and stores it on ``app.state``; tests build their own.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from redis.asyncio import Redis

from core.config import Settings, get_settings
from core.redis import close_redis, create_redis
from database import Database
from database.repositories import TemplateRepository

from .notification_service import NotificationService, NotificationServiceConfig
from .notification_session import NotificationSession
from .push import PushConfig, PushRuntime, PushSubscriptionManager
from .realtime import NotificationChannelHub, NotificationPublisher, RedisNotificationBroker
from .websocket_manager import WebSocketManager

logger = logging.getLogger(__name__)


class NotificationEngine:
    """
    Container for the long-lived collaborators of the notification engine.

    Args:
        settings: Application settings
        database: Database to use (built from settings when omitted)
        redis: Redis client for cross-process fan-out (connected on start
            when the redis realtime backend is configured)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        database: Database | None = None,
        redis: Redis | None = None,
    ):
        self.settings = settings or get_settings()
        self.database = database or Database.from_settings(self.settings)
        self.redis = redis
        self.hub = NotificationChannelHub()
        self.broker: RedisNotificationBroker | None = None
        self.websockets = WebSocketManager(push_manager_factory=self.push_manager)
        self._owns_redis = False

    @property
    def publisher(self) -> NotificationPublisher:
        return self.broker or self.hub

    async def start(self) -> None:
        if self.settings.database_create_tables:
            await self.database.create_tables()
            logger.info("Database tables created")

        if self.settings.notification_seed_templates:
            async with self.database.session() as session:
                added = await TemplateRepository(session).seed_defaults()
            if added:
                logger.info(f"Seeded {added} notification templates")

        if self.settings.is_redis_realtime:
            if self.redis is None:
                self.redis = await create_redis(self.settings)
                self._owns_redis = True
            self.broker = RedisNotificationBroker(
                self.hub, self.redis, prefix=self.settings.realtime_channel_prefix
            )
            await self.broker.start()

        logger.info(f"Notification engine started (realtime: {self.settings.realtime_backend})")

    async def stop(self) -> None:
        await self.websockets.close_all()
        if self.broker is not None:
            await self.broker.stop()
            self.broker = None
        if self._owns_redis:
            await close_redis(self.redis)
            self.redis = None
            self._owns_redis = False
        await self.database.close()
        logger.info("Notification engine stopped")

    # ============ Factories ============

    def notification_service(self) -> NotificationService:
        return NotificationService(
            self.database,
            publisher=self.publisher,
            config=NotificationServiceConfig.from_settings(self.settings),
        )

    def push_manager(self, runtime: PushRuntime) -> PushSubscriptionManager:
        return PushSubscriptionManager(
            self.database,
            runtime,
            config=PushConfig.from_settings(self.settings),
        )

    async def open_session(
        self,
        user_id: str,
        sender: Callable[[dict[str, Any]], Awaitable[Any]],
    ) -> NotificationSession | None:
        """Create and start a live session; None when its initial state cannot be loaded."""
        session = NotificationSession(
            user_id=user_id,
            service=self.notification_service(),
            hub=self.hub,
            sender=sender,
            max_toasts=self.settings.toast_max_visible,
            toast_duration=self.settings.toast_default_duration_seconds,
            page_size=self.settings.notification_default_page_size,
        )
        started = await session.start()
        if not started.success:
            await session.close()
            return None
        return session
