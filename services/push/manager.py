"""
Push subscription lifecycle.

Bridges a user-granted permission, a background-agent registration and the
stored subscription record. Every capability problem (unsupported runtime,
denied permission, no registration) degrades to ``None``/``False``; push is
always optional for callers.
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from api.schemas.notifications import NotificationInfo, NotificationPriority
from api.schemas.push import DeviceInfo, PermissionState, PushSubscriptionInfo
from core.config import Settings
from core.exceptions import CapabilityError, TransportError
from database import Database
from database.models import PushSubscription
from database.repositories import PushSubscriptionRepository
from utils.datetime import ensure_utc

from .base import BrowserSubscription, PushRegistration, PushRuntime
from .device import parse_device_info

logger = logging.getLogger(__name__)


@dataclass
class PushConfig:
    """Push display and registration settings."""

    vapid_public_key: str | None = None
    service_worker_path: str = "/sw.js"
    default_icon: str = "/icons/icon-192x192.png"
    default_badge: str = "/icons/badge-72x72.png"

    @classmethod
    def from_settings(cls, settings: Settings) -> "PushConfig":
        return cls(
            vapid_public_key=settings.push_vapid_public_key,
            service_worker_path=settings.push_service_worker_path,
            default_icon=settings.push_default_icon,
            default_badge=settings.push_default_badge,
        )


def subscription_to_info(record: PushSubscription) -> PushSubscriptionInfo:
    return PushSubscriptionInfo(
        id=str(record.id),
        endpoint=record.endpoint,
        device_info=DeviceInfo.model_validate(record.device_info or {}),
        is_active=record.is_active,
        created_at=ensure_utc(record.created_at),
        last_used_at=ensure_utc(record.last_used_at),
    )


class PushSubscriptionManager:
    """Manages one runtime's push subscription and the user's stored endpoints."""

    def __init__(
        self,
        database: Database,
        runtime: PushRuntime,
        config: PushConfig | None = None,
    ):
        self.database = database
        self.runtime = runtime
        self.config = config or PushConfig()

    # ============ Capability ============

    @property
    def is_supported(self) -> bool:
        return self.runtime.is_supported

    @property
    def permission(self) -> PermissionState:
        if not self.runtime.is_supported:
            return PermissionState.DENIED
        return self.runtime.permission

    async def request_permission(self) -> PermissionState | None:
        """Ask for notification permission; None when push is unsupported."""
        if not self.runtime.is_supported:
            return None
        return await self.runtime.request_permission()

    async def _require_permission(self) -> None:
        if not self.runtime.is_supported:
            raise CapabilityError(message="Push is not supported in this environment")

        permission = self.runtime.permission
        if permission == PermissionState.DEFAULT:
            permission = await self.runtime.request_permission()
        if permission != PermissionState.GRANTED:
            raise CapabilityError(
                message="Notification permission not granted",
                details={"permission": str(permission)},
            )

    async def _require_registration(self) -> PushRegistration:
        registration = await self.runtime.get_registration()
        if registration is None:
            registration = await self.runtime.register(self.config.service_worker_path)
        if registration is None:
            raise CapabilityError(message="Background agent could not be registered")
        return registration

    # ============ Subscription ============

    async def subscribe(self, user_id: UUID) -> PushSubscriptionInfo | None:
        """
        Subscribe this runtime for push and store the endpoint.

        Any existing browser subscription is revoked and replaced with a
        fresh one. Re-subscribing the same endpoint updates its row.

        Returns:
            The stored subscription, or None if push is unavailable
        """
        try:
            await self._require_permission()
            registration = await self._require_registration()

            existing = await registration.get_subscription()
            if existing is not None:
                await self._revoke(existing)

            subscription = await registration.subscribe(self.config.vapid_public_key)
        except CapabilityError as e:
            logger.info(f"Push unavailable for {user_id}: {e.message}")
            return None
        except Exception as e:
            logger.warning(f"Push subscription failed for {user_id}: {e}")
            return None

        device_info = parse_device_info(self.runtime.user_agent, self.runtime.device_id)

        try:
            async with self.database.session() as session:
                record = await PushSubscriptionRepository(session).upsert(
                    user_id=user_id,
                    endpoint=subscription.endpoint,
                    p256dh=subscription.keys.p256dh,
                    auth=subscription.keys.auth,
                    device_info=device_info.model_dump(mode="json"),
                )
                info = subscription_to_info(record)
        except SQLAlchemyError as e:
            logger.error(f"Failed to store push subscription for {user_id}: {e}")
            return None

        logger.info(f"Push subscription stored for {user_id} ({device_info.platform})")
        return info

    async def unsubscribe(self, user_id: UUID) -> bool:
        """
        Revoke this runtime's subscription and delete its stored record.

        A failed revoke does not prevent the deletion.
        """
        registration = await self.runtime.get_registration()
        subscription = await registration.get_subscription() if registration else None
        if subscription is None:
            return False

        await self._revoke(subscription)

        try:
            async with self.database.session() as session:
                deleted = await PushSubscriptionRepository(session).delete_by_user_and_endpoint(
                    user_id, subscription.endpoint
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to delete push subscription for {user_id}: {e}")
            return False

        logger.info(f"Push subscription removed for {user_id} ({deleted} rows)")
        return True

    async def is_subscribed(self) -> bool:
        if not self.runtime.is_supported:
            return False
        registration = await self.runtime.get_registration()
        if registration is None:
            return False
        return await registration.get_subscription() is not None

    async def get_user_subscriptions(self, user_id: UUID) -> list[PushSubscriptionInfo]:
        """List the user's active subscriptions across all devices."""
        try:
            async with self.database.session() as session:
                records = await PushSubscriptionRepository(session).list_active_by_user(user_id)
                return [subscription_to_info(record) for record in records]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list push subscriptions for {user_id}: {e}")
            raise TransportError(message="Push subscription store unavailable")

    async def _revoke(self, subscription: BrowserSubscription) -> None:
        try:
            await subscription.unsubscribe()
        except Exception as e:
            logger.warning(f"Failed to revoke push subscription {subscription.endpoint}: {e}")

    # ============ Display ============

    def build_display_options(self, notification: NotificationInfo) -> dict[str, Any]:
        """Map a notification onto the background agent's display options."""
        options: dict[str, Any] = {
            "body": notification.message,
            "icon": notification.icon or self.config.default_icon,
            "badge": self.config.default_badge,
            "data": {
                "notificationId": notification.id,
                "link": notification.link,
                "actions": [action.model_dump(mode="json") for action in notification.actions],
                **notification.data,
            },
            "actions": [
                {"action": action.id, "title": action.label}
                for action in notification.actions
            ],
            "requireInteraction": notification.priority == NotificationPriority.URGENT,
            "tag": notification.group_id or notification.id,
            "renotify": bool(notification.group_id),
        }
        if notification.image_url:
            options["image"] = notification.image_url
        return options

    async def show_notification(self, notification: NotificationInfo) -> bool:
        """Display a notification through the background agent."""
        if not self.runtime.is_supported or self.runtime.permission != PermissionState.GRANTED:
            return False

        registration = await self.runtime.get_registration()
        if registration is None:
            return False

        try:
            await registration.show_notification(
                notification.title,
                self.build_display_options(notification),
            )
        except Exception as e:
            logger.warning(f"Failed to show push notification {notification.id}: {e}")
            return False
        return True
