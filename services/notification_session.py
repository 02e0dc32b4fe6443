"""
Live notification state for one connected client.

A session caches the user's preferences, keeps the in-memory list and
unread counter, and reacts to realtime events: a new notification is
added once (by ID), re-checked against the cached preferences, then shown
as a toast and/or through push.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any
from uuid import UUID

from api.schemas.notifications import (
    CountResult,
    NotificationChannel,
    NotificationFilters,
    NotificationInfo,
    NotificationResult,
    NotificationStatus,
    OperationResult,
    RealtimeEvent,
    RealtimeEventType,
)
from api.schemas.preferences import NotificationPreferences
from api.schemas.websocket import WSMessageType, WSServerMessage
from utils.datetime import utcnow

from .eligibility import should_notify
from .notification_service import NotificationService
from .push import PushSubscriptionManager
from .realtime import NotificationChannelHub, Subscription
from .toast_manager import Toast, ToastManager, toast_from_notification

logger = logging.getLogger(__name__)

Sender = Callable[[dict[str, Any]], Awaitable[Any]]


class NotificationSession:
    """
    Per-connection notification state.

    Args:
        user_id: Owner of the session
        service: Orchestrator used for reads and state changes
        hub: Realtime hub the session subscribes to
        sender: Coroutine that delivers a server message to the client
        push_manager: Optional push manager for this client's runtime
        max_toasts: Toast queue bound
        toast_duration: Default toast auto-dismiss delay in seconds
        page_size: Number of notifications loaded on start
    """

    def __init__(
        self,
        user_id: str,
        service: NotificationService,
        hub: NotificationChannelHub,
        sender: Sender,
        push_manager: PushSubscriptionManager | None = None,
        max_toasts: int = 5,
        toast_duration: float = 5.0,
        page_size: int = 20,
    ):
        self.user_id = user_id
        self.service = service
        self.hub = hub
        self.push_manager = push_manager
        self.page_size = page_size
        self.toast_duration = toast_duration

        self.preferences: NotificationPreferences | None = None
        self.notifications: list[NotificationInfo] = []
        self.unread_count = 0
        self.toasts = ToastManager(
            max_toasts=max_toasts,
            default_duration=toast_duration,
            listener=self._on_toast_event,
        )

        self._sender = sender
        self._subscription: Subscription | None = None
        self._pending_sends: set[asyncio.Task] = set()
        self._closed = False

    @property
    def user_uuid(self) -> UUID:
        return UUID(self.user_id)

    @property
    def is_active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def start(self) -> OperationResult:
        """
        Load state, subscribe to the user's channel and send the initial snapshot.

        When the preferences or the first page cannot be loaded the client
        gets an error message, nothing is subscribed, and the failed result
        is returned.
        """
        preferences = await self.service.get_preferences(self.user_uuid)
        if not preferences.success:
            return await self._start_failed(preferences)
        listing = await self.service.get_notifications(
            self.user_uuid, NotificationFilters(limit=self.page_size)
        )
        if not listing.success:
            return await self._start_failed(listing)

        self.preferences = preferences.preferences
        self.notifications = listing.listing.notifications
        self.unread_count = listing.listing.unread_count

        self._subscription = self.hub.subscribe(self.user_id, self.handle_event)
        await self._send(
            WSMessageType.INIT,
            {
                "notifications": [n.model_dump(mode="json") for n in self.notifications],
                "unread_count": self.unread_count,
                "preferences": self.preferences.model_dump(mode="json"),
            },
        )
        return OperationResult(success=True)

    async def _start_failed(self, result: OperationResult) -> OperationResult:
        logger.error(f"Could not start notification session for {self.user_id}: {result.error.code}")
        await self._send(WSMessageType.ERROR, result.error.model_dump(mode="json", exclude_none=True))
        return result

    # ============ Realtime events ============

    async def handle_event(self, event: RealtimeEvent) -> None:
        if self._closed:
            return

        if event.type == RealtimeEventType.NEW_NOTIFICATION and event.notification:
            await self._on_new(event.notification)
        elif event.type == RealtimeEventType.NOTIFICATION_GROUPED and event.notification:
            await self._on_grouped(event.notification)
        elif event.type == RealtimeEventType.NOTIFICATION_READ:
            self._apply_read(event.notification_ids, event.unread_count)
            await self._send(
                WSMessageType.NOTIFICATION_READ,
                {"notification_ids": event.notification_ids, "unread_count": self.unread_count},
            )
        elif event.type == RealtimeEventType.NOTIFICATION_UPDATED and event.notification:
            self._replace(event.notification)
            if event.unread_count is not None:
                self.unread_count = max(0, event.unread_count)
            await self._send(
                WSMessageType.NOTIFICATION_UPDATED,
                {"notification": event.notification.model_dump(mode="json"), "unread_count": self.unread_count},
            )
        elif event.type == RealtimeEventType.NOTIFICATION_DELETED:
            self._remove(event.notification_ids, event.unread_count)
            await self._send(
                WSMessageType.NOTIFICATION_DELETED,
                {"notification_ids": event.notification_ids, "unread_count": self.unread_count},
            )
        elif event.type == RealtimeEventType.PREFERENCES_UPDATED:
            result = await self.service.get_preferences(self.user_uuid)
            if not result.success:
                logger.warning(f"Keeping cached preferences for {self.user_id}: {result.error.code}")
                return
            self.preferences = result.preferences
            await self._send(
                WSMessageType.PREFERENCES_UPDATED,
                {"preferences": self.preferences.model_dump(mode="json")},
            )

    async def _on_new(self, notification: NotificationInfo) -> None:
        if any(existing.id == notification.id for existing in self.notifications):
            logger.debug(f"Duplicate notification {notification.id} ignored")
            return

        self.notifications.insert(0, notification)
        if notification.status == NotificationStatus.UNREAD:
            self.unread_count += 1

        await self._send(
            WSMessageType.NOTIFICATION_NEW,
            {"notification": notification.model_dump(mode="json"), "unread_count": self.unread_count},
        )
        await self._deliver(notification)

    async def _on_grouped(self, notification: NotificationInfo) -> None:
        if not self._replace(notification):
            await self._on_new(notification)
            return

        await self._send(
            WSMessageType.NOTIFICATION_UPDATED,
            {"notification": notification.model_dump(mode="json"), "unread_count": self.unread_count},
        )
        await self._deliver(notification)

    async def _deliver(self, notification: NotificationInfo) -> None:
        """Show a toast and/or a push notification if the cached preferences allow it."""
        if should_notify(self.preferences, notification.type, notification.priority, NotificationChannel.IN_APP):
            self.toasts.add_toast(toast_from_notification(notification, self.toast_duration))

        if self.push_manager is None:
            return
        if not should_notify(self.preferences, notification.type, notification.priority, NotificationChannel.PUSH):
            return
        if await self.push_manager.is_subscribed():
            await self.push_manager.show_notification(notification)

    def _replace(self, notification: NotificationInfo) -> bool:
        for index, existing in enumerate(self.notifications):
            if existing.id == notification.id:
                self.notifications[index] = notification
                return True
        return False

    def _apply_read(self, notification_ids: list[str], unread_count: int | None = None) -> None:
        ids = set(notification_ids)
        newly_read = 0
        for index, existing in enumerate(self.notifications):
            if existing.id in ids and existing.status == NotificationStatus.UNREAD:
                self.notifications[index] = existing.model_copy(
                    update={"status": NotificationStatus.READ, "read_at": utcnow()}
                )
                newly_read += 1

        if unread_count is not None:
            self.unread_count = max(0, unread_count)
        else:
            self.unread_count = max(0, self.unread_count - newly_read)

    def _remove(self, notification_ids: list[str], unread_count: int | None = None) -> None:
        ids = set(notification_ids)
        removed_unread = sum(
            1 for n in self.notifications if n.id in ids and n.status == NotificationStatus.UNREAD
        )
        self.notifications = [n for n in self.notifications if n.id not in ids]
        for toast in self.toasts.toasts:
            if toast.notification_id in ids:
                self.toasts.remove_toast(toast.id)

        if unread_count is not None:
            self.unread_count = max(0, unread_count)
        else:
            self.unread_count = max(0, self.unread_count - removed_unread)

    # ============ Client actions ============

    async def mark_as_read(self, notification_ids: list[str] | None = None) -> CountResult:
        """Mark notifications read; all of them when no IDs are given."""
        ids = [UUID(i) for i in notification_ids] if notification_ids is not None else None
        result = await self.service.mark_as_read(self.user_uuid, ids)
        if result.success:
            if notification_ids is None:
                notification_ids = [n.id for n in self.notifications]
            self._apply_read(notification_ids, result.unread_count)
        return result

    async def record_action(self, notification_id: str, action_id: str | None = None) -> NotificationResult:
        result = await self.service.record_action(self.user_uuid, UUID(notification_id), action_id)
        if result.success and result.notification:
            self._replace(result.notification)
        return result

    def dismiss_toast(self, toast_id: str) -> bool:
        return self.toasts.dismiss_toast(toast_id)

    def set_push_manager(self, push_manager: PushSubscriptionManager | None) -> None:
        self.push_manager = push_manager

    async def close(self) -> None:
        """Stop receiving events and finish every visible toast."""
        if self._closed:
            return
        self._closed = True
        if self._subscription is not None:
            self._subscription.unsubscribe()
        self.toasts.clear()

        for task in list(self._pending_sends):
            task.cancel()
        self._pending_sends.clear()
        logger.debug(f"Notification session closed for {self.user_id}")

    # ============ Outgoing messages ============

    def _on_toast_event(self, toast: Toast, event: str) -> None:
        if self._closed:
            return
        if event == "added":
            message = (WSMessageType.TOAST_SHOW, toast.to_dict())
        else:
            message = (WSMessageType.TOAST_REMOVED, {"id": toast.id, "reason": event})

        task = asyncio.get_running_loop().create_task(self._send(*message))
        self._pending_sends.add(task)
        task.add_done_callback(self._pending_sends.discard)

    async def _send(self, type: WSMessageType, payload: dict[str, Any]) -> None:
        message = WSServerMessage(type=type, payload=payload).model_dump(mode="json")
        try:
            await self._sender(message)
        except Exception as e:
            logger.warning(f"Failed to send {type} to {self.user_id}: {e}")
