"""
WebSocket connection manager for live notification sessions.

Handles WebSocket connections, their notification sessions, and routing of
client messages.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import uuid4

from fastapi import WebSocket
from pydantic import ValidationError as PydanticValidationError

from api.schemas.push import PermissionState
from api.schemas.websocket import (
    AckPayload,
    ActionPayload,
    PushStatePayload,
    ToastDismissPayload,
    WSClientMessage,
    WSMessageType,
)
from utils.datetime import utcnow

from .notification_session import NotificationSession
from .push import ClientPushRuntime, PushSubscriptionManager

logger = logging.getLogger(__name__)

PushManagerFactory = Callable[[ClientPushRuntime], PushSubscriptionManager]


@dataclass
class Connection:
    """Represents a WebSocket connection."""

    id: str
    websocket: WebSocket
    user_id: str
    session: NotificationSession | None = None
    connected_at: datetime = field(default_factory=utcnow)
    last_ping: datetime = field(default_factory=utcnow)


class WebSocketManager:
    """
    Manages WebSocket connections and message routing.

    Features:
    - Connection management (connect/disconnect)
    - One notification session per connection
    - Heartbeat/ping-pong
    - Client push capability reports

    Args:
        push_manager_factory: Builds a push manager for a client-reported runtime
    """

    def __init__(self, push_manager_factory: PushManagerFactory | None = None):
        self._connections: dict[str, Connection] = {}
        self._user_connections: dict[str, set[str]] = {}
        self._lock = asyncio.Lock()
        self._push_manager_factory = push_manager_factory

    @property
    def connection_count(self) -> int:
        """Get the number of active connections."""
        return len(self._connections)

    @property
    def user_count(self) -> int:
        """Get the number of distinct users with at least one connection."""
        return len(self._user_connections)

    def get_connection(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    async def connect(self, websocket: WebSocket, user_id: str) -> str:
        """
        Accept a new WebSocket connection.

        Returns the connection ID.
        """
        await websocket.accept()

        connection_id = str(uuid4())
        connection = Connection(id=connection_id, websocket=websocket, user_id=user_id)

        async with self._lock:
            self._connections[connection_id] = connection
            self._user_connections.setdefault(user_id, set()).add(connection_id)

        logger.info(f"WebSocket connected: {connection_id} (user: {user_id})")

        await self._send(
            websocket,
            {
                "type": WSMessageType.CONNECTED.value,
                "payload": {
                    "connection_id": connection_id,
                    "user_id": user_id,
                    "server_time": int(time.time() * 1000),
                },
            },
        )

        return connection_id

    async def attach_session(self, connection_id: str, session: NotificationSession) -> None:
        """Bind a started notification session to its connection."""
        connection = self._connections.get(connection_id)
        if connection is None:
            await session.close()
            return
        connection.session = session

    async def disconnect(self, connection_id: str) -> None:
        """Disconnect a WebSocket connection and close its session."""
        async with self._lock:
            connection = self._connections.pop(connection_id, None)
            if not connection:
                return

            user_connections = self._user_connections.get(connection.user_id)
            if user_connections is not None:
                user_connections.discard(connection_id)
                if not user_connections:
                    del self._user_connections[connection.user_id]

        if connection.session is not None:
            await connection.session.close()

        logger.info(f"WebSocket disconnected: {connection_id}")

    async def close_all(self) -> None:
        for connection_id in list(self._connections):
            await self.disconnect(connection_id)

    async def send_to_connection(self, connection_id: str, message: dict[str, Any]) -> bool:
        """Send a message to a specific connection."""
        connection = self._connections.get(connection_id)
        if not connection:
            return False

        return await self._send(connection.websocket, message)

    async def handle_ping(self, connection_id: str) -> None:
        """Handle a ping message from a client."""
        connection = self._connections.get(connection_id)
        if connection:
            connection.last_ping = utcnow()

        await self.send_to_connection(
            connection_id,
            {
                "type": WSMessageType.PONG.value,
                "payload": {"server_time": int(time.time() * 1000)},
            },
        )

    async def handle_message(self, connection_id: str, message: dict[str, Any]) -> None:
        """Handle an incoming WebSocket message."""
        connection = self._connections.get(connection_id)
        if connection is None:
            return

        try:
            parsed = WSClientMessage.model_validate(message)
        except PydanticValidationError:
            await self._send_error(
                connection_id,
                "unknown_message_type",
                f"Unknown message type: {message.get('type')}",
            )
            return

        if parsed.type == WSMessageType.PING:
            await self.handle_ping(connection_id)
            return

        session = connection.session
        if session is None:
            await self._send_error(connection_id, "session_not_ready", "Notification session not started")
            return

        try:
            if parsed.type == WSMessageType.ACK:
                payload = AckPayload.model_validate(parsed.payload)
                result = await session.mark_as_read(payload.notification_ids)
                if not result.success:
                    await self._send_error(connection_id, result.error.code, result.error.message)

            elif parsed.type == WSMessageType.MARK_ALL_READ:
                result = await session.mark_as_read()
                if not result.success:
                    await self._send_error(connection_id, result.error.code, result.error.message)

            elif parsed.type == WSMessageType.TOAST_DISMISS:
                payload = ToastDismissPayload.model_validate(parsed.payload)
                session.dismiss_toast(payload.toast_id)

            elif parsed.type == WSMessageType.ACTION:
                payload = ActionPayload.model_validate(parsed.payload)
                result = await session.record_action(payload.notification_id, payload.action_id)
                if not result.success:
                    await self._send_error(connection_id, result.error.code, result.error.message)

            elif parsed.type == WSMessageType.PUSH_STATE:
                payload = PushStatePayload.model_validate(parsed.payload)
                session.set_push_manager(self._build_push_manager(connection_id, payload))

            else:
                await self._send_error(
                    connection_id,
                    "unknown_message_type",
                    f"Unknown message type: {parsed.type}",
                )
        except (PydanticValidationError, ValueError) as e:
            await self._send_error(connection_id, "invalid_payload", str(e))

    def _build_push_manager(
        self,
        connection_id: str,
        state: PushStatePayload,
    ) -> PushSubscriptionManager | None:
        if self._push_manager_factory is None or not state.supported:
            return None

        async def display(title: str, options: dict[str, Any]) -> None:
            await self.send_to_connection(
                connection_id,
                {"type": WSMessageType.PUSH_SHOW.value, "payload": {"title": title, "options": options}},
            )

        if state.endpoint and state.permission == PermissionState.GRANTED:
            runtime = ClientPushRuntime.with_active_subscription(
                state.endpoint,
                permission=state.permission,
                user_agent=state.user_agent,
                display=display,
            )
        else:
            runtime = ClientPushRuntime(
                supported=True,
                permission=state.permission,
                user_agent=state.user_agent,
                display=display,
            )
        return self._push_manager_factory(runtime)

    async def _send_error(self, connection_id: str, code: str, message: str) -> None:
        await self.send_to_connection(
            connection_id,
            {
                "type": WSMessageType.ERROR.value,
                "payload": {"code": code, "message": message},
            },
        )

    async def _send(self, websocket: WebSocket, message: dict[str, Any]) -> bool:
        """Send a message to a WebSocket."""
        try:
            if "timestamp" not in message:
                message["timestamp"] = utcnow().isoformat()

            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.warning(f"Failed to send WebSocket message: {e}")
            return False
