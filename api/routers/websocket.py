"""
WebSocket router for live notifications.

Endpoint:
- WS /api/ws - WebSocket connection
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from core.auth import AppUser, user_from_token
from core.exceptions import AppException
from database.repositories import UserRepository
from services.notification_engine import NotificationEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


def authenticate_websocket(token: str | None) -> tuple[AppUser | None, str | None]:
    """
    Authenticate a WebSocket connection.

    Returns (user, error_message).
    """
    if not token:
        return None, "Authentication required"

    try:
        return user_from_token(token), None
    except AppException as e:
        logger.warning(f"WebSocket auth error: {e.message}")
        return None, e.message


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str | None = Query(default=None),
):
    """
    WebSocket endpoint for live notifications.

    Authentication:
    - Pass JWT token as query parameter: /api/ws?token=xxx

    Message Protocol:
    - Client sends JSON messages with "type" and "payload" fields
    - Server responds with JSON messages with "type", "payload", and "timestamp" fields

    Client -> Server Messages:
    - {"type": "ping"} - Heartbeat
    - {"type": "ack", "payload": {"notification_ids": [...]}} - Mark as read
    - {"type": "mark_all_read"}
    - {"type": "toast:dismiss", "payload": {"toast_id": "..."}}
    - {"type": "action", "payload": {"notification_id": "...", "action_id": "..."}}
    - {"type": "push:state", "payload": {"supported": true, "permission": "granted", "endpoint": "..."}}

    Server -> Client Messages:
    - {"type": "connected", "payload": {"connection_id": "...", "user_id": "..."}}
    - {"type": "init", "payload": {"notifications": [...], "unread_count": 0, "preferences": {...}}}
    - {"type": "notification:new" | "notification:read" | "notification:updated" | "notification:deleted"}
    - {"type": "toast:show" | "toast:removed", "payload": {...}}
    - {"type": "push:show", "payload": {"title": "...", "options": {...}}}
    - {"type": "preferences:updated", "payload": {"preferences": {...}}}
    """
    engine: NotificationEngine = websocket.app.state.engine
    ws_manager = engine.websockets

    # Authenticate
    user, auth_error = authenticate_websocket(token)
    if auth_error:
        await websocket.accept()
        await websocket.send_json(
            {
                "type": "error",
                "payload": {
                    "code": "auth_error",
                    "message": auth_error,
                },
            }
        )
        await websocket.close(code=4001, reason="Authentication failed")
        return

    # Connect
    connection_id = await ws_manager.connect(websocket, user.id)

    async def send(message: dict[str, Any]) -> bool:
        return await ws_manager.send_to_connection(connection_id, message)

    try:
        async with engine.database.session() as db_session:
            await UserRepository(db_session).create_or_update(
                user.uuid, email=user.email, display_name=user.name
            )
        notification_session = await engine.open_session(user.id, send)
        if notification_session is None:
            await websocket.close(code=1011, reason="Notifications unavailable")
            return
        await ws_manager.attach_session(connection_id, notification_session)

        while True:
            # Receive message
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await send(
                    {
                        "type": "error",
                        "payload": {
                            "code": "invalid_json",
                            "message": "Invalid JSON message",
                        },
                    },
                )
                continue

            # Handle message
            await ws_manager.handle_message(connection_id, message)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        await ws_manager.disconnect(connection_id)
