"""
Pydantic schemas for WebSocket messages.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from utils.datetime import utcnow

from .push import PermissionState


class WSMessageType(StrEnum):
    """WebSocket message types."""

    # Client → Server
    PING = "ping"
    ACK = "ack"
    MARK_ALL_READ = "mark_all_read"
    TOAST_DISMISS = "toast:dismiss"
    ACTION = "action"
    PUSH_STATE = "push:state"

    # Server → Client
    CONNECTED = "connected"
    PONG = "pong"
    ERROR = "error"
    INIT = "init"

    # Notification events
    NOTIFICATION_NEW = "notification:new"
    NOTIFICATION_READ = "notification:read"
    NOTIFICATION_UPDATED = "notification:updated"
    NOTIFICATION_DELETED = "notification:deleted"
    UNREAD_COUNT = "unread:count"
    PREFERENCES_UPDATED = "preferences:updated"

    # Toasts and push display
    TOAST_SHOW = "toast:show"
    TOAST_REMOVED = "toast:removed"
    PUSH_SHOW = "push:show"


# ============ Client → Server Messages ============


class WSClientMessage(BaseModel):
    """Base client message."""

    type: WSMessageType = Field(..., description="Message type")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Message payload",
    )


class AckPayload(BaseModel):
    """Payload for ack message (mark as read)."""

    notification_ids: list[str] = Field(..., min_length=1, max_length=100)


class ToastDismissPayload(BaseModel):
    toast_id: str = Field(..., description="Toast to dismiss")


class ActionPayload(BaseModel):
    """Payload for a notification action click."""

    notification_id: str = Field(..., description="Notification ID")
    action_id: str | None = Field(None, description="Action ID; omitted for a plain click")


class PushStatePayload(BaseModel):
    """Push capability of the connected browser."""

    supported: bool = False
    permission: PermissionState = PermissionState.DEFAULT
    endpoint: str | None = None
    user_agent: str | None = None


# ============ Server → Client Messages ============


class WSServerMessage(BaseModel):
    """Base server message."""

    type: WSMessageType = Field(..., description="Message type")
    payload: dict[str, Any] = Field(
        default_factory=dict,
        description="Message payload",
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="Server timestamp",
    )


class ConnectedPayload(BaseModel):
    """Payload for connected message."""

    connection_id: str = Field(..., description="WebSocket connection ID")
    user_id: str = Field(..., description="Authenticated user ID")
    server_time: int = Field(
        ...,
        description="Server time as Unix timestamp (ms)",
    )


class PongPayload(BaseModel):
    """Payload for pong message."""

    server_time: int = Field(
        ...,
        description="Server time as Unix timestamp (ms)",
    )


class ErrorPayload(BaseModel):
    """Payload for error message."""

    code: str = Field(..., description="Error code")
    message: str = Field(..., description="Error message")
