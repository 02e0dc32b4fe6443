"""
Pydantic schemas for web push subscriptions.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class PermissionState(StrEnum):
    """Browser notification permission."""

    GRANTED = "granted"
    DENIED = "denied"
    DEFAULT = "default"


class DevicePlatform(StrEnum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"


class DeviceInfo(BaseModel):
    """Device descriptor stored with a subscription."""

    platform: DevicePlatform = DevicePlatform.WEB
    browser: str | None = None
    os: str | None = None
    device_id: str | None = None
    user_agent: str | None = None


class PushKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class BrowserSubscriptionPayload(BaseModel):
    """The JSON form of a browser PushSubscription."""

    endpoint: str = Field(..., min_length=1)
    keys: PushKeys


class PushSubscribeRequest(BaseModel):
    """Push capability state reported by the client, plus its fresh subscription."""

    supported: bool = Field(default=True, description="Runtime supports push")
    permission: PermissionState = Field(default=PermissionState.DEFAULT)
    subscription: BrowserSubscriptionPayload | None = None
    user_agent: str | None = Field(None, max_length=1000)
    device_id: str | None = Field(None, max_length=255)


class PushUnsubscribeRequest(BaseModel):
    endpoint: str = Field(..., min_length=1)


class PushSubscriptionInfo(BaseModel):
    """A stored push subscription."""

    id: str
    endpoint: str
    device_info: DeviceInfo
    is_active: bool
    created_at: datetime
    last_used_at: datetime


class PushConfigResponse(BaseModel):
    """What a client needs to register its service worker and subscribe."""

    enabled: bool = Field(..., description="Whether the server has a VAPID key")
    vapid_public_key: str | None = None
    service_worker_path: str


class PushSubscribeResponse(BaseModel):
    """Outcome of a subscribe request; push being unavailable is not an error."""

    subscribed: bool
    subscription: PushSubscriptionInfo | None = None


class PushUnsubscribeResponse(BaseModel):
    """Outcome of an unsubscribe request."""

    success: bool
    endpoint: str
    message: str
