"""
Web push router.

Endpoints:
- GET /api/push/config - VAPID key and service worker path
- POST /api/push/subscribe - Store the subscription the browser reported
- POST /api/push/unsubscribe - Remove a stored subscription
- GET /api/push/subscriptions - List the user's active subscriptions
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Header

from api.dependencies import get_db_user_id, get_engine
from api.schemas.push import (
    PermissionState,
    PushConfigResponse,
    PushSubscribeRequest,
    PushSubscribeResponse,
    PushSubscriptionInfo,
    PushUnsubscribeRequest,
    PushUnsubscribeResponse,
)
from core.config import Settings, get_settings
from services.notification_engine import NotificationEngine
from services.push import ClientPushRuntime, ReportedSubscription

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/push", tags=["push"])


@router.get("/config", response_model=PushConfigResponse)
async def get_push_config(settings: Settings = Depends(get_settings)):
    """Get what the client needs to register its service worker."""
    return PushConfigResponse(
        enabled=bool(settings.push_vapid_public_key),
        vapid_public_key=settings.push_vapid_public_key,
        service_worker_path=settings.push_service_worker_path,
    )


@router.post("/subscribe", response_model=PushSubscribeResponse)
async def subscribe(
    request: PushSubscribeRequest,
    user_agent: str | None = Header(None),
    user_id: UUID = Depends(get_db_user_id),
    engine: NotificationEngine = Depends(get_engine),
):
    """
    Store the client's push subscription.

    Returns ``subscribed: false`` when push is unsupported or not permitted.
    """
    subscription = None
    if request.subscription is not None:
        subscription = ReportedSubscription(
            request.subscription.endpoint,
            p256dh=request.subscription.keys.p256dh,
            auth=request.subscription.keys.auth,
        )

    runtime = ClientPushRuntime(
        supported=request.supported,
        permission=request.permission,
        subscription=subscription,
        user_agent=request.user_agent or user_agent,
        device_id=request.device_id,
    )
    info = await engine.push_manager(runtime).subscribe(user_id)
    return PushSubscribeResponse(subscribed=info is not None, subscription=info)


@router.post("/unsubscribe", response_model=PushUnsubscribeResponse)
async def unsubscribe(
    request: PushUnsubscribeRequest,
    user_id: UUID = Depends(get_db_user_id),
    engine: NotificationEngine = Depends(get_engine),
):
    """Remove the subscription for an endpoint."""
    runtime = ClientPushRuntime.with_active_subscription(request.endpoint)
    removed = await engine.push_manager(runtime).unsubscribe(user_id)
    return PushUnsubscribeResponse(
        success=removed,
        endpoint=request.endpoint,
        message="Push subscription removed" if removed else "Push subscription could not be removed",
    )


@router.get("/subscriptions", response_model=list[PushSubscriptionInfo])
async def list_subscriptions(
    user_id: UUID = Depends(get_db_user_id),
    engine: NotificationEngine = Depends(get_engine),
):
    """List the user's active push subscriptions across devices."""
    runtime = ClientPushRuntime(supported=False, permission=PermissionState.DEFAULT)
    return await engine.push_manager(runtime).get_user_subscriptions(user_id)
