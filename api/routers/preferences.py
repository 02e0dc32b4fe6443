"""
Notification preferences router.

Endpoints:
- GET /api/notifications/preferences - Get preferences (defaults on first access)
- PATCH /api/notifications/preferences - Partially update preferences
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from api.dependencies import get_db_user_id, get_notification_service
from api.schemas.preferences import NotificationPreferences, PreferencesUpdateRequest
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications/preferences", tags=["preferences"])


@router.get("", response_model=NotificationPreferences)
async def get_preferences(
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Get the current user's notification preferences."""
    result = await service.get_preferences(user_id)
    result.raise_for_error()
    return result.preferences


@router.patch("", response_model=NotificationPreferences)
async def update_preferences(
    request: PreferencesUpdateRequest,
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Merge a partial update into the stored preferences.

    Only the fields sent are changed; nested blocks merge key by key.
    """
    result = await service.update_preferences(user_id, request)
    result.raise_for_error()
    logger.info(f"Preferences updated for {user_id}")
    return result.preferences
