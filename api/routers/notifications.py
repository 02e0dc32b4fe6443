"""
Notifications router.

Consumer endpoints (current user):
- GET /api/notifications - List notifications
- GET /api/notifications/unread-count - Get unread count
- GET /api/notifications/history - Audit trail
- GET /api/notifications/{id} - Get one notification
- POST /api/notifications/mark-read - Mark notifications as read
- POST /api/notifications/mark-all-read - Mark all as read
- POST /api/notifications/archive-old - Archive old read notifications
- POST /api/notifications/{id}/dismiss - Archive one notification
- POST /api/notifications/{id}/actions - Record a click or action
- DELETE /api/notifications/{id} - Delete notification

Producer endpoints (admin role):
- POST /api/notifications - Create a notification
- POST /api/notifications/from-template - Create from a stored template
- POST /api/notifications/bulk - Send to many recipients
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_db_user_id, get_notification_service
from api.schemas.notifications import (
    ArchiveOldRequest,
    BulkNotificationRequest,
    BulkNotificationResult,
    CountResult,
    CreateNotificationRequest,
    HistoryEntry,
    ListNotificationsResponse,
    MarkReadRequest,
    NotificationCategory,
    NotificationFilters,
    NotificationInfo,
    NotificationPriority,
    NotificationStatus,
    NotificationType,
    RecordActionRequest,
    SendNotificationResult,
    TemplateNotificationRequest,
    UnreadCountResponse,
)
from core.auth import AppUser, require_admin
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


# ============ Consumer Endpoints ============


@router.get("", response_model=ListNotificationsResponse)
async def list_notifications(
    status_filter: NotificationStatus | None = Query(default=None, alias="status"),
    type: NotificationType | None = Query(default=None),
    priority: NotificationPriority | None = Query(default=None),
    category: NotificationCategory | None = Query(default=None),
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=20, ge=1, le=100),
    cursor: str | None = Query(default=None, max_length=200),
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """List notifications for the current user, newest first."""
    filters = NotificationFilters(
        status=status_filter,
        type=type,
        priority=priority,
        category=category,
        start_date=start_date,
        end_date=end_date,
        search=search,
        limit=limit,
        cursor=cursor,
    )
    result = await service.get_notifications(user_id, filters)
    result.raise_for_error()
    return result.listing


@router.get("/unread-count", response_model=UnreadCountResponse)
async def get_unread_count(
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Get the number of unread notifications."""
    result = await service.get_unread_count(user_id)
    result.raise_for_error()
    return UnreadCountResponse(unread_count=result.unread_count)


@router.get("/history", response_model=list[HistoryEntry])
async def get_history(
    notification_id: UUID | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Get the audit trail, optionally for one notification."""
    result = await service.get_notification_history(user_id, notification_id, limit=limit)
    result.raise_for_error()
    return result.entries


@router.post("/mark-read", response_model=CountResult)
async def mark_as_read(
    request: MarkReadRequest,
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark specific notifications as read (all of them when no IDs are sent)."""
    result = await service.mark_as_read(user_id, request.notification_ids)
    result.raise_for_error()
    return result


@router.post("/mark-all-read", response_model=CountResult)
async def mark_all_as_read(
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark all notifications as read."""
    result = await service.mark_all_as_read(user_id)
    result.raise_for_error()
    return result


@router.post("/archive-old", response_model=CountResult)
async def archive_old(
    request: ArchiveOldRequest,
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Archive read notifications older than the given number of days."""
    result = await service.archive_old_notifications(user_id, days_old=request.days_old)
    result.raise_for_error()
    return result


# ============ Producer Endpoints ============


@router.post("", response_model=SendNotificationResult, status_code=status.HTTP_201_CREATED)
async def create_notification(
    request: CreateNotificationRequest,
    admin: AppUser = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    """Create a notification for a recipient."""
    result = await service.create_notification(request)
    result.raise_for_error()
    return result


@router.post("/from-template", response_model=SendNotificationResult, status_code=status.HTTP_201_CREATED)
async def create_from_template(
    request: TemplateNotificationRequest,
    admin: AppUser = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    """Create a notification from a stored template."""
    result = await service.create_from_template(
        request.user_id,
        request.template_name,
        variables=request.variables,
        extra=request.extra,
    )
    result.raise_for_error()
    return result


@router.post("/bulk", response_model=BulkNotificationResult)
async def send_bulk(
    request: BulkNotificationRequest,
    admin: AppUser = Depends(require_admin),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Send one notification to many recipients.

    Always 200: per-recipient failures are reported in the body.
    """
    logger.info(f"Bulk send by {admin.id} to {len(request.user_ids)} recipients")
    return await service.send_bulk_notification(request.user_ids, request.notification)


# ============ Single Notification ============


@router.get("/{notification_id}", response_model=NotificationInfo)
async def get_notification(
    notification_id: UUID,
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Get a single notification."""
    result = await service.get_notification(user_id, notification_id)
    result.raise_for_error()
    return result.notification


@router.post("/{notification_id}/dismiss", response_model=NotificationInfo)
async def dismiss_notification(
    notification_id: UUID,
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Dismiss (archive) a notification."""
    result = await service.dismiss_notification(user_id, notification_id)
    result.raise_for_error()
    return result.notification


@router.post("/{notification_id}/actions", response_model=NotificationInfo)
async def record_action(
    notification_id: UUID,
    request: RecordActionRequest,
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Record a click or an action button press."""
    result = await service.record_action(user_id, notification_id, request.action_id)
    result.raise_for_error()
    return result.notification


@router.delete("/{notification_id}", response_model=CountResult)
async def delete_notification(
    notification_id: UUID,
    user_id: UUID = Depends(get_db_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """Permanently delete a notification."""
    result = await service.delete_notification(user_id, notification_id)
    result.raise_for_error()
    return result
