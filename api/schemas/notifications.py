"""
Pydantic schemas for notifications API.
"""

import base64
import binascii
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, PrivateAttr, field_validator

from core.exceptions import AppException, PartialBatchFailure
from utils.datetime import ensure_utc, utcnow

from .common import ErrorDetail


class NotificationType(StrEnum):
    """Types of notifications."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    SYSTEM = "system"
    ESSAY_GRADED = "essay_graded"
    FLASHCARD_DUE = "flashcard_due"
    STUDY_REMINDER = "study_reminder"
    COLLABORATION = "collaboration"
    ACHIEVEMENT = "achievement"
    MESSAGE = "message"


class NotificationPriority(StrEnum):
    """Priority on the ordinal scale low < normal < high < urgent."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        return PRIORITY_ORDER[self]


PRIORITY_ORDER: dict[NotificationPriority, int] = {
    NotificationPriority.LOW: 0,
    NotificationPriority.NORMAL: 1,
    NotificationPriority.HIGH: 2,
    NotificationPriority.URGENT: 3,
}


class NotificationStatus(StrEnum):
    """Lifecycle status of a stored notification."""

    UNREAD = "unread"
    READ = "read"
    ARCHIVED = "archived"
    DELETED = "deleted"


# Allowed status moves; read never goes back to unread and deleted is inert.
STATUS_TRANSITIONS: dict[NotificationStatus, frozenset[NotificationStatus]] = {
    NotificationStatus.UNREAD: frozenset(
        {NotificationStatus.READ, NotificationStatus.ARCHIVED, NotificationStatus.DELETED}
    ),
    NotificationStatus.READ: frozenset({NotificationStatus.ARCHIVED, NotificationStatus.DELETED}),
    NotificationStatus.ARCHIVED: frozenset({NotificationStatus.DELETED}),
    NotificationStatus.DELETED: frozenset(),
}


def can_transition(current: str, target: str) -> bool:
    """Check whether a notification may move from ``current`` to ``target``."""
    return NotificationStatus(target) in STATUS_TRANSITIONS[NotificationStatus(current)]


class NotificationChannel(StrEnum):
    """Delivery surfaces."""

    IN_APP = "in_app"
    PUSH = "push"
    EMAIL = "email"
    SMS = "sms"


class NotificationCategory(StrEnum):
    """Coarse grouping of notification types (advisory only)."""

    STUDY = "study"
    SOCIAL = "social"
    SYSTEM = "system"
    MARKETING = "marketing"


TYPE_CATEGORIES: dict[NotificationType, NotificationCategory] = {
    NotificationType.ESSAY_GRADED: NotificationCategory.STUDY,
    NotificationType.FLASHCARD_DUE: NotificationCategory.STUDY,
    NotificationType.STUDY_REMINDER: NotificationCategory.STUDY,
    NotificationType.ACHIEVEMENT: NotificationCategory.STUDY,
    NotificationType.COLLABORATION: NotificationCategory.SOCIAL,
    NotificationType.MESSAGE: NotificationCategory.SOCIAL,
    NotificationType.INFO: NotificationCategory.SYSTEM,
    NotificationType.SUCCESS: NotificationCategory.SYSTEM,
    NotificationType.WARNING: NotificationCategory.SYSTEM,
    NotificationType.ERROR: NotificationCategory.SYSTEM,
    NotificationType.SYSTEM: NotificationCategory.SYSTEM,
}


def types_in_category(category: NotificationCategory) -> list[NotificationType]:
    return [t for t, c in TYPE_CATEGORIES.items() if c == category]


class HistoryAction(StrEnum):
    """Audit trail actions."""

    CREATED = "created"
    READ = "read"
    DISMISSED = "dismissed"
    CLICKED = "clicked"
    DELETED = "deleted"
    ACTION_TAKEN = "action_taken"


class ActionStyle(StrEnum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    DANGER = "danger"


class ActionKind(StrEnum):
    OPEN = "open"
    DISMISS = "dismiss"
    DELETE = "delete"
    CUSTOM = "custom"


class NotificationAction(BaseModel):
    """A user action attached to a notification."""

    id: str = Field(..., min_length=1, max_length=50, description="Action ID")
    label: str = Field(..., min_length=1, max_length=100, description="Button label")
    type: ActionStyle = Field(default=ActionStyle.SECONDARY, description="Visual style")
    action: ActionKind = Field(default=ActionKind.CUSTOM, description="What the action does")
    url: str | None = Field(None, description="Target URL for open actions")
    custom_data: dict[str, Any] = Field(default_factory=dict)


class NotificationInfo(BaseModel):
    """Notification information."""

    id: str = Field(..., description="Notification ID")
    user_id: str = Field(..., description="Recipient ID")
    type: NotificationType = Field(..., description="Notification type")
    priority: NotificationPriority = Field(default=NotificationPriority.NORMAL)
    status: NotificationStatus = Field(default=NotificationStatus.UNREAD)
    title: str = Field(..., description="Notification title")
    message: str = Field(..., description="Notification message")
    data: dict[str, Any] = Field(default_factory=dict, description="Type-specific payload")
    actions: list[NotificationAction] = Field(default_factory=list)
    icon: str | None = None
    image_url: str | None = None
    link: str | None = None
    delivered_via: list[NotificationChannel] = Field(default_factory=list)
    group_id: str | None = None
    group_count: int = 1
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime | None = None
    read_at: datetime | None = Field(None, description="When notification was read")
    expires_at: datetime | None = None

    @property
    def category(self) -> NotificationCategory:
        return TYPE_CATEGORIES[self.type]

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return ensure_utc(self.expires_at) <= ensure_utc(now or utcnow())


# ============ Producer Requests ============


class NotificationContent(BaseModel):
    """Everything about a notification except its recipient."""

    type: NotificationType = Field(..., description="Notification type")
    priority: NotificationPriority = Field(default=NotificationPriority.NORMAL)
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    data: dict[str, Any] = Field(default_factory=dict)
    actions: list[NotificationAction] = Field(default_factory=list, max_length=5)
    icon: str | None = Field(None, max_length=100)
    image_url: str | None = None
    link: str | None = None
    expires_at: datetime | None = Field(
        None,
        description="Explicit expiry; defaults to the configured expiration window",
    )
    channels: list[NotificationChannel] = Field(
        default_factory=lambda: [NotificationChannel.IN_APP],
        min_length=1,
        description="Channels to attempt",
    )
    group_id: str | None = Field(None, max_length=255, description="Collapse key")

    @field_validator("title", "message")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value

    @field_validator("expires_at")
    @classmethod
    def _aware_expiry(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @field_validator("channels")
    @classmethod
    def _unique_channels(cls, value: list[NotificationChannel]) -> list[NotificationChannel]:
        return list(dict.fromkeys(value))


class CreateNotificationRequest(NotificationContent):
    """Request for creating one notification."""

    user_id: UUID = Field(..., description="Recipient ID")


class TemplateNotificationRequest(BaseModel):
    """Request for creating a notification from a stored template."""

    user_id: UUID = Field(..., description="Recipient ID")
    template_name: str = Field(..., min_length=1, max_length=100)
    variables: dict[str, Any] = Field(default_factory=dict)
    extra: dict[str, Any] | None = Field(
        None,
        description="Overrides applied on top of the template defaults",
    )


class BulkNotificationRequest(BaseModel):
    """Request for sending the same notification to many recipients."""

    user_ids: list[str] = Field(..., min_length=1, max_length=10000)
    notification: NotificationContent


# ============ Results ============


class OperationResult(BaseModel):
    """Outcome of a single-item operation; failures are carried, not raised."""

    success: bool = Field(..., description="Whether the operation succeeded")
    error: ErrorDetail | None = Field(None, description="Error details if failed")

    _exception: AppException | None = PrivateAttr(default=None)

    @classmethod
    def failed(cls, exc: AppException, **fields):
        result = cls(success=False, error=ErrorDetail.from_exception(exc), **fields)
        result._exception = exc
        return result

    @property
    def exception(self) -> AppException | None:
        return self._exception

    def raise_for_error(self) -> None:
        """Raise the carried exception, for HTTP handlers."""
        if self._exception is not None:
            raise self._exception


class SendNotificationResult(OperationResult):
    """Result of creating a notification."""

    notification_id: str | None = Field(None, description="ID of the stored notification")
    delivered_channels: list[NotificationChannel] = Field(
        default_factory=list,
        description="Channels the notification was attempted on",
    )
    grouped: bool = Field(default=False, description="Collapsed into an existing group")


class NotificationResult(OperationResult):
    """Result wrapping one notification."""

    notification: NotificationInfo | None = None


class CountResult(OperationResult):
    """Result of a bulk state change."""

    count: int = Field(default=0, description="Rows affected")
    unread_count: int | None = Field(None, description="Unread count after the change")


class BulkRecipientError(BaseModel):
    """One failed recipient of a bulk send."""

    user_id: str
    error: ErrorDetail


class BulkNotificationResult(BaseModel):
    """Outcome of a bulk send; per-recipient failures never abort the batch."""

    total: int
    successful: int
    failed: int
    errors: list[BulkRecipientError] = Field(default_factory=list)
    notification_ids: list[str] = Field(default_factory=list)

    @property
    def partial_failure(self) -> bool:
        return self.failed > 0

    @property
    def failure(self) -> PartialBatchFailure | None:
        """The informational failure for this batch, if any recipient failed."""
        if not self.partial_failure:
            return None
        return PartialBatchFailure(
            message=f"{self.failed} of {self.total} notifications could not be delivered",
            details={
                "failed": self.failed,
                "total": self.total,
                "codes": sorted({error.error.code for error in self.errors}),
            },
        )


# ============ Listing ============


def encode_cursor(created_at: datetime, notification_id: UUID | str) -> str:
    """Opaque listing cursor for the position after ``(created_at, id)``."""
    raw = f"{ensure_utc(created_at).isoformat()}|{notification_id}"
    return base64.urlsafe_b64encode(raw.encode()).decode().rstrip("=")


def decode_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Inverse of ``encode_cursor``. Raises ValueError for a malformed cursor."""
    try:
        raw = base64.urlsafe_b64decode(cursor + "=" * (-len(cursor) % 4)).decode()
        created_at, notification_id = raw.split("|", 1)
        return ensure_utc(datetime.fromisoformat(created_at)), UUID(notification_id)
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise ValueError("Malformed cursor") from e


class NotificationFilters(BaseModel):
    """Filters for listing notifications."""

    status: NotificationStatus | None = None
    type: NotificationType | None = None
    priority: NotificationPriority | None = None
    category: NotificationCategory | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    search: str | None = Field(None, max_length=200)
    limit: int = Field(default=20, ge=1, le=100)
    cursor: str | None = Field(None, max_length=200, description="next_cursor of the previous page")

    @field_validator("start_date", "end_date")
    @classmethod
    def _aware(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @field_validator("cursor")
    @classmethod
    def _decodable(cls, value: str | None) -> str | None:
        if value:
            decode_cursor(value)
        return value or None

    @property
    def position(self) -> tuple[datetime, UUID] | None:
        return decode_cursor(self.cursor) if self.cursor else None


class ListNotificationsResponse(BaseModel):
    """Response for listing notifications."""

    notifications: list[NotificationInfo] = Field(default_factory=list)
    total: int = Field(..., description="Total number of matching notifications")
    unread_count: int = Field(..., description="Number of unread notifications")
    has_more: bool = Field(..., description="Whether more items exist")
    next_cursor: str | None = Field(None, description="Cursor for the next page")


class ListNotificationsResult(OperationResult):
    """Result wrapping one page of notifications."""

    listing: ListNotificationsResponse | None = None


class UnreadCountResponse(BaseModel):
    """Response for getting unread count."""

    unread_count: int = Field(..., description="Number of unread notifications")


class MarkReadRequest(BaseModel):
    """Request for marking notifications as read; omit IDs to mark everything."""

    notification_ids: list[UUID] | None = Field(
        None,
        max_length=100,
        description="Notification IDs to mark as read",
    )


class ArchiveOldRequest(BaseModel):
    days_old: int = Field(default=30, ge=1, le=3650)


class RecordActionRequest(BaseModel):
    """A click on a notification (no action ID) or on one of its action buttons."""

    action_id: str | None = Field(None, max_length=50)


class HistoryEntry(BaseModel):
    """One audit trail entry."""

    id: str
    notification_id: str | None = None
    action: HistoryAction
    action_data: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class HistoryResult(OperationResult):
    entries: list[HistoryEntry] = Field(default_factory=list)


# ============ Realtime ============


class RealtimeEventType(StrEnum):
    """Events published on a user's notification channel."""

    NEW_NOTIFICATION = "new_notification"
    NOTIFICATION_GROUPED = "notification_grouped"
    NOTIFICATION_READ = "notification_read"
    NOTIFICATION_UPDATED = "notification_updated"
    NOTIFICATION_DELETED = "notification_deleted"
    PREFERENCES_UPDATED = "preferences_updated"


class RealtimeEvent(BaseModel):
    """A change pushed to every live session of one user."""

    type: RealtimeEventType
    user_id: str
    notification: NotificationInfo | None = None
    notification_ids: list[str] = Field(default_factory=list)
    unread_count: int | None = None
    timestamp: datetime = Field(default_factory=utcnow)
