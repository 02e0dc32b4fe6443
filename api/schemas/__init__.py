"""
Pydantic schemas for API request/response models.
"""

from .common import (
    ErrorDetail,
    HealthStatus,
    HealthCheckResponse,
    DetailedHealthCheckResponse,
    ComponentHealth,
)

from .notifications import (
    NotificationType,
    NotificationPriority,
    NotificationStatus,
    NotificationChannel,
    NotificationCategory,
    HistoryAction,
    NotificationAction,
    NotificationInfo,
    NotificationContent,
    CreateNotificationRequest,
    TemplateNotificationRequest,
    BulkNotificationRequest,
    OperationResult,
    SendNotificationResult,
    NotificationResult,
    CountResult,
    ListNotificationsResult,
    HistoryResult,
    BulkRecipientError,
    BulkNotificationResult,
    NotificationFilters,
    ListNotificationsResponse,
    UnreadCountResponse,
    MarkReadRequest,
    ArchiveOldRequest,
    RecordActionRequest,
    HistoryEntry,
    RealtimeEventType,
    RealtimeEvent,
)

from .preferences import (
    ChannelPreferences,
    TypePreference,
    CategoryPreferences,
    QuietHours,
    NotificationPreferences,
    PreferencesUpdateRequest,
    PreferencesResult,
)

from .push import (
    PermissionState,
    DevicePlatform,
    DeviceInfo,
    PushKeys,
    BrowserSubscriptionPayload,
    PushSubscribeRequest,
    PushUnsubscribeRequest,
    PushSubscriptionInfo,
    PushConfigResponse,
    PushSubscribeResponse,
    PushUnsubscribeResponse,
)

from .websocket import (
    WSMessageType,
    WSClientMessage,
    WSServerMessage,
)

__all__ = [
    # Common
    "ErrorDetail",
    "HealthStatus",
    "HealthCheckResponse",
    "DetailedHealthCheckResponse",
    "ComponentHealth",
    # Notifications
    "NotificationType",
    "NotificationPriority",
    "NotificationStatus",
    "NotificationChannel",
    "NotificationCategory",
    "HistoryAction",
    "NotificationAction",
    "NotificationInfo",
    "NotificationContent",
    "CreateNotificationRequest",
    "TemplateNotificationRequest",
    "BulkNotificationRequest",
    "OperationResult",
    "SendNotificationResult",
    "NotificationResult",
    "CountResult",
    "ListNotificationsResult",
    "HistoryResult",
    "BulkRecipientError",
    "BulkNotificationResult",
    "NotificationFilters",
    "ListNotificationsResponse",
    "UnreadCountResponse",
    "MarkReadRequest",
    "ArchiveOldRequest",
    "RecordActionRequest",
    "HistoryEntry",
    "RealtimeEventType",
    "RealtimeEvent",
    # Preferences
    "ChannelPreferences",
    "TypePreference",
    "CategoryPreferences",
    "QuietHours",
    "NotificationPreferences",
    "PreferencesUpdateRequest",
    "PreferencesResult",
    # Push
    "PermissionState",
    "DevicePlatform",
    "DeviceInfo",
    "PushKeys",
    "BrowserSubscriptionPayload",
    "PushSubscribeRequest",
    "PushUnsubscribeRequest",
    "PushSubscriptionInfo",
    "PushConfigResponse",
    "PushSubscribeResponse",
    "PushUnsubscribeResponse",
    # WebSocket
    "WSMessageType",
    "WSClientMessage",
    "WSServerMessage",
]
