"""
SQLAlchemy models for the notification service.
"""

from .base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from .history import NotificationHistory
from .notification import Notification
from .preferences import NotificationPreference
from .push_subscription import PushSubscription
from .template import NotificationTemplate
from .user import User

__all__ = [
    # Base
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Models
    "User",
    "Notification",
    "NotificationPreference",
    "NotificationHistory",
    "PushSubscription",
    "NotificationTemplate",
]
