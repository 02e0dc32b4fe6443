"""
Repository layer for database access.

Provides async CRUD operations for all models.
"""

from .history_repo import HistoryRepository
from .notification_repo import NotificationRepository
from .preferences_repo import PreferencesRepository
from .push_subscription_repo import PushSubscriptionRepository
from .template_repo import TemplateRepository
from .user_repo import UserRepository

__all__ = [
    "UserRepository",
    "NotificationRepository",
    "PreferencesRepository",
    "HistoryRepository",
    "PushSubscriptionRepository",
    "TemplateRepository",
]
