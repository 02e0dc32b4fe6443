"""
Services module for the study tracker notification engine.
"""
from .notification_engine import NotificationEngine
from .notification_service import NotificationService, NotificationServiceConfig
from .notification_session import NotificationSession
from .realtime import NotificationChannelHub, RedisNotificationBroker
from .toast_manager import Toast, ToastManager

__all__ = [
    "NotificationEngine",
    "NotificationService",
    "NotificationServiceConfig",
    "NotificationSession",
    "NotificationChannelHub",
    "RedisNotificationBroker",
    "Toast",
    "ToastManager",
]
