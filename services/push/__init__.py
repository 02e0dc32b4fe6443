"""
Web push support: runtime abstraction, device parsing and subscription lifecycle.
"""

from .base import BrowserSubscription, PushRegistration, PushRuntime, SubscriptionKeys
from .client import ClientPushRuntime, ClientRegistration, ReportedSubscription
from .device import parse_device_info
from .manager import PushConfig, PushSubscriptionManager, subscription_to_info

__all__ = [
    "BrowserSubscription",
    "PushRegistration",
    "PushRuntime",
    "SubscriptionKeys",
    "ClientPushRuntime",
    "ClientRegistration",
    "ReportedSubscription",
    "parse_device_info",
    "PushConfig",
    "PushSubscriptionManager",
    "subscription_to_info",
]
