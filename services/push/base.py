"""
Push runtime abstract base classes.

These model the browser capabilities push delivery depends on: a runtime
that may or may not support push, a notification permission, a
background-agent (service worker) registration, and the browser-level
subscription that registration hands out.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from api.schemas.push import PermissionState


@dataclass
class SubscriptionKeys:
    """Encryption keys of a browser subscription."""

    p256dh: str
    auth: str


class BrowserSubscription(ABC):
    """A browser-level push subscription."""

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """Push service endpoint URL."""
        pass

    @property
    @abstractmethod
    def keys(self) -> SubscriptionKeys:
        pass

    @abstractmethod
    async def unsubscribe(self) -> bool:
        """Revoke the subscription at the push service."""
        pass


class PushRegistration(ABC):
    """A registered background delivery agent."""

    @abstractmethod
    async def get_subscription(self) -> BrowserSubscription | None:
        """Return the current browser subscription, if any."""
        pass

    @abstractmethod
    async def subscribe(self, application_server_key: str | None) -> BrowserSubscription:
        """Create a fresh browser subscription."""
        pass

    @abstractmethod
    async def show_notification(self, title: str, options: dict[str, Any]) -> None:
        """Ask the background agent to display a notification."""
        pass


class PushRuntime(ABC):
    """
    Capabilities of the environment push runs in.

    Implementations must not raise for missing capabilities; they report
    them through ``is_supported`` and ``permission``.
    """

    @property
    @abstractmethod
    def is_supported(self) -> bool:
        pass

    @property
    @abstractmethod
    def permission(self) -> PermissionState:
        pass

    @property
    def user_agent(self) -> str | None:
        return None

    @property
    def device_id(self) -> str | None:
        return None

    @abstractmethod
    async def request_permission(self) -> PermissionState:
        pass

    @abstractmethod
    async def get_registration(self) -> PushRegistration | None:
        """Return the active background-agent registration, if any."""
        pass

    @abstractmethod
    async def register(self, script_path: str) -> PushRegistration | None:
        """Register the background agent at ``script_path``."""
        pass
