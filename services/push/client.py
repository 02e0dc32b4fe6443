"""
Push runtime backed by the state a client reports.

The browser owns the real service worker and PushManager. It reports its
permission and its fresh subscription to the server (over HTTP or the
websocket), and notification display requests are sent back to it through
a ``display`` callback.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from api.schemas.push import PermissionState

from .base import BrowserSubscription, PushRegistration, PushRuntime, SubscriptionKeys

logger = logging.getLogger(__name__)

DisplayCallback = Callable[[str, dict[str, Any]], Awaitable[None]]


class ReportedSubscription(BrowserSubscription):
    """A subscription the client created and reported."""

    def __init__(self, endpoint: str, p256dh: str = "", auth: str = ""):
        self._endpoint = endpoint
        self._keys = SubscriptionKeys(p256dh=p256dh, auth=auth)
        self.revoked = False

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def keys(self) -> SubscriptionKeys:
        return self._keys

    async def unsubscribe(self) -> bool:
        # Revocation at the push service happens in the browser.
        self.revoked = True
        return True


class ClientRegistration(PushRegistration):
    """Service worker registration on the client side."""

    def __init__(
        self,
        fresh_subscription: ReportedSubscription | None,
        display: DisplayCallback | None = None,
    ):
        self._fresh = fresh_subscription
        self._current: ReportedSubscription | None = None
        self._display = display

    async def get_subscription(self) -> BrowserSubscription | None:
        return self._current

    async def subscribe(self, application_server_key: str | None) -> BrowserSubscription:
        if self._fresh is None:
            raise RuntimeError("Client did not report a push subscription")
        self._current = self._fresh
        return self._current

    async def show_notification(self, title: str, options: dict[str, Any]) -> None:
        if self._display is None:
            raise RuntimeError("Client has no display channel")
        await self._display(title, options)


class ClientPushRuntime(PushRuntime):
    """
    Push runtime assembled from a client's report.

    Args:
        supported: Whether the browser supports service workers and push
        permission: Current notification permission
        subscription: The subscription the client just created, if any
        user_agent: Browser user agent, for the device descriptor
        device_id: Stable client-side device ID
        display: Coroutine that forwards display requests to the client
    """

    def __init__(
        self,
        supported: bool,
        permission: PermissionState,
        subscription: ReportedSubscription | None = None,
        user_agent: str | None = None,
        device_id: str | None = None,
        display: DisplayCallback | None = None,
    ):
        self._supported = supported
        self._permission = permission
        self._user_agent = user_agent
        self._device_id = device_id
        self._registration: ClientRegistration | None = None
        self._pending = ClientRegistration(subscription, display) if supported else None

    @property
    def is_supported(self) -> bool:
        return self._supported

    @property
    def permission(self) -> PermissionState:
        return self._permission

    @property
    def user_agent(self) -> str | None:
        return self._user_agent

    @property
    def device_id(self) -> str | None:
        return self._device_id

    async def request_permission(self) -> PermissionState:
        # The prompt is shown by the browser; the server can only see the outcome.
        return self._permission

    async def get_registration(self) -> PushRegistration | None:
        return self._registration

    async def register(self, script_path: str) -> PushRegistration | None:
        if self._pending is None:
            return None
        logger.debug(f"Client service worker registered at {script_path}")
        self._registration = self._pending
        return self._registration

    @classmethod
    def with_active_subscription(
        cls,
        endpoint: str,
        permission: PermissionState = PermissionState.GRANTED,
        user_agent: str | None = None,
        display: DisplayCallback | None = None,
    ) -> "ClientPushRuntime":
        """A runtime whose worker is registered and already holds ``endpoint``."""
        subscription = ReportedSubscription(endpoint)
        runtime = cls(
            supported=True,
            permission=permission,
            subscription=subscription,
            user_agent=user_agent,
            display=display,
        )
        runtime._registration = runtime._pending
        runtime._registration._current = subscription
        return runtime
