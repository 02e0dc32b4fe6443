"""
Ephemeral toast queue with auto-dismiss timers.

Each toast is a small state machine: PENDING until it is finished by its
timer, a manual dismissal, a programmatic removal or eviction, then
DISMISSED. Only the PENDING -> DISMISSED transition cancels the timer and
runs the dismiss callback, so the callback fires exactly once.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from api.schemas.notifications import NotificationInfo, NotificationPriority
from utils.datetime import utcnow

logger = logging.getLogger(__name__)


class ToastState(StrEnum):
    PENDING = "pending"
    DISMISSED = "dismissed"


@dataclass
class ToastAction:
    """A button on a toast."""

    label: str
    action_id: str | None = None
    on_click: Callable[[], Any] | None = None


@dataclass
class Toast:
    """An on-screen notification; never persisted."""

    title: str
    message: str
    type: str = "info"
    priority: NotificationPriority = NotificationPriority.NORMAL
    duration: float | None = None  # seconds; 0 keeps it until dismissed
    icon: str | None = None
    notification_id: str | None = None
    actions: list[ToastAction] = field(default_factory=list)
    on_dismiss: Callable[[], Any] | None = None

    id: str = ""
    state: ToastState = ToastState.PENDING
    created_at: datetime = field(default_factory=utcnow)
    _timer: asyncio.TimerHandle | None = field(default=None, repr=False, compare=False)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "type": self.type,
            "priority": str(self.priority),
            "duration": self.duration,
            "icon": self.icon,
            "notification_id": self.notification_id,
            "actions": [
                {"label": action.label, "action_id": action.action_id}
                for action in self.actions
            ],
            "created_at": self.created_at.isoformat(),
        }


ToastListener = Callable[[Toast, str], Any]


class ToastManager:
    """
    Bounded, newest-first queue of visible toasts.

    Args:
        max_toasts: Maximum number of toasts visible at once
        default_duration: Auto-dismiss delay in seconds for toasts without one
        listener: Called with (toast, event) on "added" and on every finish
            reason ("expired", "dismissed", "removed", "evicted", "cleared")
    """

    def __init__(
        self,
        max_toasts: int = 5,
        default_duration: float = 5.0,
        listener: ToastListener | None = None,
    ):
        if max_toasts < 1:
            raise ValueError("max_toasts must be at least 1")
        self.max_toasts = max_toasts
        self.default_duration = default_duration
        self._listener = listener
        self._toasts: list[Toast] = []

    @property
    def toasts(self) -> list[Toast]:
        """Visible toasts, most recent first."""
        return list(self._toasts)

    def __len__(self) -> int:
        return len(self._toasts)

    def get(self, toast_id: str) -> Toast | None:
        for toast in self._toasts:
            if toast.id == toast_id:
                return toast
        return None

    def add_toast(self, toast: Toast) -> str:
        """
        Show a toast and return its new ID.

        A toast that is already visible keeps its ID and place in the queue.
        Evicts the oldest toasts when over capacity.
        """
        if toast.state is ToastState.PENDING and any(t is toast for t in self._toasts):
            return toast.id

        toast.id = f"toast-{uuid4().hex[:12]}"
        toast.state = ToastState.PENDING
        if toast.duration is None:
            toast.duration = self.default_duration

        self._toasts.insert(0, toast)
        if toast.duration > 0:
            loop = asyncio.get_running_loop()
            toast._timer = loop.call_later(toast.duration, self._finish, toast.id, "expired")

        self._notify(toast, "added")

        while len(self._toasts) > self.max_toasts:
            self._dismiss(self._toasts.pop(), "evicted")

        return toast.id

    def dismiss_toast(self, toast_id: str) -> bool:
        """Dismiss a toast on user request."""
        return self._finish(toast_id, "dismissed")

    def remove_toast(self, toast_id: str) -> bool:
        """Remove a toast programmatically."""
        return self._finish(toast_id, "removed")

    def clear(self) -> int:
        """Finish every visible toast (session teardown)."""
        cleared = 0
        for toast in list(self._toasts):
            if self._finish(toast.id, "cleared"):
                cleared += 1
        return cleared

    def _finish(self, toast_id: str, reason: str) -> bool:
        toast = self.get(toast_id)
        if toast is None or toast.state is ToastState.DISMISSED:
            return False

        self._toasts.remove(toast)
        self._dismiss(toast, reason)
        return True

    def _dismiss(self, toast: Toast, reason: str) -> None:
        """Run the PENDING -> DISMISSED transition for a toast already off the queue."""
        toast.state = ToastState.DISMISSED
        if toast._timer is not None:
            toast._timer.cancel()
            toast._timer = None

        if toast.on_dismiss is not None:
            try:
                toast.on_dismiss()
            except Exception as e:
                logger.warning(f"Toast {toast.id} dismiss callback failed: {e}")

        self._notify(toast, reason)

    def _notify(self, toast: Toast, event: str) -> None:
        if self._listener is None:
            return
        try:
            self._listener(toast, event)
        except Exception as e:
            logger.warning(f"Toast listener failed on {event}: {e}")


def toast_from_notification(
    notification: NotificationInfo,
    default_duration: float = 5.0,
    on_dismiss: Callable[[], Any] | None = None,
) -> Toast:
    """Build a toast for a delivered notification; urgent ones stay until dismissed."""
    urgent = notification.priority == NotificationPriority.URGENT
    return Toast(
        title=notification.title,
        message=notification.message,
        type=str(notification.type),
        priority=notification.priority,
        duration=0 if urgent else default_duration,
        icon=notification.icon,
        notification_id=notification.id,
        actions=[
            ToastAction(label=action.label, action_id=action.id)
            for action in notification.actions
        ],
        on_dismiss=on_dismiss,
    )
