"""
Pydantic schemas for notification preferences.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from utils.datetime import parse_time_of_day

from .notifications import (
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    OperationResult,
)


def _normalize_time(value: str | None) -> str | None:
    if value is None:
        return None
    parsed = parse_time_of_day(value)
    if parsed is None:
        raise ValueError("time of day must be HH:MM")
    return parsed.strftime("%H:%M")


class ChannelPreferences(BaseModel):
    """Per-channel master toggles."""

    in_app: bool = True
    push: bool = True
    email: bool = True
    sms: bool = False

    def is_enabled(self, channel: NotificationChannel) -> bool:
        return bool(getattr(self, channel.value))


class TypePreference(BaseModel):
    """Restrictions for one notification type."""

    enabled: bool = True
    channels: list[NotificationChannel] = Field(
        default_factory=lambda: [NotificationChannel.IN_APP]
    )
    priority_threshold: NotificationPriority = NotificationPriority.NORMAL


class CategoryPreferences(BaseModel):
    """Coarse opt-ins; advisory only, never overrides type preferences."""

    study: bool = True
    social: bool = True
    system: bool = True
    marketing: bool = False


class QuietHours(BaseModel):
    """Daily window during which non-urgent delivery is suppressed."""

    enabled: bool = False
    start: str = "22:00"
    end: str = "08:00"
    timezone: str = "UTC"  # also the timezone of the do-not-disturb window
    allow_urgent: bool = True

    @field_validator("start", "end")
    @classmethod
    def _window_times(cls, value: str) -> str:
        return _normalize_time(value)


def default_type_preferences() -> dict[NotificationType, TypePreference]:
    in_app, push, email = (
        NotificationChannel.IN_APP,
        NotificationChannel.PUSH,
        NotificationChannel.EMAIL,
    )
    return {
        NotificationType.ESSAY_GRADED: TypePreference(channels=[in_app, push]),
        NotificationType.FLASHCARD_DUE: TypePreference(channels=[in_app]),
        NotificationType.STUDY_REMINDER: TypePreference(channels=[push, email]),
        NotificationType.COLLABORATION: TypePreference(channels=[in_app, push]),
        NotificationType.ACHIEVEMENT: TypePreference(
            channels=[in_app, push],
            priority_threshold=NotificationPriority.LOW,
        ),
        NotificationType.MESSAGE: TypePreference(channels=[in_app, push]),
        NotificationType.SYSTEM: TypePreference(
            channels=[in_app],
            priority_threshold=NotificationPriority.HIGH,
        ),
    }


class NotificationPreferences(BaseModel):
    """A user's complete notification preferences, with documented defaults."""

    global_enabled: bool = Field(default=True, description="Master switch")
    do_not_disturb: bool = Field(default=False, description="Do-not-disturb active")
    do_not_disturb_start: str | None = Field(None, description="DND window start (HH:MM), in quiet_hours.timezone")
    do_not_disturb_end: str | None = Field(None, description="DND window end (HH:MM), in quiet_hours.timezone")
    channels: ChannelPreferences = Field(default_factory=ChannelPreferences)
    type_preferences: dict[NotificationType, TypePreference] = Field(
        default_factory=default_type_preferences
    )
    category_preferences: CategoryPreferences = Field(default_factory=CategoryPreferences)
    quiet_hours: QuietHours = Field(default_factory=QuietHours)

    @field_validator("do_not_disturb_start", "do_not_disturb_end")
    @classmethod
    def _dnd_times(cls, value: str | None) -> str | None:
        return _normalize_time(value)


class PreferencesUpdateRequest(BaseModel):
    """
    Partial preferences update.

    Nested blocks are merged into the stored record key by key; a ``null``
    entry under ``type_preferences`` removes that type's restrictions.
    """

    global_enabled: bool | None = None
    do_not_disturb: bool | None = None
    do_not_disturb_start: str | None = None
    do_not_disturb_end: str | None = None
    channels: dict[NotificationChannel, bool] | None = None
    type_preferences: dict[NotificationType, dict[str, Any] | None] | None = None
    category_preferences: dict[str, bool] | None = None
    quiet_hours: dict[str, Any] | None = None


class PreferencesResult(OperationResult):
    """Result of a preferences update."""

    preferences: NotificationPreferences | None = None
