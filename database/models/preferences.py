"""
Per-user notification preferences.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from .user import User


class NotificationPreference(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    One row per user, created lazily with defaults on first access.

    The nested blocks (channels, type_preferences, category_preferences,
    quiet_hours) are stored as JSON documents.
    """

    __tablename__ = "notification_preferences"

    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # Master switch
    global_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Do-not-disturb window ("HH:MM")
    do_not_disturb: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    do_not_disturb_start: Mapped[str | None] = mapped_column(String(5), nullable=True)
    do_not_disturb_end: Mapped[str | None] = mapped_column(String(5), nullable=True)

    # Nested preference blocks
    channels: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    type_preferences: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    category_preferences: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    quiet_hours: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    user: Mapped["User"] = relationship(
        "User",
        back_populates="notification_preferences",
    )

    def __repr__(self) -> str:
        return f"<NotificationPreference(user_id={self.user_id}, global_enabled={self.global_enabled})>"
