"""
Audit trail of notification state changes.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from utils.datetime import utcnow

from .base import Base, JSONType, UUIDPrimaryKeyMixin


class NotificationHistory(Base, UUIDPrimaryKeyMixin):
    """
    One row per action taken on a notification.

    Actions: created, read, dismissed, clicked, deleted, action_taken.
    """

    __tablename__ = "notification_history"

    # Kept (as NULL) after the notification is hard-deleted
    notification_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("notifications.id", ondelete="SET NULL"),
        nullable=True,
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    action_data: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<NotificationHistory(notification_id={self.notification_id}, action={self.action})>"


# Indexes
Index("idx_notification_history_notification_id", NotificationHistory.notification_id)
Index("idx_notification_history_user_id", NotificationHistory.user_id)
