"""
Notification model: the persisted unit of communication.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from .user import User


class Notification(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Notification model.

    Status moves unread -> read -> archived/deleted and never back to unread.
    Expiry is not a stored status; it is derived from expires_at.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        CheckConstraint(
            "expires_at IS NULL OR expires_at > created_at",
            name="ck_notifications_expiry_after_creation",
        ),
    )

    # Recipient
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Classification
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), default="normal", nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="unread", nullable=False)

    # Content
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    data: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    actions: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Delivery bookkeeping
    delivered_via: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    group_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    group_count: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Lifecycle timestamps
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationship
    user: Mapped["User"] = relationship(
        "User",
        back_populates="notifications",
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, type={self.type}, status={self.status})>"


# Indexes
Index("idx_notifications_user_id", Notification.user_id)
Index("idx_notifications_type", Notification.type)
Index("idx_notifications_status", Notification.status)
Index("idx_notifications_created_at", Notification.created_at.desc())
Index("idx_notifications_expires_at", Notification.expires_at)
Index("idx_notifications_group_id", Notification.group_id)
# Composite index for the default listing: a user's live notifications, newest first
Index(
    "idx_notifications_user_status_created",
    Notification.user_id,
    Notification.status,
    Notification.created_at.desc(),
)
