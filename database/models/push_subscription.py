"""
Web push subscriptions: one row per browser endpoint.
"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from utils.datetime import utcnow

from .base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from .user import User


class PushSubscription(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Push endpoint with its encryption keys and device descriptor.

    Keyed uniquely by endpoint, so re-subscribing on the same device
    updates the existing row.
    """

    __tablename__ = "push_subscriptions"

    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # Subscription details
    endpoint: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    p256dh: Mapped[str] = mapped_column(Text, nullable=False)
    auth: Mapped[str] = mapped_column(Text, nullable=False)

    # platform / browser / os / device_id / user_agent
    device_info: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_used_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="push_subscriptions",
    )

    def __repr__(self) -> str:
        return f"<PushSubscription(user_id={self.user_id}, active={self.is_active})>"


# Indexes
Index("idx_push_subscriptions_user_id", PushSubscription.user_id)
Index("idx_push_subscriptions_active", PushSubscription.user_id, PushSubscription.is_active)
