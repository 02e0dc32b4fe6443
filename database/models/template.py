"""
Stored notification templates with ``{variable}`` placeholders.
"""

from sqlalchemy import Boolean, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin


class NotificationTemplate(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Reusable title/message patterns plus delivery defaults."""

    __tablename__ = "notification_templates"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Patterns
    title_template: Mapped[str] = mapped_column(Text, nullable=False)
    message_template: Mapped[str] = mapped_column(Text, nullable=False)

    # Delivery defaults
    default_priority: Mapped[str] = mapped_column(String(20), default="normal", nullable=False)
    default_channels: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    default_actions: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    default_icon: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Declared variable names (documentation only; substitution is lenient)
    variables: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<NotificationTemplate(name={self.name}, type={self.type})>"
