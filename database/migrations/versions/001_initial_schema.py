"""Initial notification schema

Revision ID: 001
Revises:
Create Date: 2026-01-12 10:00:00.000000

"""

import uuid
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from database.seed_data import DEFAULT_TEMPLATES

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
    ]


def upgrade() -> None:
    # Users
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False, server_default="normal"),
        sa.Column("status", sa.String(20), nullable=False, server_default="unread"),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("data", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("actions", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("icon", sa.String(100), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("link", sa.Text(), nullable=True),
        sa.Column("delivered_via", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("group_id", sa.String(255), nullable=True),
        sa.Column("group_count", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "status IN ('unread', 'read', 'archived', 'deleted')",
            name="ck_notifications_status",
        ),
        sa.CheckConstraint(
            "priority IN ('low', 'normal', 'high', 'urgent')",
            name="ck_notifications_priority",
        ),
        sa.CheckConstraint(
            "expires_at IS NULL OR expires_at > created_at",
            name="ck_notifications_expiry_after_creation",
        ),
    )
    op.create_index("idx_notifications_user_id", "notifications", ["user_id"])
    op.create_index("idx_notifications_type", "notifications", ["type"])
    op.create_index("idx_notifications_status", "notifications", ["status"])
    op.create_index(
        "idx_notifications_created_at", "notifications", [sa.text("created_at DESC")]
    )
    op.create_index("idx_notifications_expires_at", "notifications", ["expires_at"])
    op.create_index("idx_notifications_group_id", "notifications", ["group_id"])
    op.create_index(
        "idx_notifications_user_status_created",
        "notifications",
        ["user_id", "status", sa.text("created_at DESC")],
    )

    # Preferences (one row per user)
    op.create_table(
        "notification_preferences",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("global_enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("do_not_disturb", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("do_not_disturb_start", sa.String(5), nullable=True),
        sa.Column("do_not_disturb_end", sa.String(5), nullable=True),
        sa.Column("channels", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("type_preferences", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("category_preferences", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("quiet_hours", postgresql.JSONB(), nullable=False, server_default="{}"),
        *_timestamps(),
    )

    # Audit trail
    op.create_table(
        "notification_history",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "notification_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("notifications.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("action_data", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        sa.CheckConstraint(
            "action IN ('created', 'read', 'dismissed', 'clicked', 'deleted', 'action_taken')",
            name="ck_notification_history_action",
        ),
    )
    op.create_index(
        "idx_notification_history_notification_id", "notification_history", ["notification_id"]
    )
    op.create_index("idx_notification_history_user_id", "notification_history", ["user_id"])

    # Push subscriptions (one row per endpoint)
    op.create_table(
        "push_subscriptions",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("endpoint", sa.Text(), nullable=False, unique=True),
        sa.Column("p256dh", sa.Text(), nullable=False),
        sa.Column("auth", sa.Text(), nullable=False),
        sa.Column("device_info", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "last_used_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False
        ),
        *_timestamps(),
    )
    op.create_index("idx_push_subscriptions_user_id", "push_subscriptions", ["user_id"])
    op.create_index(
        "idx_push_subscriptions_active", "push_subscriptions", ["user_id", "is_active"]
    )

    # Templates
    templates = op.create_table(
        "notification_templates",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("title_template", sa.Text(), nullable=False),
        sa.Column("message_template", sa.Text(), nullable=False),
        sa.Column("default_priority", sa.String(20), nullable=False, server_default="normal"),
        sa.Column("default_channels", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("default_actions", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("default_icon", sa.String(100), nullable=True),
        sa.Column("variables", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.bulk_insert(
        templates,
        [
            {"id": uuid.uuid4(), "default_actions": [], "is_active": True, **template}
            for template in DEFAULT_TEMPLATES
        ],
    )


def downgrade() -> None:
    op.drop_table("notification_templates")
    op.drop_index("idx_push_subscriptions_active", table_name="push_subscriptions")
    op.drop_index("idx_push_subscriptions_user_id", table_name="push_subscriptions")
    op.drop_table("push_subscriptions")
    op.drop_index("idx_notification_history_user_id", table_name="notification_history")
    op.drop_index("idx_notification_history_notification_id", table_name="notification_history")
    op.drop_table("notification_history")
    op.drop_table("notification_preferences")
    op.drop_index("idx_notifications_user_status_created", table_name="notifications")
    op.drop_index("idx_notifications_group_id", table_name="notifications")
    op.drop_index("idx_notifications_expires_at", table_name="notifications")
    op.drop_index("idx_notifications_created_at", table_name="notifications")
    op.drop_index("idx_notifications_status", table_name="notifications")
    op.drop_index("idx_notifications_type", table_name="notifications")
    op.drop_index("idx_notifications_user_id", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("users")
