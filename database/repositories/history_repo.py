"""
History repository for the notification audit trail.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import NotificationHistory


class HistoryRepository:
    """Repository for NotificationHistory model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(
        self,
        user_id: UUID,
        notification_id: UUID,
        action: str,
        action_data: dict | None = None,
    ) -> NotificationHistory:
        """Append one audit entry."""
        entry = NotificationHistory(
            user_id=user_id,
            notification_id=notification_id,
            action=action,
            action_data=action_data or {},
        )
        self.session.add(entry)
        await self.session.flush()
        return entry

    async def add_many(
        self,
        user_id: UUID,
        notification_ids: Sequence[UUID],
        action: str,
        action_data: dict | None = None,
    ) -> int:
        """Append the same action for several notifications."""
        for notification_id in notification_ids:
            self.session.add(
                NotificationHistory(
                    user_id=user_id,
                    notification_id=notification_id,
                    action=action,
                    action_data=action_data or {},
                )
            )
        await self.session.flush()
        return len(notification_ids)

    async def list_by_user(
        self,
        user_id: UUID,
        notification_id: UUID | None = None,
        limit: int = 50,
    ) -> list[NotificationHistory]:
        """List audit entries for a user, newest first."""
        query = select(NotificationHistory).where(NotificationHistory.user_id == user_id)
        if notification_id is not None:
            query = query.where(NotificationHistory.notification_id == notification_id)

        query = query.order_by(desc(NotificationHistory.created_at)).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
