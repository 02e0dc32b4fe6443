"""
Notification repository for notification CRUD operations.
"""

from collections.abc import Sequence
from datetime import datetime
from uuid import UUID

from sqlalchemy import Select, and_, desc, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import Notification

# Statuses hidden from listings unless explicitly requested
HIDDEN_STATUSES = ("archived", "deleted")


def _not_expired(now: datetime):
    return or_(Notification.expires_at.is_(None), Notification.expires_at > now)


class NotificationRepository:
    """Repository for Notification model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, notification_id: UUID) -> Notification | None:
        """Get notification by ID."""
        result = await self.session.execute(
            select(Notification).where(Notification.id == notification_id)
        )
        return result.scalar_one_or_none()

    async def get_for_user(self, user_id: UUID, notification_id: UUID) -> Notification | None:
        """Get a notification only if it belongs to the user."""
        result = await self.session.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: UUID, **fields) -> Notification:
        """Create a new notification."""
        notification = Notification(user_id=user_id, **fields)
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def find_open_group(
        self,
        user_id: UUID,
        group_id: str,
        now: datetime,
    ) -> Notification | None:
        """Find the newest unread, unexpired notification of a group."""
        result = await self.session.execute(
            select(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.group_id == group_id,
                Notification.status == "unread",
                _not_expired(now),
            )
            .order_by(desc(Notification.created_at))
            .limit(1)
        )
        return result.scalar_one_or_none()

    def _filtered_query(
        self,
        query: Select,
        user_id: UUID,
        now: datetime,
        status: str | None = None,
        types: Sequence[str] | None = None,
        priority: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        search: str | None = None,
    ) -> Select:
        query = query.where(Notification.user_id == user_id)

        if status:
            query = query.where(Notification.status == status)
        else:
            query = query.where(
                Notification.status.not_in(HIDDEN_STATUSES),
                _not_expired(now),
            )

        if types is not None:
            query = query.where(Notification.type.in_(list(types)))
        if priority:
            query = query.where(Notification.priority == priority)
        if start_date:
            query = query.where(Notification.created_at >= start_date)
        if end_date:
            query = query.where(Notification.created_at <= end_date)
        if search:
            pattern = f"%{search}%"
            query = query.where(
                or_(Notification.title.ilike(pattern), Notification.message.ilike(pattern))
            )
        return query

    async def list_by_user(
        self,
        user_id: UUID,
        now: datetime,
        limit: int = 20,
        after: tuple[datetime, UUID] | None = None,
        **filters,
    ) -> list[Notification]:
        """
        List notifications for a user, newest first.

        ``after`` is the ``(created_at, id)`` of the last row already seen;
        rows sharing its timestamp are ordered by id so none are skipped.
        """
        query = self._filtered_query(select(Notification), user_id, now, **filters)
        if after:
            created_at, notification_id = after
            query = query.where(
                or_(
                    Notification.created_at < created_at,
                    and_(Notification.created_at == created_at, Notification.id < notification_id),
                )
            )

        query = query.order_by(desc(Notification.created_at), desc(Notification.id)).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_by_user(self, user_id: UUID, now: datetime, **filters) -> int:
        """Count notifications matching the listing filters."""
        query = self._filtered_query(
            select(func.count()).select_from(Notification), user_id, now, **filters
        )
        result = await self.session.execute(query)
        return result.scalar_one()

    async def count_unread(self, user_id: UUID, now: datetime) -> int:
        """Count unread, unexpired notifications for a user."""
        result = await self.session.execute(
            select(func.count())
            .select_from(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.status == "unread",
                _not_expired(now),
            )
        )
        return result.scalar_one()

    async def list_unread_ids(
        self,
        user_id: UUID,
        now: datetime,
        notification_ids: Sequence[UUID] | None = None,
    ) -> list[UUID]:
        """IDs of unread, unexpired notifications, optionally restricted to a set."""
        query = select(Notification.id).where(
            Notification.user_id == user_id,
            Notification.status == "unread",
            _not_expired(now),
        )
        if notification_ids is not None:
            query = query.where(Notification.id.in_(list(notification_ids)))

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_read(self, notification_ids: Sequence[UUID], now: datetime) -> int:
        """Move the given unread notifications to read."""
        if not notification_ids:
            return 0
        result = await self.session.execute(
            update(Notification)
            .where(
                Notification.id.in_(list(notification_ids)),
                Notification.status == "unread",
            )
            .values(status="read", read_at=now, updated_at=now)
        )
        await self.session.flush()
        return result.rowcount

    async def set_status(self, notification: Notification, status: str, now: datetime) -> Notification:
        """Set the status of a loaded notification."""
        notification.status = status
        notification.updated_at = now
        if status == "read" and notification.read_at is None:
            notification.read_at = now
        await self.session.flush()
        return notification

    async def delete(self, notification: Notification) -> None:
        """Hard-delete a notification."""
        await self.session.delete(notification)
        await self.session.flush()

    async def list_read_before(self, user_id: UUID, cutoff: datetime) -> list[UUID]:
        """IDs of read notifications created before the cutoff."""
        result = await self.session.execute(
            select(Notification.id).where(
                Notification.user_id == user_id,
                Notification.status == "read",
                Notification.created_at < cutoff,
            )
        )
        return list(result.scalars().all())

    async def archive(self, notification_ids: Sequence[UUID], now: datetime) -> int:
        """Move read notifications to archived."""
        if not notification_ids:
            return 0
        result = await self.session.execute(
            update(Notification)
            .where(
                Notification.id.in_(list(notification_ids)),
                Notification.status == "read",
            )
            .values(status="archived", updated_at=now)
        )
        await self.session.flush()
        return result.rowcount

    async def delete_expired(self, now: datetime) -> int:
        """Move every expired, not yet deleted notification to deleted."""
        result = await self.session.execute(
            update(Notification)
            .where(
                Notification.expires_at.is_not(None),
                Notification.expires_at <= now,
                Notification.status != "deleted",
            )
            .values(status="deleted", updated_at=now)
        )
        await self.session.flush()
        return result.rowcount
