"""
Push subscription repository.
"""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import PushSubscription
from utils.datetime import utcnow


class PushSubscriptionRepository:
    """Repository for PushSubscription model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_endpoint(self, endpoint: str) -> PushSubscription | None:
        """Get subscription by its (unique) endpoint."""
        result = await self.session.execute(
            select(PushSubscription).where(PushSubscription.endpoint == endpoint)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self,
        user_id: UUID,
        endpoint: str,
        p256dh: str,
        auth: str,
        device_info: dict | None = None,
    ) -> PushSubscription:
        """
        Create or refresh the subscription for an endpoint.

        An endpoint re-registered by another user moves to that user.
        """
        now = utcnow()
        record = await self.get_by_endpoint(endpoint)
        if record:
            record.user_id = user_id
            record.p256dh = p256dh
            record.auth = auth
            record.device_info = device_info or {}
            record.is_active = True
            record.last_used_at = now
        else:
            record = PushSubscription(
                user_id=user_id,
                endpoint=endpoint,
                p256dh=p256dh,
                auth=auth,
                device_info=device_info or {},
                is_active=True,
                last_used_at=now,
            )
            self.session.add(record)

        await self.session.flush()
        return record

    async def list_active_by_user(self, user_id: UUID) -> list[PushSubscription]:
        """List the user's active subscriptions, most recently used first."""
        result = await self.session.execute(
            select(PushSubscription)
            .where(
                PushSubscription.user_id == user_id,
                PushSubscription.is_active.is_(True),
            )
            .order_by(PushSubscription.last_used_at.desc())
        )
        return list(result.scalars().all())

    async def delete_by_user_and_endpoint(self, user_id: UUID, endpoint: str) -> int:
        """Delete the subscription matching (user, endpoint)."""
        result = await self.session.execute(
            delete(PushSubscription).where(
                PushSubscription.user_id == user_id,
                PushSubscription.endpoint == endpoint,
            )
        )
        await self.session.flush()
        return result.rowcount
