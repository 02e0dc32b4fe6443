"""
User repository for user CRUD operations.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import User


class UserRepository:
    """Repository for User model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_active(self, user_id: UUID) -> User | None:
        """Get user by ID if the account is active."""
        result = await self.session.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def list_active_ids(self) -> list[UUID]:
        """IDs of every active user."""
        result = await self.session.execute(select(User.id).where(User.is_active.is_(True)))
        return list(result.scalars().all())

    async def existing_ids(self, user_ids: Sequence[UUID]) -> set[UUID]:
        """Return the subset of IDs that belong to active users."""
        if not user_ids:
            return set()
        result = await self.session.execute(
            select(User.id).where(User.id.in_(list(user_ids)), User.is_active.is_(True))
        )
        return set(result.scalars().all())

    async def create_or_update(
        self,
        user_id: UUID,
        email: str | None = None,
        display_name: str | None = None,
    ) -> User:
        """
        Create or update a user from token claims.

        If user exists, refreshes email and display name.
        If user doesn't exist, creates a new user.
        """
        user = await self.get_by_id(user_id)

        if user:
            user.email = email or user.email
            user.display_name = display_name or user.display_name
        else:
            user = User(id=user_id, email=email, display_name=display_name)
            self.session.add(user)

        await self.session.flush()
        return user
