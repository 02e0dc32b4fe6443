"""
Preferences repository for notification preference CRUD operations.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import NotificationPreference

PREFERENCE_FIELDS = (
    "global_enabled",
    "do_not_disturb",
    "do_not_disturb_start",
    "do_not_disturb_end",
    "channels",
    "type_preferences",
    "category_preferences",
    "quiet_hours",
)


class PreferencesRepository:
    """Repository for NotificationPreference model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_user_id(self, user_id: UUID) -> NotificationPreference | None:
        """Get preferences by user ID."""
        result = await self.session.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def create(self, user_id: UUID, values: dict) -> NotificationPreference:
        """Create preferences from a full set of values."""
        record = NotificationPreference(
            user_id=user_id,
            **{key: values[key] for key in PREFERENCE_FIELDS if key in values},
        )
        self.session.add(record)
        await self.session.flush()
        return record

    async def upsert(self, user_id: UUID, values: dict) -> NotificationPreference:
        """Create or overwrite user preferences."""
        record = await self.get_by_user_id(user_id)
        if not record:
            return await self.create(user_id, values)

        for key in PREFERENCE_FIELDS:
            if key in values:
                setattr(record, key, values[key])
        await self.session.flush()
        return record

    async def delete(self, user_id: UUID) -> bool:
        """Delete user preferences."""
        record = await self.get_by_user_id(user_id)
        if record:
            await self.session.delete(record)
            await self.session.flush()
            return True
        return False


def preferences_to_dict(record: NotificationPreference) -> dict:
    """Flatten a preference row into a plain dict."""
    return {key: getattr(record, key) for key in PREFERENCE_FIELDS}
