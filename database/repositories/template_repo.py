"""
Template repository for stored notification templates.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import NotificationTemplate
from database.seed_data import DEFAULT_TEMPLATES


class TemplateRepository:
    """Repository for NotificationTemplate model operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_name(self, name: str, active_only: bool = True) -> NotificationTemplate | None:
        """Get a template by its unique name."""
        query = select(NotificationTemplate).where(NotificationTemplate.name == name)
        if active_only:
            query = query.where(NotificationTemplate.is_active.is_(True))
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_active(self) -> list[NotificationTemplate]:
        """List active templates ordered by name."""
        result = await self.session.execute(
            select(NotificationTemplate)
            .where(NotificationTemplate.is_active.is_(True))
            .order_by(NotificationTemplate.name)
        )
        return list(result.scalars().all())

    async def create(self, **fields) -> NotificationTemplate:
        """Create a new template."""
        template = NotificationTemplate(**fields)
        self.session.add(template)
        await self.session.flush()
        return template

    async def seed_defaults(self) -> int:
        """Insert any default template that is missing. Returns how many were added."""
        result = await self.session.execute(select(NotificationTemplate.name))
        existing = set(result.scalars().all())

        added = 0
        for template in DEFAULT_TEMPLATES:
            if template["name"] in existing:
                continue
            self.session.add(NotificationTemplate(**template))
            added += 1

        await self.session.flush()
        return added
