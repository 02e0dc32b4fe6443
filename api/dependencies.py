"""
FastAPI dependency injection for the notification engine.
"""

import logging
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError

from core.auth import AppUser, require_current_user
from core.exceptions import TransportError
from database.repositories import UserRepository
from services.notification_engine import NotificationEngine
from services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def get_engine(request: Request) -> NotificationEngine:
    """Get the engine created by the application lifespan."""
    return request.app.state.engine


def get_notification_service(
    engine: NotificationEngine = Depends(get_engine),
) -> NotificationService:
    """Get a NotificationService bound to the engine's database and publisher."""
    return engine.notification_service()


async def get_db_user_id(
    user: AppUser = Depends(require_current_user),
    engine: NotificationEngine = Depends(get_engine),
) -> UUID:
    """
    Get the database user ID for the authenticated user.

    The user row is created (or refreshed) from the token claims on first use.
    """
    try:
        async with engine.database.session() as session:
            db_user = await UserRepository(session).create_or_update(
                user.uuid,
                email=user.email,
                display_name=user.name,
            )
            return db_user.id
    except SQLAlchemyError as e:
        logger.error(f"Failed to resolve user {user.id}: {e}")
        raise TransportError(message="User store unavailable")
