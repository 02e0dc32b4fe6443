"""
Central authentication module using locally verified JWT bearer tokens.
"""

import logging
import uuid
from dataclasses import dataclass, field

from fastapi import Header

from .config import get_settings
from .exceptions import AppException, AuthenticationError, AuthorizationError
from .security import bearer_token, decode_access_token

logger = logging.getLogger(__name__)


@dataclass
class AppUser:
    """Application user, constructed from a verified JWT payload."""

    id: str  # user UUID (sub claim)
    email: str | None
    name: str | None
    roles: list[str] = field(default_factory=list)
    claims: dict = field(default_factory=dict)

    @property
    def uuid(self) -> uuid.UUID:
        return uuid.UUID(self.id)

    @property
    def display_name(self) -> str:
        """Get the best display name for the user."""
        return self.name or self.email or self.id

    @property
    def is_admin(self) -> bool:
        """Check if the user may act as a notification producer."""
        return get_settings().admin_role in self.roles


def user_from_token(token: str) -> AppUser:
    """
    Build an AppUser from a bearer token.

    Raises:
        AuthenticationError: If the token is invalid or its subject is not a UUID
    """
    claims = decode_access_token(token)
    return AppUser(
        id=claims.user_id,
        email=claims.email,
        name=claims.name,
        roles=list(claims.roles),
        claims=claims.payload,
    )


# ============ FastAPI Dependencies ============


async def get_current_user(authorization: str | None = Header(None)) -> AppUser | None:
    """
    Get current user from JWT token in Authorization header.

    Returns None if not authenticated.
    """
    token = bearer_token(authorization)
    if not token:
        return None

    try:
        return user_from_token(token)
    except AppException as e:
        logger.warning("JWT verification failed: %s", e.message)
        return None


async def require_current_user(authorization: str | None = Header(None)) -> AppUser:
    """
    Require authenticated user.

    Raises 401 if not authenticated.
    """
    user = await get_current_user(authorization)
    if not user:
        raise AuthenticationError(message="Authentication required")
    return user


async def require_admin(authorization: str | None = Header(None)) -> AppUser:
    """
    Require the producer role.

    Raises 401 if not authenticated, 403 if not admin.
    """
    user = await require_current_user(authorization)
    if not user.is_admin:
        raise AuthorizationError(message="Admin privileges required")
    return user
