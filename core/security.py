"""
Bearer token verification for study tracker users.

Tokens are issued by the main study tracker application; this service only
verifies them with the shared secret and reads the claims it needs: ``sub``
(the user's UUID) and ``roles`` (a list, or a space-separated string). The
configured admin role marks notification producers.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any

from jose import JWTError, jwt

from .config import get_settings
from .exceptions import AuthenticationError


@dataclass(frozen=True)
class TokenClaims:
    """Verified claims of a study tracker access token."""

    user_id: str
    roles: tuple[str, ...] = ()
    email: str | None = None
    name: str | None = None
    payload: dict[str, Any] = field(default_factory=dict, compare=False)


def _roles(value: Any) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        return tuple(value.split())
    if isinstance(value, (list, tuple)) and all(isinstance(role, str) for role in value):
        return tuple(value)
    raise AuthenticationError(message="Token roles claim is malformed")


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify a token's signature and expiry and read its claims.

    Raises:
        AuthenticationError: If the token is invalid, expired, has no
            subject, or its subject is not a user UUID
    """
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"leeway": settings.jwt_leeway_seconds},
        )
    except JWTError as e:
        raise AuthenticationError(
            message="Invalid or expired token",
            details={"error": str(e)},
        )

    subject = payload.get("sub")
    if not subject:
        raise AuthenticationError(message="Token has no subject")
    try:
        user_id = str(uuid.UUID(str(subject)))
    except ValueError:
        raise AuthenticationError(message="Token subject is not a valid user id")

    return TokenClaims(
        user_id=user_id,
        roles=_roles(payload.get("roles")),
        email=payload.get("email"),
        name=payload.get("name"),
        payload=payload,
    )


def bearer_token(authorization: str | None) -> str | None:
    """Token from a ``Bearer <token>`` Authorization header, or None."""
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]
