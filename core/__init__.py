"""
Core modules for the notification service.

This package contains fundamental utilities used across the application:
- config: Application settings and configuration
- security: JWT token handling and authentication
- redis: Redis connection management
- exceptions: Custom exception classes
"""

from .config import Settings, get_settings
from .exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    CapabilityError,
    NotFoundError,
    PartialBatchFailure,
    TransportError,
    ValidationError,
)

__all__ = [
    # Config
    "get_settings",
    "Settings",
    # Exceptions
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "ValidationError",
    "TransportError",
    "CapabilityError",
    "PartialBatchFailure",
]
