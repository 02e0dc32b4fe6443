"""
Custom exception classes for the application.

All exceptions inherit from AppException and include:
- error_code: Machine-readable error code for i18n
- message: Human-readable error message
- status_code: HTTP status code to return
"""

from typing import Any


class AppException(Exception):
    """Base exception for all application errors."""

    error_code: str = "internal_error"
    message: str = "An unexpected error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class AuthenticationError(AppException):
    """Raised when authentication fails."""

    error_code = "authentication_failed"
    message = "Authentication failed"
    status_code = 401


class AuthorizationError(AppException):
    """Raised when user lacks permission."""

    error_code = "authorization_failed"
    message = "You do not have permission to perform this action"
    status_code = 403


class NotFoundError(AppException):
    """Raised when a recipient, notification or template is unknown."""

    error_code = "not_found"
    message = "Resource not found"
    status_code = 404


class ValidationError(AppException):
    """Raised when a request is malformed."""

    error_code = "validation_error"
    message = "Invalid input"
    status_code = 422


class TransportError(AppException):
    """Raised when the notification store or realtime channel is unreachable."""

    error_code = "transport_error"
    message = "Notification store unavailable"
    status_code = 503


class CapabilityError(AppException):
    """Raised when the push runtime lacks a capability or permission."""

    error_code = "push_unavailable"
    message = "Push notifications are not available"
    status_code = 501


class PartialBatchFailure(AppException):
    """
    Reported when some recipients of a bulk send failed.

    Never raised out of a bulk send; ``BulkNotificationResult.failure``
    builds one from the batch outcome.
    """

    error_code = "partial_batch_failure"
    message = "Some notifications could not be delivered"
    status_code = 207
