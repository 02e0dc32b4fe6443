"""
Schemas shared by the notification, preferences and push APIs.
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from core.exceptions import AppException
from utils.datetime import utcnow


class ErrorDetail(BaseModel):
    """Failure carried by an operation result instead of being raised."""

    code: str = Field(..., description="Machine-readable error code, e.g. recipient_not_found")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = None

    @classmethod
    def from_exception(cls, exc: AppException) -> "ErrorDetail":
        return cls(**exc.to_dict())


class HealthStatus(StrEnum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"

    @classmethod
    def combine(cls, required: "HealthStatus", optional: list["HealthStatus"]) -> "HealthStatus":
        """
        Overall status from one required component and any optional ones.

        The store is required: when it is down the service is unhealthy. An
        optional component going down (the redis fan-out) only degrades it.
        """
        if required != cls.HEALTHY:
            return required
        if any(status != cls.HEALTHY for status in optional):
            return cls.DEGRADED
        return cls.HEALTHY


class ComponentHealth(BaseModel):
    status: HealthStatus
    latency_ms: float | None = None
    error: str | None = None
    details: dict[str, Any] | None = None


class HealthCheckResponse(BaseModel):
    status: HealthStatus
    timestamp: datetime = Field(default_factory=utcnow)


class DetailedHealthCheckResponse(HealthCheckResponse):
    """Health of the notification store, the realtime channel and live sessions."""

    version: str
    environment: str
    uptime_seconds: float
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
