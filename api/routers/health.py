"""
Health check endpoints.

Provides basic and detailed health check functionality.
"""

import time

from fastapi import APIRouter, Depends

from api.dependencies import get_engine
from api.schemas.common import (
    ComponentHealth,
    DetailedHealthCheckResponse,
    HealthCheckResponse,
    HealthStatus,
)
from core.redis import RedisHealthCheck
from services.notification_engine import NotificationEngine

router = APIRouter(prefix="/health", tags=["health"])

# Track application start time for uptime calculation
_start_time = time.time()


async def _database_health(engine: NotificationEngine) -> ComponentHealth:
    start = time.perf_counter()
    try:
        await engine.database.ping()
    except Exception as e:
        return ComponentHealth(status=HealthStatus.UNHEALTHY, error=str(e))
    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
    )


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Basic health check",
    description="Quick health check endpoint for load balancers and container orchestration.",
)
async def health_check() -> HealthCheckResponse:
    """
    Basic health check.

    Returns a simple healthy status if the API is running.
    """
    return HealthCheckResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/detailed",
    response_model=DetailedHealthCheckResponse,
    summary="Detailed health check",
    description="Health of the notification store, realtime channel and live sessions.",
)
async def detailed_health_check(
    engine: NotificationEngine = Depends(get_engine),
) -> DetailedHealthCheckResponse:
    """
    Detailed health check with component status.

    Checks the health of:
    - Notification store (database)
    - Redis pub/sub (if the redis realtime backend is configured)
    """
    settings = engine.settings
    components = {"database": await _database_health(engine)}
    optional = []

    if settings.is_redis_realtime:
        redis_health = await RedisHealthCheck.check(engine.redis)
        components["redis"] = ComponentHealth(
            status=HealthStatus.HEALTHY if redis_health["status"] == "healthy" else HealthStatus.UNHEALTHY,
            latency_ms=redis_health.get("latency_ms"),
            error=redis_health.get("error"),
            details={"version": redis_health.get("version")} if redis_health.get("version") else None,
        )
        # In-process sessions still get events; other workers do not
        optional.append(components["redis"].status)

    listening = engine.broker is None or engine.broker.is_listening
    components["realtime"] = ComponentHealth(
        status=HealthStatus.HEALTHY if listening else HealthStatus.UNHEALTHY,
        details={
            "backend": settings.realtime_backend,
            "connections": engine.websockets.connection_count,
            "users": engine.websockets.user_count,
        },
    )
    optional.append(components["realtime"].status)

    return DetailedHealthCheckResponse(
        status=HealthStatus.combine(components["database"].status, optional),
        version=settings.app_version,
        environment=settings.environment,
        uptime_seconds=round(time.time() - _start_time, 2),
        components=components,
    )


@router.get(
    "/ready",
    response_model=HealthCheckResponse,
    summary="Readiness check",
    description="Check if the application is ready to accept traffic.",
)
async def readiness_check(
    engine: NotificationEngine = Depends(get_engine),
) -> HealthCheckResponse:
    """
    Readiness check for Kubernetes.

    Verifies that the notification store answers.
    """
    database = await _database_health(engine)
    return HealthCheckResponse(status=database.status)


@router.get(
    "/live",
    response_model=HealthCheckResponse,
    summary="Liveness check",
    description="Check if the application is alive.",
)
async def liveness_check() -> HealthCheckResponse:
    """Simple check that the application process is running."""
    return HealthCheckResponse(status=HealthStatus.HEALTHY)
