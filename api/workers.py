"""
ARQ background worker for notification housekeeping.

Run with:
    arq api.workers.WorkerSettings

Tasks:
    - cleanup_expired_notifications: Move expired notifications to deleted.
      Runs hourly.
    - archive_old_notifications: Archive read notifications older than
      NOTIFICATION_ARCHIVE_AFTER_DAYS for every active user. Runs daily (03:00).
"""

import logging
from urllib.parse import urlparse

from arq import cron
from arq.connections import RedisSettings

from core.config import get_settings
from database import Database
from database.repositories import UserRepository
from services.notification_service import NotificationService, NotificationServiceConfig

logger = logging.getLogger(__name__)

# Configure logging for the worker process
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


# ── Lifecycle hooks ──────────────────────────────────────────────────────────


async def startup(ctx: dict) -> None:
    """Open the database and build the orchestrator for the worker."""
    logger.info("ARQ worker starting up...")

    settings = get_settings()
    database = Database.from_settings(settings)
    ctx["database"] = database
    # No realtime publisher: housekeeping changes are picked up on the next fetch
    ctx["notification_service"] = NotificationService(
        database,
        config=NotificationServiceConfig.from_settings(settings),
    )
    logger.info("NotificationService ready")


async def shutdown(ctx: dict) -> None:
    """Clean up resources on worker shutdown."""
    logger.info("ARQ worker shutting down...")
    await ctx["database"].close()


# ── Tasks ────────────────────────────────────────────────────────────────────


async def cleanup_expired_notifications(ctx: dict) -> dict:
    """Collect expired notifications.

    Returns:
        Dict with the number of notifications moved to deleted.
    """
    service: NotificationService = ctx["notification_service"]
    result = await service.cleanup_expired_notifications()
    if not result.success:
        logger.error("Expiry sweep failed: %s", result.error.message)
        return {"collected": 0, "error": result.error.code}
    logger.info("Expiry sweep finished: %d collected", result.count)
    return {"collected": result.count}


async def archive_old_notifications(ctx: dict, days_old: int | None = None) -> dict:
    """Archive old read notifications for every active user.

    Args:
        ctx: ARQ context (contains the database and service from startup).
        days_old: Age threshold in days (default from settings).

    Returns:
        Dict with archived and failed-user counts.
    """
    service: NotificationService = ctx["notification_service"]
    days_old = days_old or get_settings().notification_archive_after_days

    async with ctx["database"].session() as session:
        user_ids = await UserRepository(session).list_active_ids()

    archived = 0
    failed = 0
    for user_id in user_ids:
        result = await service.archive_old_notifications(user_id, days_old=days_old)
        if result.success:
            archived += result.count
        else:
            failed += 1
            logger.warning("Archiving failed for %s: %s", user_id, result.error.message)

    logger.info("Archiving finished: %d archived, %d users failed", archived, failed)
    return {"archived": archived, "failed_users": failed}


# ── ARQ configuration ───────────────────────────────────────────────────────


def _parse_redis_settings() -> RedisSettings:
    """Parse REDIS_URL into arq RedisSettings."""
    url = get_settings().redis_url
    parsed = urlparse(url)
    return RedisSettings(
        host=parsed.hostname or "localhost",
        port=parsed.port or 6379,
        database=int(parsed.path.lstrip("/") or 0),
        password=parsed.password,
    )


class WorkerSettings:
    """ARQ worker configuration."""

    functions = [cleanup_expired_notifications, archive_old_notifications]

    cron_jobs = [
        cron(cleanup_expired_notifications, minute=0, run_at_startup=True),
        cron(archive_old_notifications, hour=3, minute=0, run_at_startup=False),
    ]

    on_startup = startup
    on_shutdown = shutdown

    redis_settings = _parse_redis_settings()

    max_jobs = 2
    job_timeout = 600
