"""
FastAPI application entry point.

This is the main entry point for the study tracker notification API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.middleware import setup_exception_handlers
from api.routers import (
    health_router,
    notifications_router,
    preferences_router,
    push_router,
    websocket_router,
)
from core.config import Settings, get_settings
from services.notification_engine import NotificationEngine

# Configure logging
logging.basicConfig(
    level=get_settings().log_level,
    format=get_settings().log_format,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events. A pre-built engine on
    ``app.state.engine`` is used as is (tests); otherwise one is created
    from settings.
    """
    settings = app.state.settings

    # ============ Startup ============
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")

    engine = getattr(app.state, "engine", None)
    if engine is None:
        engine = NotificationEngine(settings)
        app.state.engine = engine

    try:
        await engine.start()
    except Exception as e:
        logger.error(f"Failed to start notification engine: {e}")
        raise

    logger.info("Application startup complete")

    yield

    # ============ Shutdown ============
    logger.info("Shutting down application...")
    await engine.stop()
    logger.info("Application shutdown complete")


def create_app(
    settings: Settings | None = None,
    engine: NotificationEngine | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Notification eligibility and delivery engine for the study tracker",
        version=settings.app_version,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if engine is not None:
        app.state.engine = engine

    # ============ Middleware ============

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # ============ Exception Handlers ============
    setup_exception_handlers(app)

    # ============ Routers ============

    # Health check
    app.include_router(health_router, prefix="/api")

    # Preferences (before notifications so /notifications/{id} does not shadow it)
    app.include_router(preferences_router, prefix="/api")

    # Notifications
    app.include_router(notifications_router, prefix="/api")

    # Web push
    app.include_router(push_router, prefix="/api")

    # WebSocket
    app.include_router(websocket_router, prefix="/api")

    # ============ Root Endpoint ============

    @app.get("/", tags=["root"])
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "docs": "/docs" if not settings.is_production else None,
            "health": "/api/health",
        }

    return app


# Create application instance
app = create_app()


def run():
    """Run the application with uvicorn (for development)."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
