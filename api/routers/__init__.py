"""
API routers for different endpoints.
"""

from .health import router as health_router
from .notifications import router as notifications_router
from .preferences import router as preferences_router
from .push import router as push_router
from .websocket import router as websocket_router

__all__ = [
    "health_router",
    "notifications_router",
    "preferences_router",
    "push_router",
    "websocket_router",
]
