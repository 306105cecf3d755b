"""API routers for the medication reminder service."""

from .health import router as health_router
from .line_webhook import router as line_webhook_router
from .medications import router as medications_router
from .settings import router as settings_router

__all__ = ["health_router", "line_webhook_router", "medications_router", "settings_router"]
