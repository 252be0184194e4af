"""Route modules."""

from .downloads import router as downloads_router
from .health import router as health_router
from .jobs import router as jobs_router

__all__ = ["downloads_router", "health_router", "jobs_router"]
