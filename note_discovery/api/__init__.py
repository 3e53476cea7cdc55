"""API endpoints for the note discovery service."""

from .search import router as search_router
from .credits import router as credits_router
from .health import router as health_router
from .metrics import router as metrics_router

__all__ = [
    "search_router",
    "credits_router",
    "health_router",
    "metrics_router",
]
