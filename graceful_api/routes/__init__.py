"""API routes package."""

from graceful_api.routes.general import router as general_router
from graceful_api.routes.long_running import router as long_running_router

__all__ = [
    "general_router",
    "long_running_router",
]
