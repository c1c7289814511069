"""API route modules."""

from .health import router as health_router
from .records import expenses_router, votes_router

__all__ = [
    "health_router",
    "expenses_router",
    "votes_router",
]
