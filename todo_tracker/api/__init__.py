"""API layer - FastAPI endpoints."""

from .batch import router as batch_router
from .categories import router as categories_router
from .stats import router as stats_router
from .tags import router as tags_router
from .todos import router as todos_router
from .users import router as users_router

__all__ = [
    "batch_router",
    "todos_router",
    "stats_router",
    "categories_router",
    "tags_router",
    "users_router",
]
