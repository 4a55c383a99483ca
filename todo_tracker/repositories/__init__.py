"""Repository layer for database access."""

from .base import BaseRepository, NamedRepository, OwnedRepository
from .category import CategoryRepository
from .tag import TagRepository
from .todo import TodoRepository
from .user import UserRepository

__all__ = [
    "BaseRepository",
    "OwnedRepository",
    "NamedRepository",
    "UserRepository",
    "CategoryRepository",
    "TagRepository",
    "TodoRepository",
]
