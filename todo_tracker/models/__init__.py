"""SQLAlchemy models for Todo Tracker."""

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, to_naive_utc, utc_now
from .category import Category
from .tag import Tag
from .todo import MAX_PRIORITY, MIN_PRIORITY, Todo, TodoPriority
from .todo_tag import todo_tags
from .user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "utc_now",
    "to_naive_utc",
    "User",
    "Category",
    "Tag",
    "Todo",
    "TodoPriority",
    "MIN_PRIORITY",
    "MAX_PRIORITY",
    "todo_tags",
]
