"""Todo model."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class TodoPriority(enum.IntEnum):
    """
    Приоритет задачи.

    В БД и в API хранится как целое 0..4.
    """

    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    URGENT = 4


MIN_PRIORITY = int(min(TodoPriority))
MAX_PRIORITY = int(max(TodoPriority))


class Todo(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Задача пользователя.

    Связи (категория, теги) не грузятся через relationship:
    их собирает RelationAssembler двумя пакетными запросами.
    """

    __tablename__ = "todos"
    __table_args__ = (
        CheckConstraint(
            f"priority >= {MIN_PRIORITY} AND priority <= {MAX_PRIORITY}",
            name="ck_todos_priority_range",
        ),
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, index=True, nullable=False)
    priority: Mapped[int] = mapped_column(
        Integer, default=int(TodoPriority.NONE), index=True, nullable=False
    )
    due_date: Mapped[datetime | None] = mapped_column(DateTime, index=True, nullable=True)

    # Foreign Keys
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("categories.id", ondelete="SET NULL"), index=True, nullable=True
    )

    def __repr__(self) -> str:
        return f"<Todo(id={self.id}, title='{self.title}', completed={self.completed})>"
