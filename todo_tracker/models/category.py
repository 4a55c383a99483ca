"""Category model."""

import uuid

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Category(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """
    Категория задач (у задачи максимум одна категория).

    Имя уникально в пределах пользователя.
    При удалении категории задачи не удаляются - category_id становится NULL.
    """

    __tablename__ = "categories"
    __table_args__ = (UniqueConstraint("name", "user_id", name="uq_categories_name_user"),)

    name: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str | None] = mapped_column(String(7), nullable=True)  # hex color
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name='{self.name}')>"
