"""Category repository with specific queries."""

import uuid
from collections.abc import Iterable

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Category, Todo, utc_now
from .base import NamedRepository


class CategoryRepository(NamedRepository[Category]):
    """Репозиторий категорий (всегда в пределах одного пользователя)."""

    def __init__(self, db: AsyncSession):
        super().__init__(Category, db)

    async def get_many(
        self, user_id: uuid.UUID, category_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, Category]:
        """
        Получить несколько категорий одним запросом.

        Returns:
            Словарь {category_id: Category}. Чужие и несуществующие id
            просто отсутствуют в словаре.

        SQL эквивалент:
            SELECT * FROM categories
            WHERE id IN ({category_ids}) AND user_id = {user_id};
        """
        ids = set(category_ids)
        if not ids:
            return {}

        result = await self.db.execute(
            select(Category).where(Category.id.in_(ids), Category.user_id == user_id)
        )
        return {category.id: category for category in result.scalars().all()}

    async def name_taken(
        self, user_id: uuid.UUID, name: str, exclude_id: uuid.UUID | None = None
    ) -> bool:
        """Занято ли имя другой категорией пользователя."""
        query = select(Category.id).where(Category.user_id == user_id, Category.name == name)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)

        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def detach_todos(self, category_id: uuid.UUID) -> int:
        """
        Отвязать все задачи от категории (category_id -> NULL).

        То же самое делает ON DELETE SET NULL, но явный UPDATE
        не зависит от того, включены ли внешние ключи в SQLite.

        Returns:
            Количество отвязанных задач
        """
        result = await self.db.execute(
            update(Todo)
            .where(Todo.category_id == category_id)
            .values(category_id=None, updated_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )
        return result.rowcount
