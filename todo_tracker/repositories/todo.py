"""Todo repository with specific queries."""

import uuid
from collections.abc import Iterable
from typing import Any

from sqlalchemy import ColumnElement, Row, case, delete, func, select, true, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Category, Todo, todo_tags, utc_now
from .base import OwnedRepository


class TodoRepository(OwnedRepository[Todo]):
    """
    Репозиторий для работы с задачами.

    Включает методы для:
    - Выборки страницы по скомпилированному плану фильтров
    - Массовых UPDATE/DELETE по набору id (batch операции)
    - Агрегации для статистики
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Todo, db)

    async def find_page(
        self,
        conditions: list[ColumnElement[bool]],
        order_by: list,
        offset: int,
        limit: int,
    ) -> list[Todo]:
        """
        Получить одну страницу задач.

        SQL эквивалент:
            SELECT * FROM todos
            WHERE {cond1} AND {cond2} ...
            ORDER BY created_at DESC, id DESC
            OFFSET {offset} LIMIT {limit};
        """
        result = await self.db.execute(
            select(Todo).where(*conditions).order_by(*order_by).offset(offset).limit(limit)
        )
        return list(result.scalars().all())

    async def count_matching(self, conditions: list[ColumnElement[bool]]) -> int:
        """
        Сколько всего задач подходит под условия (без пагинации).

        SQL эквивалент:
            SELECT COUNT(*) FROM todos WHERE {cond1} AND {cond2} ...;
        """
        result = await self.db.execute(select(func.count()).select_from(Todo).where(*conditions))
        return result.scalar_one()

    async def get_owned_ids(
        self, user_id: uuid.UUID, todo_ids: Iterable[uuid.UUID]
    ) -> set[uuid.UUID]:
        """
        Оставить из переданных id только существующие задачи пользователя.

        SQL эквивалент:
            SELECT id FROM todos WHERE id IN ({todo_ids}) AND user_id = {user_id};
        """
        ids = set(todo_ids)
        if not ids:
            return set()

        result = await self.db.execute(
            select(Todo.id).where(Todo.id.in_(ids), Todo.user_id == user_id)
        )
        return set(result.scalars().all())

    async def bulk_update(
        self, user_id: uuid.UUID, todo_ids: Iterable[uuid.UUID], values: dict[str, Any]
    ) -> set[uuid.UUID]:
        """
        Одним UPDATE применить одинаковые изменения к задачам пользователя.

        updated_at обновляется всегда.

        Returns:
            Id задач, которые UPDATE действительно изменил

        SQL эквивалент:
            UPDATE todos SET completed = ..., updated_at = now()
            WHERE id IN ({todo_ids}) AND user_id = {user_id}
            RETURNING id;
        """
        ids = list(todo_ids)
        if not ids:
            return set()

        result = await self.db.execute(
            update(Todo)
            .where(Todo.id.in_(ids), Todo.user_id == user_id)
            .values(**values, updated_at=utc_now())
            .returning(Todo.id)
            .execution_options(synchronize_session="fetch")
        )
        return set(result.scalars().all())

    async def bulk_delete(
        self, user_id: uuid.UUID, todo_ids: Iterable[uuid.UUID]
    ) -> set[uuid.UUID]:
        """
        Удалить задачи пользователя вместе с их связями с тегами.

        Returns:
            Id задач, которые DELETE действительно удалил

        SQL эквивалент:
            DELETE FROM todo_tags WHERE todo_id IN (
                SELECT id FROM todos WHERE id IN ({todo_ids}) AND user_id = {user_id}
            );
            DELETE FROM todos WHERE id IN ({todo_ids}) AND user_id = {user_id}
            RETURNING id;
        """
        ids = list(todo_ids)
        if not ids:
            return set()

        owned = select(Todo.id).where(Todo.id.in_(ids), Todo.user_id == user_id)
        await self.db.execute(delete(todo_tags).where(todo_tags.c.todo_id.in_(owned)))
        result = await self.db.execute(
            delete(Todo)
            .where(Todo.id.in_(ids), Todo.user_id == user_id)
            .returning(Todo.id)
            .execution_options(synchronize_session="fetch")
        )
        return set(result.scalars().all())

    async def touch(self, todo_id: uuid.UUID) -> None:
        """Обновить updated_at (например, после изменения тегов)."""
        await self.db.execute(
            update(Todo)
            .where(Todo.id == todo_id)
            .values(updated_at=utc_now())
            .execution_options(synchronize_session="fetch")
        )

    async def aggregate_by_priority_and_category(
        self, user_id: uuid.UUID, overdue: ColumnElement[bool]
    ) -> list[Row]:
        """
        Агрегаты по задачам пользователя ОДНИМ запросом.

        Один SELECT = один снимок данных: между подсчётами не может
        "вклиниться" чужая запись, поэтому итоги всегда согласованы.

        Returns:
            Строки (priority, category_id, category_name, total, completed, overdue)

        SQL эквивалент:
            SELECT t.priority, t.category_id, c.name,
                   COUNT(*),
                   SUM(CASE WHEN t.completed THEN 1 ELSE 0 END),
                   SUM(CASE WHEN {overdue} THEN 1 ELSE 0 END)
            FROM todos t
            LEFT JOIN categories c ON c.id = t.category_id AND c.user_id = t.user_id
            WHERE t.user_id = {user_id}
            GROUP BY t.priority, t.category_id, c.name;
        """
        completed_count = func.sum(case((Todo.completed == true(), 1), else_=0))
        overdue_count = func.sum(case((overdue, 1), else_=0))

        result = await self.db.execute(
            select(
                Todo.priority,
                Todo.category_id,
                Category.name,
                func.count(Todo.id).label("total"),
                completed_count.label("completed"),
                overdue_count.label("overdue"),
            )
            .select_from(Todo)
            .outerjoin(
                Category,
                (Category.id == Todo.category_id) & (Category.user_id == Todo.user_id),
            )
            .where(Todo.user_id == user_id)
            .group_by(Todo.priority, Todo.category_id, Category.name)
        )
        return list(result.all())
