"""
Сборка полного представления задачи (категория + теги).

Почему не selectinload / не запрос на каждую задачу:
для страницы из N задач делаем РОВНО два дополнительных запроса,
независимо от N:

    1. SELECT * FROM categories WHERE id IN (...) AND user_id = ...
    2. SELECT todo_tags.todo_id, tags.* FROM todo_tags JOIN tags ...
       WHERE todo_tags.todo_id IN (...) AND tags.user_id = ...

а затем склеиваем результат в памяти по id.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Category, Tag, Todo
from ..repositories import CategoryRepository, TagRepository


@dataclass
class TodoView:
    """Задача в денормализованном виде: как её видит клиент."""

    id: uuid.UUID
    title: str
    description: str | None
    completed: bool
    user_id: uuid.UUID
    category: Category | None
    priority: int
    due_date: datetime | None
    created_at: datetime
    updated_at: datetime
    tags: list[Tag] = field(default_factory=list)

    @classmethod
    def from_todo(
        cls, todo: Todo, category: Category | None = None, tags: list[Tag] | None = None
    ) -> "TodoView":
        return cls(
            id=todo.id,
            title=todo.title,
            description=todo.description,
            completed=todo.completed,
            user_id=todo.user_id,
            category=category,
            priority=todo.priority,
            due_date=todo.due_date,
            created_at=todo.created_at,
            updated_at=todo.updated_at,
            tags=list(tags or []),
        )


class RelationAssembler:
    """Собирает TodoView для пачки задач одного пользователя."""

    def __init__(self, db: AsyncSession):
        self.category_repo = CategoryRepository(db)
        self.tag_repo = TagRepository(db)

    async def assemble(self, user_id: uuid.UUID, todos: Sequence[Todo]) -> list[TodoView]:
        """
        Обогатить задачи категориями и тегами.

        Args:
            user_id: Владелец задач
            todos: Уже отфильтрованные задачи (порядок сохраняется)

        Returns:
            Список TodoView в том же порядке

        Категория, которой нет среди найденных строк, становится None
        (не ошибка). Теги каждой задачи отсортированы по имени.
        """
        if not todos:
            return []

        category_ids = {todo.category_id for todo in todos if todo.category_id is not None}
        categories = await self.category_repo.get_many(user_id, category_ids)

        tags_by_todo: dict[uuid.UUID, list[Tag]] = {todo.id: [] for todo in todos}
        for todo_id, tag in await self.tag_repo.get_links_for_todos(user_id, tags_by_todo):
            tags_by_todo[todo_id].append(tag)

        return [
            TodoView.from_todo(
                todo,
                category=categories.get(todo.category_id) if todo.category_id else None,
                tags=tags_by_todo[todo.id],
            )
            for todo in todos
        ]

    async def assemble_one(self, user_id: uuid.UUID, todo: Todo) -> TodoView:
        views = await self.assemble(user_id, [todo])
        return views[0]
