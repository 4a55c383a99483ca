"""Tag repository with specific queries."""

import uuid
from collections.abc import Iterable

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Tag, todo_tags
from .base import NamedRepository


class TagRepository(NamedRepository[Tag]):
    """
    Репозиторий для работы с тегами.

    Теги уникальны в пределах пользователя, связь с задачами - через todo_tags.
    """

    def __init__(self, db: AsyncSession):
        super().__init__(Tag, db)

    async def bulk_get_or_create(self, user_id: uuid.UUID, tag_names: Iterable[str]) -> list[Tag]:
        """
        Массовое получение/создание тегов пользователя ("find or create").

        Args:
            user_id: Владелец тегов
            tag_names: Имена тегов (пустые игнорируются, дубликаты схлопываются)

        Returns:
            Теги в порядке первого упоминания имени

        Вместо N запросов делаем 1 SELECT + 1 flush:
            tags = await repo.bulk_get_or_create(user_id, ["urgent", "work", "urgent"])
            # -> [<Tag urgent>, <Tag work>]
        """
        names: list[str] = []
        for raw_name in tag_names:
            name = raw_name.strip()
            if name and name not in names:
                names.append(name)

        if not names:
            return []

        # Все существующие теги пользователя за один запрос
        result = await self.db.execute(
            select(Tag).where(Tag.user_id == user_id, Tag.name.in_(names))
        )
        by_name = {tag.name: tag for tag in result.scalars().all()}

        new_tags = []
        for name in names:
            if name not in by_name:
                tag = Tag(name=name, user_id=user_id)
                self.db.add(tag)
                by_name[name] = tag
                new_tags.append(tag)

        if new_tags:
            await self.db.flush()

        return [by_name[name] for name in names]

    async def get_links_for_todos(
        self, user_id: uuid.UUID, todo_ids: Iterable[uuid.UUID]
    ) -> list[tuple[uuid.UUID, Tag]]:
        """
        Получить теги сразу для набора задач (один запрос на всю страницу).

        Returns:
            Список пар (todo_id, Tag), отсортированный по имени тега

        SQL эквивалент:
            SELECT todo_tags.todo_id, tags.*
            FROM todo_tags
            JOIN tags ON tags.id = todo_tags.tag_id
            WHERE todo_tags.todo_id IN ({todo_ids}) AND tags.user_id = {user_id}
            ORDER BY tags.name, tags.id;
        """
        ids = set(todo_ids)
        if not ids:
            return []

        result = await self.db.execute(
            select(todo_tags.c.todo_id, Tag)
            .join(Tag, Tag.id == todo_tags.c.tag_id)
            .where(todo_tags.c.todo_id.in_(ids), Tag.user_id == user_id)
            .order_by(Tag.name, Tag.id)
        )
        return [(row[0], row[1]) for row in result.all()]

    async def is_linked(self, todo_id: uuid.UUID, tag_id: uuid.UUID) -> bool:
        result = await self.db.execute(
            select(todo_tags.c.todo_id).where(
                todo_tags.c.todo_id == todo_id, todo_tags.c.tag_id == tag_id
            )
        )
        return result.first() is not None

    async def link(self, todo_id: uuid.UUID, tag_ids: Iterable[uuid.UUID]) -> None:
        """
        Привязать теги к задаче (уже привязанные пропускаются).

        SQL эквивалент:
            INSERT INTO todo_tags (todo_id, tag_id) VALUES ...;
        """
        wanted = list(dict.fromkeys(tag_ids))
        if not wanted:
            return

        result = await self.db.execute(
            select(todo_tags.c.tag_id).where(
                todo_tags.c.todo_id == todo_id, todo_tags.c.tag_id.in_(wanted)
            )
        )
        existing = set(result.scalars().all())

        rows = [{"todo_id": todo_id, "tag_id": tag_id} for tag_id in wanted if tag_id not in existing]
        if rows:
            await self.db.execute(insert(todo_tags), rows)

    async def unlink(self, todo_id: uuid.UUID, tag_id: uuid.UUID) -> bool:
        """Отвязать тег от задачи. True если связь была."""
        result = await self.db.execute(
            delete(todo_tags).where(todo_tags.c.todo_id == todo_id, todo_tags.c.tag_id == tag_id)
        )
        return result.rowcount > 0

    async def replace_links(self, todo_id: uuid.UUID, tag_ids: Iterable[uuid.UUID]) -> None:
        """Заменить набор тегов задачи целиком."""
        await self.db.execute(delete(todo_tags).where(todo_tags.c.todo_id == todo_id))
        await self.link(todo_id, tag_ids)

    async def delete_with_links(self, tag_id: uuid.UUID) -> bool:
        """Удалить тег и все его связи с задачами."""
        await self.db.execute(delete(todo_tags).where(todo_tags.c.tag_id == tag_id))
        return await self.delete(tag_id)
