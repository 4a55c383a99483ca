"""Base repository with common CRUD operations."""

import uuid
from typing import Any, Generic, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.base import Base

# TypeVar для Generic класса - позволяет работать с любой моделью
ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """
    Базовый репозиторий с CRUD операциями.

    Generic[ModelType] означает, что этот класс работает с любой моделью,
    наследующейся от Base.

    Репозиторий никогда не делает commit(): только flush().
    Транзакцией управляет владелец сессии (get_db - одна транзакция на запрос).
    """

    def __init__(self, model: type[ModelType], db: AsyncSession):
        """
        Args:
            model: Класс модели SQLAlchemy (например, Todo, Category)
            db: Асинхронная сессия базы данных
        """
        self.model = model
        self.db = db

    async def create(self, obj: ModelType) -> ModelType:
        """
        Создать новую запись в БД.

        flush() отправляет INSERT, но не commit;
        refresh() подтягивает значения по умолчанию из БД.
        """
        self.db.add(obj)
        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def get_by_id(self, id: uuid.UUID) -> ModelType | None:
        """
        Получить объект по ID (без проверки владельца).

        SQL эквивалент:
            SELECT * FROM table WHERE id = {id} LIMIT 1;
        """
        result = await self.db.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def update(self, obj: ModelType, **kwargs: Any) -> ModelType:
        """
        Обновить поля уже загруженного объекта.

        Пример:
            todo = await repo.update(todo, title="Новое название", completed=True)
        """
        for key, value in kwargs.items():
            setattr(obj, key, value)

        await self.db.flush()
        await self.db.refresh(obj)
        return obj

    async def delete(self, id: uuid.UUID) -> bool:
        """
        Удалить запись по ID.

        Returns:
            True если удалено, False если не найдено
        """
        result = await self.db.execute(delete(self.model).where(self.model.id == id))
        return result.rowcount > 0


class OwnedRepository(BaseRepository[ModelType]):
    """
    Репозиторий для моделей с владельцем (колонка user_id).

    Все методы здесь фильтруют по user_id: запись другого пользователя
    выглядит так же, как несуществующая.
    """

    async def get_owned(self, user_id: uuid.UUID, id: uuid.UUID) -> ModelType | None:
        """
        Получить запись пользователя по ID.

        SQL эквивалент:
            SELECT * FROM table WHERE id = {id} AND user_id = {user_id};
        """
        result = await self.db.execute(
            select(self.model).where(self.model.id == id, self.model.user_id == user_id)
        )
        return result.scalar_one_or_none()


class NamedRepository(OwnedRepository[ModelType]):
    """Репозиторий для моделей с владельцем и уникальным (в пределах пользователя) name."""

    async def get_all_owned(self, user_id: uuid.UUID) -> list[ModelType]:
        """Все записи пользователя, отсортированные по имени."""
        result = await self.db.execute(
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.name, self.model.id)
        )
        return list(result.scalars().all())

    async def get_by_name(self, user_id: uuid.UUID, name: str) -> ModelType | None:
        """
        Найти запись пользователя по точному имени.

        SQL эквивалент:
            SELECT * FROM table WHERE user_id = {user_id} AND name = {name};
        """
        result = await self.db.execute(
            select(self.model).where(self.model.user_id == user_id, self.model.name == name)
        )
        return result.scalar_one_or_none()
