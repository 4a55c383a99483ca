"""Tag service with business logic."""

import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError, ValidationError_
from ..core.logging import get_logger
from ..models import Tag
from ..repositories import TagRepository, TodoRepository

logger = get_logger(__name__)

TAG_NAME_MAX_LENGTH = 50


class TagService:
    """
    Сервис для работы с тегами.

    Теги принадлежат пользователю. Привязать можно только свой тег к своей задаче.
    """

    def __init__(self, db: AsyncSession):
        """Инициализация сервиса."""
        self.db = db
        self.tag_repo = TagRepository(db)
        self.todo_repo = TodoRepository(db)

    async def create_tag(self, user_id: uuid.UUID, name: str) -> Tag:
        """
        Создать новый тег.

        Бизнес-правила:
        1. Название обязательно (пробелы обрезаются), до 50 символов
        2. Название уникально у пользователя

        Raises:
            ValidationError_: Пустое или слишком длинное имя
            ConflictError: Тег уже существует
        """
        # 1. ВАЛИДАЦИЯ: Название не пустое
        if not name or not name.strip():
            raise ValidationError_("Tag name cannot be empty", field="name")
        name = name.strip()
        if len(name) > TAG_NAME_MAX_LENGTH:
            raise ValidationError_(
                f"Tag name must be at most {TAG_NAME_MAX_LENGTH} characters", field="name"
            )

        # 2. ВАЛИДАЦИЯ: Проверка уникальности
        existing = await self.tag_repo.get_by_name(user_id, name)
        if existing:
            raise ConflictError("Tag", "name", name)

        # 3. СОЗДАНИЕ: Создать тег
        tag = await self.tag_repo.create(Tag(name=name, user_id=user_id))

        await self.db.flush()
        return tag

    async def list_tags(self, user_id: uuid.UUID) -> list[Tag]:
        return await self.tag_repo.get_all_owned(user_id)

    async def get_tag(self, user_id: uuid.UUID, tag_id: uuid.UUID) -> Tag:
        tag = await self.tag_repo.get_owned(user_id, tag_id)
        if not tag:
            raise NotFoundError("Tag", tag_id)
        return tag

    async def delete_tag(self, user_id: uuid.UUID, tag_id: uuid.UUID) -> None:
        """Удалить тег (связи с задачами удаляются, сами задачи остаются)."""
        tag = await self.get_tag(user_id, tag_id)

        await self.tag_repo.delete_with_links(tag.id)
        await self.db.flush()

        logger.info("Tag deleted", extra={"tag_id": str(tag_id)})

    async def assign_tag(self, user_id: uuid.UUID, todo_id: uuid.UUID, tag_id: uuid.UUID) -> None:
        """
        Привязать тег к задаче.

        Повторная привязка - не ошибка (идемпотентно).

        Raises:
            NotFoundError: Задача или тег не найдены у пользователя
        """
        await self._ensure_todo_owned(user_id, todo_id)
        tag = await self.get_tag(user_id, tag_id)

        if not await self.tag_repo.is_linked(todo_id, tag.id):
            await self.tag_repo.link(todo_id, [tag.id])
            await self.todo_repo.touch(todo_id)
        await self.db.flush()

    async def remove_tag(self, user_id: uuid.UUID, todo_id: uuid.UUID, tag_id: uuid.UUID) -> None:
        """
        Отвязать тег от задачи.

        Raises:
            NotFoundError: Задача, тег или сама связь не найдены
        """
        await self._ensure_todo_owned(user_id, todo_id)
        tag = await self.get_tag(user_id, tag_id)

        if not await self.tag_repo.unlink(todo_id, tag.id):
            raise NotFoundError("Tag link", f"{todo_id}/{tag_id}")
        await self.todo_repo.touch(todo_id)
        await self.db.flush()

    async def _ensure_todo_owned(self, user_id: uuid.UUID, todo_id: uuid.UUID) -> None:
        if not await self.todo_repo.get_owned_ids(user_id, [todo_id]):
            raise NotFoundError("Todo", todo_id)
