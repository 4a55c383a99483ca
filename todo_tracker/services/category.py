"""Category service with business logic."""

import re
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import ConflictError, NotFoundError, ValidationError_
from ..core.logging import get_logger
from ..models import Category
from ..repositories import CategoryRepository

logger = get_logger(__name__)

# Цвет в формате #RRGGBB
COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

CATEGORY_NAME_MAX_LENGTH = 100
CATEGORY_UPDATABLE_FIELDS = frozenset({"name", "description", "color"})


class CategoryService:
    """
    Сервис для работы с категориями.

    Категории принадлежат пользователю, имя уникально в его пределах.
    """

    def __init__(self, db: AsyncSession):
        """Инициализация сервиса."""
        self.db = db
        self.category_repo = CategoryRepository(db)

    async def create_category(
        self,
        user_id: uuid.UUID,
        name: str,
        description: str | None = None,
        color: str | None = None,
    ) -> Category:
        """
        Создать категорию.

        Бизнес-правила:
        1. Название обязательно (пробелы обрезаются), до 100 символов
        2. Название уникально у пользователя
        3. Цвет (если указан) в формате #RRGGBB

        Raises:
            ValidationError_: Пустое имя или плохой цвет
            ConflictError: Категория с таким именем уже есть
        """
        # 1. ВАЛИДАЦИЯ
        name = self._clean_name(name)
        self._validate_color(color)

        # 2. ВАЛИДАЦИЯ: уникальность
        if await self.category_repo.name_taken(user_id, name):
            raise ConflictError("Category", "name", name)

        # 3. СОЗДАНИЕ
        category = Category(name=name, description=description, color=color, user_id=user_id)
        category = await self.category_repo.create(category)

        await self.db.flush()
        return category

    async def list_categories(self, user_id: uuid.UUID) -> list[Category]:
        return await self.category_repo.get_all_owned(user_id)

    async def get_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> Category:
        """
        Raises:
            NotFoundError: Категории нет или она чужая
        """
        category = await self.category_repo.get_owned(user_id, category_id)
        if not category:
            raise NotFoundError("Category", category_id)
        return category

    async def update_category(
        self, user_id: uuid.UUID, category_id: uuid.UUID, changes: dict[str, Any]
    ) -> Category:
        """
        Частичное обновление категории (только присланные поля).

        Raises:
            ValidationError_: Неизвестное поле, пустое имя, плохой цвет
            NotFoundError: Категория не найдена
            ConflictError: Новое имя уже занято другой категорией
        """
        unknown = set(changes) - CATEGORY_UPDATABLE_FIELDS
        if unknown:
            raise ValidationError_(f"Unknown fields: {', '.join(sorted(unknown))}")

        category = await self.get_category(user_id, category_id)

        updates: dict[str, Any] = {}
        if "name" in changes:
            name = self._clean_name(changes["name"])
            if await self.category_repo.name_taken(user_id, name, exclude_id=category.id):
                raise ConflictError("Category", "name", name)
            updates["name"] = name
        if "description" in changes:
            updates["description"] = changes["description"]
        if "color" in changes:
            self._validate_color(changes["color"])
            updates["color"] = changes["color"]

        if updates:
            category = await self.category_repo.update(category, **updates)
        return category

    async def delete_category(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        """
        Удалить категорию.

        Задачи категории НЕ удаляются: их category_id становится NULL.
        """
        category = await self.get_category(user_id, category_id)

        detached = await self.category_repo.detach_todos(category.id)
        await self.category_repo.delete(category.id)
        await self.db.flush()

        logger.info(
            "Category deleted",
            extra={"category_id": str(category_id), "detached_todos": detached},
        )

    # Вспомогательные методы (private)

    @staticmethod
    def _clean_name(name: str | None) -> str:
        if not name or not name.strip():
            raise ValidationError_("Category name cannot be empty", field="name")
        name = name.strip()
        if len(name) > CATEGORY_NAME_MAX_LENGTH:
            raise ValidationError_(
                f"Category name must be at most {CATEGORY_NAME_MAX_LENGTH} characters",
                field="name",
            )
        return name

    @staticmethod
    def _validate_color(color: str | None) -> None:
        if color is not None and not COLOR_PATTERN.match(color):
            raise ValidationError_("Color must be in #RRGGBB format", field="color")
