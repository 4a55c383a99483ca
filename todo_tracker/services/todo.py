"""Todo service with business logic."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError, ValidationError_
from ..models import Todo, TodoPriority, to_naive_utc, utc_now
from ..repositories import CategoryRepository, TagRepository, TodoRepository
from .assembler import RelationAssembler, TodoView
from .filters import TodoFilter, compile_filter, validate_priority
from .tag import TAG_NAME_MAX_LENGTH

# Поля, которые можно менять через update_todo
UPDATABLE_FIELDS = frozenset(
    {"title", "description", "completed", "priority", "due_date", "category_id", "tags"}
)

# Эти поля нельзя "очистить" (передать None)
NON_NULLABLE_FIELDS = frozenset({"title", "completed", "priority", "tags"})


class TodoService:
    """
    Сервис для работы с задачами.

    Каждый метод принимает user_id и работает только с данными этого пользователя.
    Чужая задача для сервиса "не существует" (NotFoundError), а не "запрещена".
    """

    def __init__(self, db: AsyncSession):
        """Инициализация сервиса с несколькими репозиториями."""
        self.db = db
        self.todo_repo = TodoRepository(db)
        self.category_repo = CategoryRepository(db)
        self.tag_repo = TagRepository(db)
        self.assembler = RelationAssembler(db)

    async def list_todos(
        self, user_id: uuid.UUID, criteria: TodoFilter | None = None
    ) -> tuple[list[TodoView], int]:
        """
        Получить страницу задач с фильтрами.

        Args:
            user_id: Владелец
            criteria: Фильтры и пагинация (все поля опциональны)

        Returns:
            (задачи текущей страницы, общее количество подходящих задач)

        Поток:
            compile_filter -> COUNT + SELECT страницы -> RelationAssembler
        """
        plan = compile_filter(user_id, criteria or TodoFilter())

        total = await self.todo_repo.count_matching(plan.conditions)
        todos = await self.todo_repo.find_page(
            plan.conditions, plan.order_by, plan.offset, plan.limit
        )
        return await self.assembler.assemble(user_id, todos), total

    async def get_todo(self, user_id: uuid.UUID, todo_id: uuid.UUID) -> TodoView:
        """
        Получить задачу со всеми связями.

        Raises:
            NotFoundError: Задачи нет или она чужая
        """
        todo = await self._get_owned_todo(user_id, todo_id)
        return await self.assembler.assemble_one(user_id, todo)

    async def create_todo(
        self,
        user_id: uuid.UUID,
        title: str,
        description: str | None = None,
        priority: int = TodoPriority.NONE,
        due_date: datetime | None = None,
        category_id: uuid.UUID | None = None,
        tags: list[str] | None = None,
    ) -> TodoView:
        """
        Создать задачу.

        Бизнес-правила:
        1. Название обязательно (пробелы обрезаются)
        2. Приоритет 0..4
        3. Категория (если указана) принадлежит тому же пользователю
        4. Теги по имени: существующий тег пользователя переиспользуется,
           иначе создаётся новый ("find or create"), имя до 50 символов
        """
        # 1. ВАЛИДАЦИЯ
        title = self._clean_title(title)
        priority = validate_priority(priority)
        self._check_tag_names(tags or [])
        if category_id is not None:
            await self._ensure_category_owned(user_id, category_id)

        # 2. СОЗДАНИЕ: оба timestamp из одного момента времени
        now = utc_now()
        todo = Todo(
            title=title,
            description=description,
            completed=False,
            priority=int(priority),
            due_date=to_naive_utc(due_date),
            user_id=user_id,
            category_id=category_id,
            created_at=now,
            updated_at=now,
        )
        todo = await self.todo_repo.create(todo)

        # 3. КООРДИНАЦИЯ: теги
        if tags:
            tag_objs = await self.tag_repo.bulk_get_or_create(user_id, tags)
            await self.tag_repo.link(todo.id, [tag.id for tag in tag_objs])

        await self.db.flush()
        return await self.assembler.assemble_one(user_id, todo)

    async def update_todo(
        self, user_id: uuid.UUID, todo_id: uuid.UUID, changes: dict[str, Any]
    ) -> TodoView:
        """
        Частичное обновление задачи.

        Args:
            changes: Только присланные поля. Ключ есть = поле меняется,
                ключа нет = поле не трогаем. None для description/due_date/
                category_id означает "очистить".

        Пример:
            await service.update_todo(user_id, todo_id, {"completed": True, "category_id": None})

        Raises:
            ValidationError_: Неизвестное поле, None для обязательного поля, плохой priority
            NotFoundError: Задача или категория не найдены у пользователя
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError_(f"Unknown fields: {', '.join(sorted(unknown))}")

        for name in NON_NULLABLE_FIELDS & set(changes):
            if changes[name] is None:
                raise ValidationError_(f"{name} cannot be null", field=name)
        if "tags" in changes:
            self._check_tag_names(changes["tags"])

        todo = await self._get_owned_todo(user_id, todo_id)

        updates: dict[str, Any] = {}
        if "title" in changes:
            updates["title"] = self._clean_title(changes["title"])
        if "description" in changes:
            updates["description"] = changes["description"]
        if "completed" in changes:
            updates["completed"] = bool(changes["completed"])
        if "priority" in changes:
            updates["priority"] = int(validate_priority(changes["priority"]))
        if "due_date" in changes:
            updates["due_date"] = to_naive_utc(changes["due_date"])
        if "category_id" in changes:
            if changes["category_id"] is not None:
                await self._ensure_category_owned(user_id, changes["category_id"])
            updates["category_id"] = changes["category_id"]

        # updated_at меняется при любой мутации, даже если менялись только теги
        updates["updated_at"] = utc_now()
        todo = await self.todo_repo.update(todo, **updates)

        if "tags" in changes:
            tag_objs = await self.tag_repo.bulk_get_or_create(user_id, changes["tags"])
            await self.tag_repo.replace_links(todo.id, [tag.id for tag in tag_objs])

        await self.db.flush()
        return await self.assembler.assemble_one(user_id, todo)

    async def delete_todo(self, user_id: uuid.UUID, todo_id: uuid.UUID) -> None:
        """
        Удалить задачу (связи с тегами удаляются вместе с ней).

        Raises:
            NotFoundError: Задачи нет или она чужая
        """
        deleted = await self.todo_repo.bulk_delete(user_id, [todo_id])
        if not deleted:
            raise NotFoundError("Todo", todo_id)

        await self.db.flush()

    # Вспомогательные методы (private)

    async def _get_owned_todo(self, user_id: uuid.UUID, todo_id: uuid.UUID) -> Todo:
        todo = await self.todo_repo.get_owned(user_id, todo_id)
        if not todo:
            raise NotFoundError("Todo", todo_id)
        return todo

    async def _ensure_category_owned(self, user_id: uuid.UUID, category_id: uuid.UUID) -> None:
        category = await self.category_repo.get_owned(user_id, category_id)
        if not category:
            raise NotFoundError("Category", category_id)

    @staticmethod
    def _clean_title(title: str) -> str:
        if not title or not title.strip():
            raise ValidationError_("Todo title cannot be empty", field="title")
        return title.strip()

    @staticmethod
    def _check_tag_names(names: list[str]) -> None:
        if any(len(name.strip()) > TAG_NAME_MAX_LENGTH for name in names):
            raise ValidationError_(
                f"Tag name must be at most {TAG_NAME_MAX_LENGTH} characters", field="tags"
            )
