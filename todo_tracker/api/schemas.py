"""
Pydantic схемы для API.

DTOs (Data Transfer Objects) - объекты для передачи данных через HTTP.
Сервисы про эти схемы не знают: роутер распаковывает запрос в аргументы
сервиса, а ответ сервиса (модель или dataclass) валидирует через
model_validate (from_attributes=True).
"""

import uuid
from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
TAG_NAME_MAX_LENGTH = 50

# Имя тега в списке tags задачи (пустые имена сервис пропускает)
TagName = Annotated[str, Field(max_length=TAG_NAME_MAX_LENGTH)]

# ============================================================================
# CATEGORY SCHEMAS
# ============================================================================


class CategoryCreate(BaseModel):
    """
    Схема для создания категории (POST /categories).

    Пример запроса:
    {
        "name": "Work",
        "description": "Рабочие задачи",
        "color": "#3B82F6"
    }
    """

    name: str = Field(..., min_length=1, max_length=100, description="Название категории")
    description: str | None = Field(None, description="Описание категории")
    color: str | None = Field(None, pattern=COLOR_PATTERN, description="Цвет в формате #RRGGBB")


class CategoryUpdate(BaseModel):
    """Частичное обновление (PATCH /categories/{id}): только присланные поля."""

    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None
    color: str | None = Field(None, pattern=COLOR_PATTERN)


class CategoryResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    color: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# TAG SCHEMAS
# ============================================================================


class TagCreate(BaseModel):
    name: str = Field(
        ..., min_length=1, max_length=TAG_NAME_MAX_LENGTH, description="Название тега"
    )


class TagResponse(BaseModel):
    id: uuid.UUID
    name: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# TODO SCHEMAS
# ============================================================================


class TodoCreate(BaseModel):
    """
    Схема для создания задачи (POST /todos).

    Пример запроса:
    {
        "title": "Написать отчёт",
        "priority": 3,
        "due_date": "2026-11-01T12:00:00Z",
        "category_id": "6f1c0c52-...",
        "tags": ["work", "urgent"]
    }

    Теги создаются автоматически, если у пользователя их ещё нет.
    """

    title: str = Field(..., min_length=1, max_length=255, description="Название задачи")
    description: str | None = Field(None, description="Описание задачи")
    priority: int = Field(0, ge=0, le=4, description="Приоритет 0 (нет) .. 4 (срочно)")
    due_date: datetime | None = Field(None, description="Дедлайн")
    category_id: uuid.UUID | None = Field(None, description="Категория пользователя")
    tags: list[TagName] = Field(default_factory=list, description="Имена тегов")


class TodoUpdate(BaseModel):
    """
    Схема для частичного обновления задачи (PATCH /todos/{id}).

    Важно отличать "поле не прислали" от "прислали null":
        {"due_date": null}  -> дедлайн очищается
        {}                  -> дедлайн не меняется
    Поэтому в сервис уходит model_dump(exclude_unset=True).
    """

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    completed: bool | None = None
    priority: int | None = Field(None, ge=0, le=4)
    due_date: datetime | None = None
    category_id: uuid.UUID | None = None
    tags: list[TagName] | None = None


class TodoResponse(BaseModel):
    """
    Задача со всеми связями.

    Пример ответа:
    {
        "id": "0b7e...",
        "title": "Написать отчёт",
        "completed": false,
        "priority": 3,
        "category": {"id": "6f1c...", "name": "Work", ...},
        "tags": [{"id": "...", "name": "urgent", ...}],
        ...
    }
    """

    id: uuid.UUID
    title: str
    description: str | None
    completed: bool
    priority: int
    due_date: datetime | None
    user_id: uuid.UUID
    category: CategoryResponse | None
    tags: list[TagResponse]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TodoListResponse(BaseModel):
    """Страница задач + данные пагинации."""

    todos: list[TodoResponse]
    total: int
    page: int
    per_page: int
    total_pages: int


# ============================================================================
# BATCH SCHEMAS
# ============================================================================


class BatchUpdateRequest(BaseModel):
    """
    PATCH /todos/batch.

    Пример запроса:
    {
        "todo_ids": ["0b7e...", "91aa..."],
        "completed": true,
        "category_id": null
    }

    Меняются только присланные поля (completed, priority, category_id).
    """

    todo_ids: list[uuid.UUID] = Field(..., description="Id задач")
    completed: bool | None = None
    priority: int | None = Field(None, ge=0, le=4)
    category_id: uuid.UUID | None = None


class BatchDeleteRequest(BaseModel):
    todo_ids: list[uuid.UUID] = Field(..., description="Id задач")


class BatchResultResponse(BaseModel):
    affected_ids: list[uuid.UUID]
    affected_count: int

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# STATS SCHEMAS
# ============================================================================


class PriorityCountResponse(BaseModel):
    priority: int
    count: int

    model_config = ConfigDict(from_attributes=True)


class CategoryCountResponse(BaseModel):
    category_id: uuid.UUID | None
    category_name: str | None
    count: int

    model_config = ConfigDict(from_attributes=True)


class StatsResponse(BaseModel):
    total_todos: int
    completed_todos: int
    pending_todos: int
    overdue_todos: int
    todos_by_priority: list[PriorityCountResponse]
    todos_by_category: list[CategoryCountResponse]

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# USER SCHEMAS
# ============================================================================


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    full_name: str | None = Field(None, max_length=255)


class UserResponse(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    full_name: str | None
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# COMMON SCHEMAS
# ============================================================================


class ErrorDetail(BaseModel):
    """
    Детали ошибки для конкретного поля.

    Пример:
    {
        "field": "priority",
        "message": "Priority must be between 0 and 4"
    }
    """

    field: str = Field(..., description="Название поля с ошибкой")
    message: str = Field(..., description="Описание ошибки")


class ErrorBody(BaseModel):
    """
    Тело ошибки с кодом и деталями.

    Коды:
    - VALIDATION_ERROR: ошибка валидации полей
    - NOT_FOUND: ресурс не найден
    - CONFLICT: ресурс уже существует
    - FORBIDDEN: пользователь деактивирован
    - INTERNAL_ERROR: внутренняя ошибка сервера
    """

    code: str = Field(..., description="Код ошибки (VALIDATION_ERROR, NOT_FOUND, etc.)")
    message: str = Field(..., description="Человекочитаемое сообщение")
    details: list[ErrorDetail] | None = Field(
        default=None, description="Список ошибок по полям (для валидации)"
    )


class ErrorResponse(BaseModel):
    """
    Единый формат ответа для всех ошибок API.

    Пример ошибки "не найдено":
    {
        "error": {
            "code": "NOT_FOUND",
            "message": "Todo with id=... not found",
            "details": null
        }
    }
    """

    error: ErrorBody
