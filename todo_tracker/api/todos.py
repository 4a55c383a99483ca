"""
API endpoints для работы с задачами.

Включает:
- CRUD операции
- Фильтрацию, поиск и пагинацию списка
- Привязку / отвязку тегов

Все операции выполняются от имени пользователя из X-User-ID:
чужая задача для API выглядит как несуществующая (404).
"""

import math
import uuid

from fastapi import APIRouter, Depends, Query, Response, status

from ..services import TagService, TodoFilter, TodoService
from ..services.filters import resolve_pagination
from .dependencies import get_current_user_id, get_tag_service, get_todo_service
from .schemas import ErrorResponse, TodoCreate, TodoListResponse, TodoResponse, TodoUpdate

router = APIRouter(prefix="/todos", tags=["todos"])


# ============================================================================
# CREATE TODO
# ============================================================================


@router.post(
    "",
    response_model=TodoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Создать задачу",
    description="""
    Создать новую задачу с автоматическим созданием тегов.

    Бизнес-правила:
    - Название не пустое
    - Приоритет 0..4
    - Категория (если указана) принадлежит пользователю
    """,
    responses={
        201: {"description": "Задача создана"},
        400: {"model": ErrorResponse, "description": "Ошибка валидации"},
        404: {"model": ErrorResponse, "description": "Категория не найдена"},
    },
)
async def create_todo(
    data: TodoCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
) -> TodoResponse:
    """
    Создать новую задачу.

    Пример запроса:
    ```json
    {
        "title": "Написать отчёт",
        "priority": 3,
        "due_date": "2026-11-01T12:00:00Z",
        "tags": ["work", "urgent"]
    }
    ```
    """
    todo = await service.create_todo(
        user_id=user_id,
        title=data.title,
        description=data.description,
        priority=data.priority,
        due_date=data.due_date,
        category_id=data.category_id,
        tags=data.tags,
    )
    return TodoResponse.model_validate(todo)


# ============================================================================
# LIST TODOS (с фильтрацией и пагинацией)
# ============================================================================


@router.get(
    "",
    response_model=TodoListResponse,
    summary="Получить задачи с фильтрами",
    description="""
    Получить задачи пользователя с опциональными фильтрами и пагинацией.

    **Фильтры** (комбинируются через AND):
    - completed: выполнена / не выполнена
    - category_id: категория
    - priority: приоритет 0..4
    - tag: часть имени тега (без учёта регистра)
    - search: подстрока в названии или описании (без учёта регистра)
    - overdue: только просроченные

    **Пагинация:** page (с 1), per_page (по умолчанию 10, максимум 100).

    Сортировка: сначала новые.
    """,
    responses={400: {"model": ErrorResponse, "description": "Некорректные фильтры"}},
)
async def list_todos(
    completed: bool | None = Query(None, description="Фильтр по статусу выполнения"),
    category_id: uuid.UUID | None = Query(None, description="Фильтр по категории"),
    priority: int | None = Query(None, description="Фильтр по приоритету 0..4"),
    tag: str | None = Query(None, description="Часть имени тега"),
    search: str | None = Query(None, description="Поиск по названию и описанию"),
    overdue: bool = Query(False, description="Только просроченные"),
    page: int | None = Query(None, description="Номер страницы (с 1)"),
    per_page: int | None = Query(None, description="Задач на странице"),
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
) -> TodoListResponse:
    """
    Примеры запросов:
    ```
    GET /api/v1/todos                              # первая страница
    GET /api/v1/todos?completed=false&priority=4   # невыполненные срочные
    GET /api/v1/todos?tag=work&search=report       # по тегу и тексту
    GET /api/v1/todos?overdue=true&per_page=50     # просроченные
    ```
    """
    page, per_page = resolve_pagination(page, per_page)
    criteria = TodoFilter(
        completed=completed,
        category_id=category_id,
        priority=priority,
        tag=tag,
        search=search,
        overdue=overdue,
        page=page,
        per_page=per_page,
    )

    todos, total = await service.list_todos(user_id, criteria)
    return TodoListResponse(
        todos=[TodoResponse.model_validate(todo) for todo in todos],
        total=total,
        page=page,
        per_page=per_page,
        total_pages=math.ceil(total / per_page) if total else 0,
    )


# ============================================================================
# GET TODO BY ID
# ============================================================================


@router.get(
    "/{todo_id}",
    response_model=TodoResponse,
    summary="Получить задачу по ID",
    description="Получить задачу с категорией и тегами.",
    responses={404: {"model": ErrorResponse, "description": "Задача не найдена"}},
)
async def get_todo(
    todo_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
) -> TodoResponse:
    todo = await service.get_todo(user_id, todo_id)
    return TodoResponse.model_validate(todo)


# ============================================================================
# UPDATE TODO
# ============================================================================


@router.patch(
    "/{todo_id}",
    response_model=TodoResponse,
    summary="Обновить задачу",
    description="""
    Частичное обновление задачи: меняются только присланные поля.

    - `null` для description / due_date / category_id очищает поле
    - `tags` заменяет набор тегов целиком
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Ошибка валидации"},
        404: {"model": ErrorResponse, "description": "Задача или категория не найдена"},
    },
)
async def update_todo(
    todo_id: uuid.UUID,
    data: TodoUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
) -> TodoResponse:
    """
    Пример запроса:
    ```json
    {
        "completed": true,
        "due_date": null,
        "tags": ["done"]
    }
    ```
    """
    todo = await service.update_todo(user_id, todo_id, data.model_dump(exclude_unset=True))
    return TodoResponse.model_validate(todo)


# ============================================================================
# DELETE TODO
# ============================================================================


@router.delete(
    "/{todo_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить задачу",
    responses={
        204: {"description": "Задача удалена"},
        404: {"model": ErrorResponse, "description": "Задача не найдена"},
    },
)
async def delete_todo(
    todo_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TodoService = Depends(get_todo_service),
) -> Response:
    await service.delete_todo(user_id, todo_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# TAG ASSIGNMENT
# ============================================================================


@router.put(
    "/{todo_id}/tags/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Привязать тег к задаче",
    description="Идемпотентно: повторная привязка не ошибка.",
    responses={404: {"model": ErrorResponse, "description": "Задача или тег не найдены"}},
)
async def assign_tag(
    todo_id: uuid.UUID,
    tag_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TagService = Depends(get_tag_service),
) -> Response:
    await service.assign_tag(user_id, todo_id, tag_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/{todo_id}/tags/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Отвязать тег от задачи",
    responses={404: {"model": ErrorResponse, "description": "Связь не найдена"}},
)
async def remove_tag(
    todo_id: uuid.UUID,
    tag_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TagService = Depends(get_tag_service),
) -> Response:
    await service.remove_tag(user_id, todo_id, tag_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
