"""
API endpoints для batch операций над задачами.

Роутер подключается ДО роутера задач: иначе путь /todos/batch
совпал бы с /todos/{todo_id}.
"""

import uuid

from fastapi import APIRouter, Depends

from ..services import BatchService
from .dependencies import get_batch_service, get_current_user_id
from .schemas import BatchDeleteRequest, BatchResultResponse, BatchUpdateRequest, ErrorResponse

router = APIRouter(prefix="/todos/batch", tags=["batch"])


@router.patch(
    "",
    response_model=BatchResultResponse,
    summary="Обновить несколько задач",
    description="""
    Применить одинаковые изменения (completed, priority, category_id) к набору задач.

    - Все изменения применяются атомарно (одна транзакция)
    - Чужие и несуществующие id пропускаются без ошибки
    - В ответе - id реально обновлённых задач
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Некорректный payload"},
        404: {"model": ErrorResponse, "description": "Категория не найдена"},
        500: {"model": ErrorResponse, "description": "Сбой БД, ничего не изменено"},
    },
)
async def batch_update(
    data: BatchUpdateRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: BatchService = Depends(get_batch_service),
) -> BatchResultResponse:
    """
    Пример запроса:
    ```json
    {
        "todo_ids": ["0b7e...", "91aa..."],
        "completed": true
    }
    ```
    """
    changes = data.model_dump(exclude_unset=True, exclude={"todo_ids"})
    result = await service.batch_update(user_id, data.todo_ids, changes)
    return BatchResultResponse.model_validate(result)


@router.delete(
    "",
    response_model=BatchResultResponse,
    summary="Удалить несколько задач",
    responses={
        400: {"model": ErrorResponse, "description": "Некорректный payload"},
        500: {"model": ErrorResponse, "description": "Сбой БД, ничего не удалено"},
    },
)
async def batch_delete(
    data: BatchDeleteRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: BatchService = Depends(get_batch_service),
) -> BatchResultResponse:
    result = await service.batch_delete(user_id, data.todo_ids)
    return BatchResultResponse.model_validate(result)
