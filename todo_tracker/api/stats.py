"""API endpoint for todo statistics."""

import uuid

from fastapi import APIRouter, Depends

from ..services import StatsService
from .dependencies import get_current_user_id, get_stats_service
from .schemas import ErrorResponse, StatsResponse

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get(
    "/todos",
    response_model=StatsResponse,
    summary="Статистика по задачам",
    description="""
    Итоги по задачам пользователя: всего, выполнено, в работе, просрочено,
    разбивка по приоритетам (всегда 5 значений) и по категориям.

    Все числа из одного снимка данных:
    completed + pending == total, сумма по приоритетам == total.
    """,
    responses={500: {"model": ErrorResponse, "description": "Сбой БД"}},
)
async def get_todo_stats(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: StatsService = Depends(get_stats_service),
) -> StatsResponse:
    stats = await service.get_stats(user_id)
    return StatsResponse.model_validate(stats)
