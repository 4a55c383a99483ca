"""
API endpoints для работы с тегами.

Привязка тегов к задачам - в роутере задач:
    PUT/DELETE /todos/{todo_id}/tags/{tag_id}
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from ..services import TagService
from .dependencies import get_current_user_id, get_tag_service
from .schemas import ErrorResponse, TagCreate, TagResponse

router = APIRouter(prefix="/tags", tags=["tags"])


@router.post(
    "",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Создать тег",
    responses={409: {"model": ErrorResponse, "description": "Тег уже существует"}},
)
async def create_tag(
    data: TagCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TagService = Depends(get_tag_service),
) -> TagResponse:
    tag = await service.create_tag(user_id, data.name)
    return TagResponse.model_validate(tag)


@router.get("", response_model=list[TagResponse], summary="Список тегов")
async def list_tags(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TagService = Depends(get_tag_service),
) -> list[TagResponse]:
    tags = await service.list_tags(user_id)
    return [TagResponse.model_validate(t) for t in tags]


@router.get(
    "/{tag_id}",
    response_model=TagResponse,
    summary="Получить тег",
    responses={404: {"model": ErrorResponse, "description": "Тег не найден"}},
)
async def get_tag(
    tag_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TagService = Depends(get_tag_service),
) -> TagResponse:
    tag = await service.get_tag(user_id, tag_id)
    return TagResponse.model_validate(tag)


@router.delete(
    "/{tag_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить тег",
    description="Тег отвязывается от всех задач, сами задачи остаются.",
    responses={404: {"model": ErrorResponse, "description": "Тег не найден"}},
)
async def delete_tag(
    tag_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: TagService = Depends(get_tag_service),
) -> Response:
    await service.delete_tag(user_id, tag_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
