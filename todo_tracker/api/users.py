"""
API endpoints для пользователей.

POST /users требует только API ключ (пользователя ещё нет).
Остальное - от имени пользователя из X-User-ID.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from ..services import UserService
from .dependencies import get_current_user_id, get_user_service
from .schemas import ErrorResponse, UserCreate, UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Создать пользователя",
    responses={409: {"model": ErrorResponse, "description": "username или email заняты"}},
)
async def create_user(
    data: UserCreate,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await service.create_user(data.username, data.email, data.full_name)
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse, summary="Текущий пользователь")
async def get_me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    user = await service.get_user(user_id)
    return UserResponse.model_validate(user)


@router.delete(
    "/me",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить текущего пользователя",
    description="Удаляет пользователя вместе со всеми задачами, категориями и тегами.",
)
async def delete_me(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: UserService = Depends(get_user_service),
) -> Response:
    await service.delete_user(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
