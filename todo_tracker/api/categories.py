"""
API endpoints для работы с категориями.

Категория принадлежит пользователю, имя уникально в его пределах.
Удаление категории не удаляет задачи: они остаются без категории.
"""

import uuid

from fastapi import APIRouter, Depends, Response, status

from ..services import CategoryService
from .dependencies import get_category_service, get_current_user_id
from .schemas import CategoryCreate, CategoryResponse, CategoryUpdate, ErrorResponse

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Создать категорию",
    responses={
        400: {"model": ErrorResponse, "description": "Ошибка валидации"},
        409: {"model": ErrorResponse, "description": "Категория с таким именем уже есть"},
    },
)
async def create_category(
    data: CategoryCreate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    """
    Пример запроса:
    ```json
    {"name": "Work", "color": "#3B82F6"}
    ```
    """
    category = await service.create_category(
        user_id, name=data.name, description=data.description, color=data.color
    )
    return CategoryResponse.model_validate(category)


@router.get("", response_model=list[CategoryResponse], summary="Список категорий")
async def list_categories(
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: CategoryService = Depends(get_category_service),
) -> list[CategoryResponse]:
    categories = await service.list_categories(user_id)
    return [CategoryResponse.model_validate(c) for c in categories]


@router.get(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Получить категорию",
    responses={404: {"model": ErrorResponse, "description": "Категория не найдена"}},
)
async def get_category(
    category_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.get_category(user_id, category_id)
    return CategoryResponse.model_validate(category)


@router.patch(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Обновить категорию",
    description="Частичное обновление: меняются только присланные поля.",
    responses={
        404: {"model": ErrorResponse, "description": "Категория не найдена"},
        409: {"model": ErrorResponse, "description": "Имя уже занято"},
    },
)
async def update_category(
    category_id: uuid.UUID,
    data: CategoryUpdate,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: CategoryService = Depends(get_category_service),
) -> CategoryResponse:
    category = await service.update_category(
        user_id, category_id, data.model_dump(exclude_unset=True)
    )
    return CategoryResponse.model_validate(category)


@router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить категорию",
    responses={404: {"model": ErrorResponse, "description": "Категория не найдена"}},
)
async def delete_category(
    category_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    service: CategoryService = Depends(get_category_service),
) -> Response:
    await service.delete_category(user_id, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
