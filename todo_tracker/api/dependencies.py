"""
Dependencies для FastAPI endpoints.

Цепочка зависимостей одного запроса:
    verify_api_key            (X-API-Key, на уровне роутера /api/v1)
    get_db                    (одна сессия = одна транзакция на запрос)
    get_current_user_id       (X-User-ID -> активный пользователь)
    get_*_service(db)         (сервис с той же сессией)

FastAPI кэширует зависимости в пределах запроса, поэтому get_db
вызывается один раз, и все сервисы работают в одной транзакции.
"""

import uuid

from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import get_db
from ..core.exceptions import NotFoundError, UnauthorizedError
from ..core.logging import user_id_var
from ..services import (
    BatchService,
    CategoryService,
    StatsService,
    TagService,
    TodoService,
    UserService,
)

# ============================================================================
# API KEY AUTHENTICATION
# ============================================================================

api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,  # Не выбрасывать ошибку автоматически, мы сами обработаем
    description="API ключ для авторизации. Передавайте в заголовке X-API-Key",
)

user_id_header = APIKeyHeader(
    name="X-User-ID",
    auto_error=False,
    description="UUID пользователя, от имени которого выполняется запрос",
)


async def verify_api_key(api_key: str | None = Depends(api_key_header)) -> str:
    """
    Dependency для проверки API ключа.

    Пример запроса:
        curl -H "X-API-Key: your-secret-key" -H "X-User-ID: <uuid>" \\
            http://localhost:8000/api/v1/todos
    """
    if api_key is None:
        raise UnauthorizedError("API key is missing. Add header: X-API-Key: your-key")

    if api_key != settings.API_KEY:
        raise UnauthorizedError("Invalid API key")

    return api_key


# ============================================================================
# CURRENT USER
# ============================================================================


async def get_current_user_id(
    raw_user_id: str | None = Depends(user_id_header),
    db: AsyncSession = Depends(get_db),
) -> uuid.UUID:
    """
    Dependency: id активного пользователя из заголовка X-User-ID.

    - заголовка нет / не UUID / пользователь не найден -> 401
    - пользователь деактивирован -> 403

    Найденный id попадает в контекст логирования (поле user_id).
    """
    if not raw_user_id:
        raise UnauthorizedError("User id is missing. Add header: X-User-ID: <uuid>")

    try:
        user_id = uuid.UUID(raw_user_id)
    except ValueError:
        raise UnauthorizedError("Invalid user id") from None

    try:
        user = await UserService(db).get_active_user(user_id)
    except NotFoundError:
        raise UnauthorizedError("Unknown user") from None

    user_id_var.set(str(user.id))
    return user.id


# ============================================================================
# SERVICE DEPENDENCIES
# ============================================================================


async def get_todo_service(db: AsyncSession = Depends(get_db)) -> TodoService:
    """
    Dependency для TodoService.

    Использование:
        @router.get("/todos")
        async def list_todos(service: TodoService = Depends(get_todo_service)):
            ...
    """
    return TodoService(db)


async def get_batch_service(db: AsyncSession = Depends(get_db)) -> BatchService:
    return BatchService(db)


async def get_stats_service(db: AsyncSession = Depends(get_db)) -> StatsService:
    return StatsService(db)


async def get_category_service(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


async def get_tag_service(db: AsyncSession = Depends(get_db)) -> TagService:
    return TagService(db)


async def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


__all__ = [
    "verify_api_key",
    "get_db",
    "get_current_user_id",
    "get_todo_service",
    "get_batch_service",
    "get_stats_service",
    "get_category_service",
    "get_tag_service",
    "get_user_service",
]
