"""
Главный файл FastAPI приложения.

Запуск:
    uvicorn todo_tracker.main:app --reload

API документация:
    http://localhost:8000/docs       - Swagger UI
    http://localhost:8000/redoc      - ReDoc

Все ресурсы доступны по путям /api/v1/... и требуют заголовки
X-API-Key и (кроме POST /users) X-User-ID.
"""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .api import (
    batch_router,
    categories_router,
    stats_router,
    tags_router,
    todos_router,
    users_router,
)
from .api.dependencies import verify_api_key
from .api.errors import register_error_handlers
from .api.middleware import RequestLoggingMiddleware
from .core.config import settings
from .core.database import AsyncSessionLocal
from .core.logging import get_logger, setup_logging

# LOG_FORMAT: json (production) / simple (development)
setup_logging(log_level=settings.LOG_LEVEL, log_format=settings.LOG_FORMAT)

logger = get_logger(__name__)

APP_VERSION = "1.0.0"
APP_START_TIME: float = 0.0  # Will be set on startup

# ============================================================================
# RATE LIMITER SETUP
# ============================================================================

# key_func - по какому ключу группировать запросы (по IP адресу)
limiter = Limiter(key_func=get_remote_address)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Превышение лимита запросов в едином формате ErrorResponse."""
    return JSONResponse(
        status_code=429,
        content={
            "error": {
                "code": "RATE_LIMIT_EXCEEDED",
                "message": f"Too many requests. Limit: {exc.detail}",
                "details": [{"field": "rate_limit", "message": str(exc.detail)}],
            }
        },
    )


# ============================================================================
# LIFESPAN EVENT HANDLER
# ============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup / shutdown: фиксируем время старта и логируем."""
    global APP_START_TIME

    APP_START_TIME = time.time()
    logger.info(
        "Application started",
        extra={
            "app_name": settings.APP_NAME,
            "version": APP_VERSION,
            "debug": settings.DEBUG,
            "log_level": settings.LOG_LEVEL,
        },
    )

    yield

    uptime = int(time.time() - APP_START_TIME)
    logger.info("Application stopped", extra={"uptime_seconds": uptime})


# ============================================================================
# CREATE APPLICATION
# ============================================================================

app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="""
    Multi-tenant Todo Tracker.

    ## Возможности

    * **Задачи** - CRUD, фильтры (статус, категория, приоритет, тег, поиск, просрочка), пагинация
    * **Batch** - атомарное обновление / удаление набора задач
    * **Статистика** - итоги по статусу, приоритетам и категориям
    * **Категории и теги** - в пределах пользователя

    ## Архитектура

    ```
    API Layer (FastAPI) → Service Layer (Business Logic) → Repository Layer (Database)
    ```

    ## Rate Limiting

    `/` и `/health`: 100 запросов/минуту, при превышении - 429.
    """,
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.state.limiter = limiter
# slowapi handler имеет специфичный тип, но работает корректно
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # В продакшене указать конкретные домены
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)


# ============================================================================
# API VERSIONING
# ============================================================================

api_v1_router = APIRouter(prefix="/api/v1")

# batch_router до todos_router: /todos/batch не должен попасть в /todos/{todo_id}
api_v1_router.include_router(batch_router)
api_v1_router.include_router(todos_router)
api_v1_router.include_router(stats_router)
api_v1_router.include_router(categories_router)
api_v1_router.include_router(tags_router)
api_v1_router.include_router(users_router)

# dependencies=[Depends(verify_api_key)] - все endpoints роутера требуют API ключ
app.include_router(api_v1_router, dependencies=[Depends(verify_api_key)])

register_error_handlers(app)


# ============================================================================
# ROOT / HEALTH
# ============================================================================


@app.get("/", tags=["root"], summary="Root endpoint", description="Информация о API")
@limiter.limit("100/minute")
async def root(request: Request):
    return {
        "name": settings.APP_NAME,
        "version": APP_VERSION,
        "api_version": "v1",
        "docs": "/docs",
        "endpoints": {
            "todos": "/api/v1/todos",
            "batch": "/api/v1/todos/batch",
            "stats": "/api/v1/stats/todos",
            "categories": "/api/v1/categories",
            "tags": "/api/v1/tags",
            "users": "/api/v1/users",
        },
        "rate_limit": "100 requests/minute",
    }


@app.get(
    "/health", tags=["health"], summary="Health check", description="Проверка работоспособности API"
)
@limiter.limit("100/minute")
async def health_check(request: Request):
    """
    Health check endpoint.

    Проверяет подключение к базе данных.

    Пример ответа (200 OK):
    ```json
    {
        "status": "ok",
        "checks": {"database": "connected", "version": "1.0.0", "uptime_seconds": 3600},
        "timestamp": "2026-10-19T12:00:00+00:00"
    }
    ```

    При недоступной БД: status "error" и код 503.
    """
    database_ok = await _database_reachable()
    uptime_seconds = int(time.time() - APP_START_TIME) if APP_START_TIME > 0 else 0

    return JSONResponse(
        status_code=200 if database_ok else 503,
        content={
            "status": "ok" if database_ok else "error",
            "checks": {
                "database": "connected" if database_ok else "disconnected",
                "version": APP_VERSION,
                "uptime_seconds": uptime_seconds,
            },
            "timestamp": datetime.now(UTC).isoformat(),
        },
    )


async def _database_reachable() -> bool:
    try:
        async with AsyncSessionLocal() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError):
        logger.warning("Health check: database unavailable", exc_info=True)
        return False
    return True
