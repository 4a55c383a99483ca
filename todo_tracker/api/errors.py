"""
Обработчики ошибок (Exception Handlers) для API.

Все ошибки уходят клиенту в одном формате:
    {"error": {"code": "...", "message": "...", "details": [...] | null}}

Как это работает:
1. Сервис выбрасывает AppError (или БД выбрасывает SQLAlchemyError)
2. FastAPI ищет handler по типу исключения (ближайший по MRO)
3. Handler преобразует исключение в HTTP ответ
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..core.exceptions import AppError
from ..core.logging import get_logger
from .schemas import ErrorBody, ErrorDetail, ErrorResponse

logger = get_logger(__name__)


def error_response(
    status_code: int, code: str, message: str, details: list[ErrorDetail] | None = None
) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(code=code, message=message, details=details))
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Обработчик доменных ошибок (AppError и наследники).

    Клиентские ошибки (4xx) логируются как WARNING, InternalError - как ERROR.
    """
    if exc.status_code >= 500:
        logger.error(f"App Error: {exc.code} - {exc.message}", exc_info=exc.__cause__)
    else:
        logger.warning(f"App Error: {exc.code} - {exc.message}")

    details = None
    if exc.details:
        details = [ErrorDetail(field=d["field"], message=d["message"]) for d in exc.details]

    return error_response(exc.status_code, exc.code, exc.message, details)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Обработчик для ошибок валидации Pydantic (422).

    Pydantic возвращает ошибки в своём формате:
    {"detail": [{"type": "string_too_short", "loc": ["body", "title"], "msg": "..."}]}

    Мы преобразуем это в наш формат:
    {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed",
            "details": [{"field": "title", "message": "..."}]
        }
    }
    """
    logger.warning(f"Validation Error: {exc.errors()}")

    details = []
    for error in exc.errors():
        # loc - путь к полю, например ["body", "title"] или ["query", "per_page"]
        field_path = error.get("loc", [])
        field_name = field_path[-1] if field_path else "unknown"

        if len(field_path) > 1 and field_path[0] == "body":
            field_name = ".".join(str(p) for p in field_path[1:])

        details.append(ErrorDetail(field=str(field_name), message=error.get("msg", "Invalid value")))

    return error_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "VALIDATION_ERROR",
        "Request validation failed",
        details,
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """
    Нарушение ограничения БД (409).

    Обычно это гонка: два запроса одновременно создают категорию/тег
    с одним именем, проверка в сервисе прошла у обоих.
    """
    logger.warning(f"Integrity Error: {type(exc.orig).__name__}")

    return error_response(
        status.HTTP_409_CONFLICT, "CONFLICT", "Resource conflicts with existing data"
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """
    Сбой хранилища (500).

    Детали (SQL, имена таблиц, stack trace) только в логе, клиенту - общий текст.
    """
    logger.error(f"Database Error: {type(exc).__name__}", exc_info=exc)

    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", "Internal server error"
    )


def register_error_handlers(app: FastAPI) -> None:
    """
    Регистрирует все error handlers в приложении FastAPI.

    Вызывается из main.py:
        register_error_handlers(app)
    """
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    logger.info("Error handlers registered")
