"""
Доменные исключения.

Сервисы выбрасывают эти исключения, API слой (api/errors.py) превращает их
в единый формат ответа:
    {"error": {"code": "...", "message": "...", "details": [...]}}

Таксономия:
- VALIDATION_ERROR (400) - некорректный ввод
- NOT_FOUND (404) - id не найден в пределах данных пользователя
- CONFLICT (409) - нарушение уникальности (имя категории/тега у пользователя)
- UNAUTHORIZED (401) - нет API ключа или пользователя в заголовках
- FORBIDDEN (403) - пользователь деактивирован
- INTERNAL_ERROR (500) - сбой хранилища
"""

from uuid import UUID


class AppError(Exception):
    """
    Базовый класс для всех ошибок приложения.

    Использование:
        raise AppError(code="NOT_FOUND", message="Todo не найден", status_code=404)
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: list[dict] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError_(AppError):
    """
    Ошибка валидации бизнес-логики (400).

    Подчёркивание в имени - чтобы не путать с pydantic.ValidationError.

    Использование:
        raise ValidationError_("Priority must be between 0 and 4", field="priority")
    """

    def __init__(self, message: str, field: str | None = None):
        details = [{"field": field, "message": message}] if field else None
        super().__init__(
            code="VALIDATION_ERROR", message=message, status_code=400, details=details
        )


class NotFoundError(AppError):
    """
    Ресурс не найден (404).

    Чужие записи тоже "не найдены" - существование чужих id не раскрываем.

    Использование:
        raise NotFoundError("Todo", todo_id)
        # "Todo with id=... not found"
    """

    def __init__(self, resource: str, resource_id: UUID | str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            code="NOT_FOUND",
            message=f"{resource} with id={resource_id} not found",
            status_code=404,
        )


class ConflictError(AppError):
    """
    Ресурс уже существует (409).

    Использование:
        raise ConflictError("Category", "name", "Work")
        # "Category with name='Work' already exists"
    """

    def __init__(self, resource: str, field: str, value: str):
        super().__init__(
            code="CONFLICT",
            message=f"{resource} with {field}='{value}' already exists",
            status_code=409,
            details=[{"field": field, "message": f"Value '{value}' is already in use"}],
        )


class ForbiddenError(AppError):
    """Доступ запрещён (403), например пользователь деактивирован."""

    def __init__(self, message: str):
        super().__init__(code="FORBIDDEN", message=message, status_code=403)


class InternalError(AppError):
    """
    Сбой хранилища (500).

    Текст для клиента всегда общий, исходное исключение доступно через __cause__.
    """

    def __init__(self, message: str = "Internal server error"):
        super().__init__(code="INTERNAL_ERROR", message=message, status_code=500)


class UnauthorizedError(AppError):
    """Не передан или неверный API ключ / идентификатор пользователя (401)."""

    def __init__(self, message: str):
        super().__init__(code="UNAUTHORIZED", message=message, status_code=401)
