"""HTTP middleware for request logging and tracing."""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.logging import generate_request_id, get_logger, request_id_var, user_id_var

logger = get_logger("todo_tracker.requests")

# Не логируем служебные пути, чтобы не шуметь
QUIET_PATHS = frozenset({"/health", "/docs", "/redoc", "/openapi.json"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware для логирования HTTP запросов.

    - Присваивает запросу request_id (или берёт присланный X-Request-ID)
    - Логирует метод, путь, статус и время выполнения
    - Возвращает X-Request-ID в ответе

    Пример лога (JSON):
    {
        "level": "INFO",
        "logger": "todo_tracker.requests",
        "message": "Request completed",
        "request_id": "abc-123",
        "extra": {"method": "PATCH", "path": "/api/v1/todos/batch", "status": 200, "duration_ms": 12}
    }

    user_id сюда не попадает: get_current_user_id выставляет его уже внутри
    endpoint, и он есть только в записях, залогированных в ходе запроса.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or generate_request_id()
        request_token = request_id_var.set(request_id)
        user_token = user_id_var.set("")

        start_time = time.perf_counter()
        log_extra = {
            "method": request.method,
            "path": request.url.path,
            "client_ip": request.client.host if request.client else "unknown",
        }

        try:
            try:
                response = await call_next(request)
            except Exception as e:
                logger.error(
                    "Request failed",
                    extra={
                        **log_extra,
                        "duration_ms": int((time.perf_counter() - start_time) * 1000),
                        "error": type(e).__name__,
                    },
                    exc_info=True,
                )
                raise

            response.headers["X-Request-ID"] = request_id

            if request.url.path not in QUIET_PATHS:
                log = logger.info if response.status_code < 400 else logger.warning
                log(
                    "Request completed",
                    extra={
                        **log_extra,
                        "status": response.status_code,
                        "duration_ms": int((time.perf_counter() - start_time) * 1000),
                    },
                )
            return response
        finally:
            user_id_var.reset(user_token)
            request_id_var.reset(request_token)
