# timebank/common/exceptions.py
"""
Иерархия прикладных ошибок и обработчики исключений FastAPI.

Сервисы выбрасывают AppError-наследников, роуты их не перехватывают:
обработчики ниже превращают их в единый формат ответа
{"error": {"message", "code", "details"}, "request_id"}.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from timebank.common.logger import log_error


class AppError(Exception):
    """Базовая прикладная ошибка."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class BadRequestError(AppError):
    def __init__(self, message: str = "Bad request", details: dict[str, Any] | None = None):
        super().__init__(message, code="BAD_REQUEST", status_code=status.HTTP_400_BAD_REQUEST, details=details)


class ConflictError(AppError):
    """Операция недопустима в текущем состоянии (статус, баланс, дубликат)."""

    def __init__(self, message: str = "Conflict", details: dict[str, Any] | None = None):
        super().__init__(message, code="CONFLICT", status_code=status.HTTP_400_BAD_REQUEST, details=details)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="UNAUTHORIZED", status_code=status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="FORBIDDEN", status_code=status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND", status_code=status.HTTP_404_NOT_FOUND)


class RateLimitError(AppError):
    def __init__(self, message: str = "Too many requests, please try again later.", retry_after: int | None = None):
        details = {"retry_after": retry_after} if retry_after is not None else None
        super().__init__(message, code="RATE_LIMITED", status_code=status.HTTP_429_TOO_MANY_REQUESTS, details=details)


def _error_body(request: Request, message: str, code: str, details: dict[str, Any]) -> dict[str, Any]:
    body: dict[str, Any] = {
        "error": {
            "message": message,
            "code": code,
            "details": details,
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return body


def error_response(request: Request, exc: AppError) -> JSONResponse:
    """Формирует JSON-ответ для прикладной ошибки."""
    headers = None
    if isinstance(exc, RateLimitError) and exc.details.get("retry_after") is not None:
        headers = {"Retry-After": str(exc.details["retry_after"])}
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_error_body(request, exc.message, exc.code, exc.details)),
        headers=headers,
    )


async def app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return error_response(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Ошибки валидации запроса отдаются как 400 с перечнем полей."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in exc.errors()
    ]
    body = _error_body(request, "Validation error", "VALIDATION_ERROR", {"errors": errors})
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=jsonable_encoder(body))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    await log_error(
        f"Необработанное исключение {request.method} {request.url.path}: {exc!r}",
        extra={"path": request.url.path},
        exc_info=True,
    )
    body = _error_body(request, "Internal server error", "INTERNAL_ERROR", {})
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)
