# webapps/core/exceptions.py

"""
Исключения приложений магазина и блога.

Иерархия:
    AppError (база)
    ├── ValidationError       - некорректный ввод (400)
    │   └── PayloadTooLargeError - слишком длинные поля (413)
    ├── NotFoundError         - сущность не найдена (404)
    ├── IneligibleStateError  - переход из недопустимого статуса (400)
    ├── AuthorizationError    - нет прав (403)
    └── StoreError            - сбой БД/транзакции (500)

Роуты ловят AppError там, где нужен свой ответ; остальное уходит в общий
обработчик (см. register_exception_handlers).
"""

from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class AppError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def errors(self) -> List[str]:
        return [self.message]

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(AppError):
    """Ошибка формы/тела запроса. Содержит список всех найденных проблем."""

    status_code = 400

    def __init__(self, errors: List[str], details: Optional[Dict[str, Any]] = None):
        super().__init__("; ".join(errors), details)
        self._errors = list(errors)

    @property
    def errors(self) -> List[str]:
        return self._errors


class PayloadTooLargeError(ValidationError):
    status_code = 413


class NotFoundError(AppError):
    status_code = 404


class IneligibleStateError(AppError):
    """
    Переход запрещён текущим статусом сущности
    (например, отмена уже отменённого заказа).
    """

    status_code = 400


class AuthorizationError(AppError):
    status_code = 403


class StoreError(AppError):
    """
    Сбой хранилища. Наружу уходит только общее сообщение,
    исходная ошибка остаётся в __cause__ и в логе.
    """

    status_code = 500
    public_message = "Internal database error."

    @property
    def errors(self) -> List[str]:
        return [self.public_message]


NOT_FOUND_MESSAGE = "The requested resource was not found."


def error_payload(exc: AppError) -> dict:
    return {"status": "error", "errors": exc.errors}


def wants_html(request: Request) -> bool:
    """Страницы приложения отвечают шаблоном, /api/ - JSON."""
    return (
        not request.url.path.startswith("/api/")
        and getattr(request.app.state, "templates", None) is not None
    )


def render_error_page(request: Request, status_code: int, message: str):
    template = "500.html" if status_code >= 500 else "404.html"
    return request.app.state.templates.TemplateResponse(
        request, template, {"message": message}, status_code=status_code
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    AppError -> JSON {status, errors} для /api/, страница 404.html/500.html для HTML.
    Неизвестный путь вне /api/ -> 404.html вместо {"detail": "Not Found"}.
    """

    async def handle_app_error(request: Request, exc: AppError):
        log = getattr(request.app.state, "log", None)
        if log and isinstance(exc, StoreError):
            await log.log_error("store", exc.message, {"path": request.url.path, "cause": repr(exc.__cause__)})
        if wants_html(request):
            return render_error_page(request, exc.status_code, exc.errors[0])
        return JSONResponse(status_code=exc.status_code, content=error_payload(exc))

    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404 and wants_html(request):
            return render_error_page(request, 404, NOT_FOUND_MESSAGE)
        return await http_exception_handler(request, exc)

    app.add_exception_handler(AppError, handle_app_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
