# webapps/routes/auth.py

import secrets

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from typing import Optional

from webapps.core.exceptions import AuthorizationError, ValidationError
from webapps.models.user import User
from webapps.routes.common import make_templates, render_message
from webapps.schemas.user import parse_registration_form
from webapps.services.user import (
    create_user_service,
    read_user_by_username_service,
    read_user_service,
    escalate_to_admin_service,
)
from webapps.utils.security import (
    create_session_token,
    read_session_token,
    verify_password,
)

router = APIRouter()
templates = make_templates("blog")

SESSION_COOKIE = "session_id"


# ────────────── Сессия ──────────────
def set_session_cookie(response, user_id: int, request: Request):
    settings = request.app.state.settings
    token = create_session_token(user_id, settings.AUTH_SECRET_KEY, settings.AUTH_TOKEN_EXPIRE_MINUTES)
    response.set_cookie(
        SESSION_COOKIE,
        token,
        httponly=True,
        max_age=settings.AUTH_TOKEN_EXPIRE_MINUTES * 60,
    )


async def get_current_user(request: Request) -> Optional[User]:
    """
    Пользователь из куки session_id или None (гость).
    Кука содержит подписанный JWT; подделка или истёкший срок -> гость.
    """
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None

    state = request.app.state
    user_id = read_session_token(token, state.settings.AUTH_SECRET_KEY)
    if user_id is None:
        await state.log.log_warning("auth", "Неверный или истёкший токен сессии")
        return None

    return await read_user_service(user_id, state.database)


async def admin_required(user: Optional[User] = Depends(get_current_user)) -> User:
    """Для JSON API: не админ -> 403."""
    if not user or not user.is_admin:
        raise AuthorizationError("Access Denied. Admin privileges required.")
    return user


# ────────────── Вход ──────────────
@router.get("/login", include_in_schema=False)
async def login_form(request: Request, promoted: str = "", error: str = ""):
    success = "Account successfully promoted to Admin! Please log in again." if promoted == "true" else None
    return templates.TemplateResponse(request, "login.html", {"error": error or None, "success": success})


@router.post("/login", include_in_schema=False)
async def login(request: Request):
    """
    Проверяет логин и пароль; при успехе ставит куку сессии и ведёт на главную.
    """
    state = request.app.state
    form = await request.form()
    username = (form.get("username") or "").strip()
    password = form.get("password") or ""

    user = await read_user_by_username_service(username, state.database) if username else None
    if not user or not verify_password(password, user.password_hash):
        await state.log.log_warning("auth", "Неудачная попытка входа", {"username": username})
        return templates.TemplateResponse(
            request, "login.html", {"error": "Invalid username or password.", "success": None}
        )

    await state.log.log_info("auth", "Пользователь вошёл", {"id": user.id})
    response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, user.id, request)
    return response


# ────────────── Регистрация ──────────────
@router.get("/register", include_in_schema=False)
async def register_form(request: Request):
    return templates.TemplateResponse(request, "register.html", {"error": None, "username": None})


@router.post("/register", include_in_schema=False)
async def register(request: Request):
    """
    Регистрация нового пользователя.

    - Все новые пользователи **по умолчанию обычные** (`is_admin=False`).
    - Пароль хэшируется перед сохранением.
    - После регистрации пользователь сразу залогинен.
    """
    state = request.app.state
    form = await request.form()
    username = form.get("username")

    try:
        user_data = parse_registration_form(form)
        if await read_user_by_username_service(user_data.username, state.database):
            raise ValidationError(["Username already taken."])
        user = await create_user_service(user_data.username, user_data.password, state.database, state.log)
    except ValidationError as e:
        return templates.TemplateResponse(
            request, "register.html", {"error": e.errors[0], "username": username}
        )

    response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    set_session_cookie(response, user.id, request)
    return response


@router.get("/logout", include_in_schema=False)
async def logout():
    response = RedirectResponse("/", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(SESSION_COOKIE)
    return response


# ────────────── Секретное повышение до админа ──────────────
@router.get("/secret-admin-key/{secret}", include_in_schema=False)
async def escalate(secret: str, request: Request, user: Optional[User] = Depends(get_current_user)):
    state = request.app.state
    if not secrets.compare_digest(secret, state.settings.ADMIN_SECRET_PATH):
        return render_message(templates, request, "404.html", 404, "The requested resource was not found.")

    if not user:
        return render_message(
            templates, request, "404.html", 403, "Access Denied. You must be logged in to use this feature."
        )

    if user.is_admin:
        return RedirectResponse("/admin/posts", status_code=status.HTTP_303_SEE_OTHER)

    if not await escalate_to_admin_service(user.id, state.database, state.log):
        return render_message(templates, request, "500.html", 500, "Failed to update user status in the database.")

    # права поменялись - пусть войдёт заново
    response = RedirectResponse("/login?promoted=true", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(SESSION_COOKIE)
    return response
