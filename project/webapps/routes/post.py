# webapps/routes/post.py

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from typing import Optional

from webapps.models.user import User
from webapps.routes.auth import get_current_user, admin_required, templates
from webapps.routes.common import read_json, render_message
from webapps.schemas.common import parse_id
from webapps.core.exceptions import ValidationError
from webapps.schemas.post import parse_post_payload
from webapps.services.comment import read_comments_service
from webapps.services.post import (
    count_posts_service,
    create_post_service,
    read_posts_service,
    read_recent_posts_service,
    read_post_service,
    update_post_service,
    delete_post_service,
)

router = APIRouter()

PAGE_SIZE = 10
RECENT_POSTS = 5


def parse_page(raw: Optional[str]) -> int:
    try:
        return max(int(raw), 1)
    except (TypeError, ValueError):
        return 1


def page_context(user: Optional[User]) -> dict:
    return {
        "is_logged_in": user is not None,
        "is_admin": bool(user and user.is_admin),
        "user": user,
    }


def access_denied(request: Request):
    return render_message(templates, request, "404.html", 403, "Access Denied. Admin privileges required.")


# ────────────── Страницы ──────────────
@router.get("/", include_in_schema=False)
@router.get("/about", include_in_schema=False)
async def about(request: Request, user: Optional[User] = Depends(get_current_user)):
    recent_posts = await read_recent_posts_service(request.app.state.database, limit=RECENT_POSTS)
    return templates.TemplateResponse(request, "about.html", {"recent_posts": recent_posts, **page_context(user)})


@router.get("/posts", include_in_schema=False)
async def posts_list(request: Request, page: Optional[str] = None, user: Optional[User] = Depends(get_current_user)):
    database = request.app.state.database
    current_page = parse_page(page)
    posts = await read_posts_service(database, page=current_page, limit=PAGE_SIZE)
    total_posts = await count_posts_service(database)
    return templates.TemplateResponse(request, "posts_list.html", {
        "posts": posts,
        "current_page": current_page,
        "limit": PAGE_SIZE,
        "total_posts": total_posts,
        "base_url": "/posts",
        **page_context(user),
    })


@router.get("/posts/{post_id}", include_in_schema=False)
async def post_detail(post_id: str, request: Request, user: Optional[User] = Depends(get_current_user)):
    database = request.app.state.database
    try:
        post = await read_post_service(parse_id(post_id, "post ID"), database)
    except ValidationError:
        post = None
    if post is None:
        return render_message(templates, request, "404.html", 404, "Blog post not found.")

    comments = await read_comments_service(post["id"], database)
    return templates.TemplateResponse(request, "post.html", {"post": post, "comments": comments, **page_context(user)})


# ────────────── Админка ──────────────
@router.get("/admin/posts", include_in_schema=False)
async def admin_posts(request: Request, page: Optional[str] = None, user: Optional[User] = Depends(get_current_user)):
    if not user or not user.is_admin:
        return access_denied(request)

    database = request.app.state.database
    current_page = parse_page(page)
    posts = await read_posts_service(database, page=current_page, limit=PAGE_SIZE)
    total_posts = await count_posts_service(database)
    return templates.TemplateResponse(request, "posts_list.html", {
        "posts": posts,
        "current_page": current_page,
        "limit": PAGE_SIZE,
        "total_posts": total_posts,
        "base_url": "/admin/posts",
        **page_context(user),
    })


@router.get("/admin/create", include_in_schema=False)
async def admin_create(request: Request, user: Optional[User] = Depends(get_current_user)):
    if not user or not user.is_admin:
        return access_denied(request)
    return templates.TemplateResponse(request, "post_form.html", {"is_edit": False, "post": None, **page_context(user)})


@router.get("/admin/edit/{post_id}", include_in_schema=False)
async def admin_edit(post_id: str, request: Request, user: Optional[User] = Depends(get_current_user)):
    if not user or not user.is_admin:
        return access_denied(request)

    try:
        post = await read_post_service(parse_id(post_id, "post ID"), request.app.state.database)
    except ValidationError:
        post = None
    if post is None:
        return render_message(templates, request, "404.html", 404, "Post not found for editing.")
    return templates.TemplateResponse(request, "post_form.html", {"is_edit": True, "post": post, **page_context(user)})


# ────────────── API ──────────────
@router.post(
    "/api/posts",
    status_code=status.HTTP_201_CREATED,
    summary="Создать пост (только админ)",
    responses={
        201: {"description": "Пост создан", "content": {"application/json": {"example": {"status": "success", "id": 1}}}},
        400: {"description": "Нет заголовка или текста"},
        403: {"description": "Требуется администратор"},
        500: {"description": "Внутренняя ошибка сервера"},
    },
)
async def create_post(request: Request, user: User = Depends(admin_required)):
    state = request.app.state
    post = parse_post_payload(await read_json(request))
    post_id = await create_post_service(post.title, post.blog_text, user.id, state.database, state.log)
    return JSONResponse(status_code=status.HTTP_201_CREATED, content={"status": "success", "id": post_id})


@router.put(
    "/api/posts/{post_id}",
    status_code=status.HTTP_200_OK,
    summary="Обновить пост (только админ)",
    responses={
        200: {"description": "Пост обновлён"},
        400: {"description": "Нет заголовка или текста, неверный ID"},
        403: {"description": "Требуется администратор"},
        404: {"description": "Пост не найден"},
        500: {"description": "Внутренняя ошибка сервера"},
    },
)
async def update_post(post_id: str, request: Request, _: User = Depends(admin_required)):
    state = request.app.state
    parsed_id = parse_id(post_id, "post ID")
    post = parse_post_payload(await read_json(request))
    await update_post_service(parsed_id, post.title, post.blog_text, state.database, state.log)
    return {"status": "success", "id": parsed_id}


@router.delete(
    "/api/posts/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить пост вместе с комментариями (только админ)",
    responses={
        204: {"description": "Пост удалён"},
        403: {"description": "Требуется администратор"},
        404: {"description": "Пост не найден"},
        500: {"description": "Внутренняя ошибка сервера"},
    },
)
async def delete_post(post_id: str, request: Request, _: User = Depends(admin_required)):
    state = request.app.state
    await delete_post_service(parse_id(post_id, "post ID"), state.database, state.log)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
