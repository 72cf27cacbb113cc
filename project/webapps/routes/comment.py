# webapps/routes/comment.py

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from typing import Optional

from webapps.models.user import User
from webapps.routes.auth import get_current_user
from webapps.routes.common import read_json
from webapps.schemas.common import parse_id
from webapps.schemas.post import Comment, parse_comment_payload
from webapps.services.comment import add_comment_service, delete_comment_service

router = APIRouter()


@router.post(
    "/api/comments",
    status_code=status.HTTP_201_CREATED,
    summary="Добавить комментарий",
    responses={
        201: {"description": "Комментарий добавлен, возвращается для вставки в DOM"},
        400: {"description": "Нет текста или ID поста"},
        404: {"description": "Пост не найден"},
        500: {"description": "Внутренняя ошибка сервера"},
    },
)
async def add_comment(request: Request, user: Optional[User] = Depends(get_current_user)):
    """
    Комментировать может и гость: тогда user_id = NULL.
    """
    state = request.app.state
    payload = parse_comment_payload(await read_json(request))
    comment = await add_comment_service(
        payload.post_id, user.id if user else None, payload.content, state.database, state.log
    )
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"status": "success", "comment": jsonable_encoder(Comment(**comment))},
    )


@router.delete(
    "/api/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Удалить комментарий (админ или автор)",
    responses={
        204: {"description": "Комментарий удалён"},
        403: {"description": "Не автор и не админ"},
        404: {"description": "Комментарий не найден"},
        500: {"description": "Внутренняя ошибка сервера"},
    },
)
async def delete_comment(comment_id: str, request: Request, user: Optional[User] = Depends(get_current_user)):
    state = request.app.state
    await delete_comment_service(parse_id(comment_id, "comment ID"), user, state.database, state.log)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
