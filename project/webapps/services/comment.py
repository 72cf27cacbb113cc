# webapps/services/comment.py

from sqlalchemy import select, delete

from webapps.core.exceptions import NotFoundError, AuthorizationError
from webapps.models.post import Post as PostModel, Comment as CommentModel
from webapps.models.user import User as UserModel
from webapps.utils.database import Database
from webapps.utils.log import Log


def _comment_query():
    return (
        select(
            CommentModel.id,
            CommentModel.content,
            CommentModel.time_made,
            CommentModel.user_id,
            UserModel.username.label("commenter_name"),
        )
        .outerjoin(UserModel, CommentModel.user_id == UserModel.id)
    )


async def add_comment_service(
    post_id: int, user_id: int | None, content: str, database: Database, log: Log
) -> dict:
    """
    Добавляет комментарий (user_id=None - гость) и возвращает его
    в том же виде, что и список комментариев.
    """
    async with database.transaction() as session:
        post_exists = await session.execute(select(PostModel.id).where(PostModel.id == post_id))
        if post_exists.scalar_one_or_none() is None:
            raise NotFoundError("Post not found.", {"post_id": post_id})

        db_comment = CommentModel(post_id=post_id, user_id=user_id, content=content)
        session.add(db_comment)
        await session.flush()

        result = await session.execute(_comment_query().where(CommentModel.id == db_comment.id))
        comment = dict(result.mappings().one())

    await log.log_info("comment", "Комментарий добавлен", {"id": comment["id"], "post_id": post_id})
    return comment


async def read_comments_service(post_id: int, database: Database) -> list[dict]:
    """Комментарии поста, старые сверху."""
    stmt = (
        _comment_query()
        .where(CommentModel.post_id == post_id)
        .order_by(CommentModel.time_made.asc(), CommentModel.id.asc())
    )
    async with database.session() as session:
        result = await session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]


async def delete_comment_service(comment_id: int, current_user, database: Database, log: Log) -> None:
    """
    Удалить может админ или автор комментария.
    Гостевые комментарии (user_id NULL) - только админ.
    """
    async with database.transaction() as session:
        result = await session.execute(select(CommentModel.user_id).where(CommentModel.id == comment_id))
        row = result.one_or_none()
        if row is None:
            raise NotFoundError("Comment not found.", {"id": comment_id})

        is_admin = bool(current_user and current_user.is_admin)
        is_author = bool(current_user and row.user_id is not None and row.user_id == current_user.id)
        if not (is_admin or is_author):
            await log.log_warning("comment", "Попытка удалить чужой комментарий", {"id": comment_id})
            raise AuthorizationError("Not allowed to delete this comment.", {"id": comment_id})

        await session.execute(delete(CommentModel).where(CommentModel.id == comment_id))

    await log.log_info("comment", "Комментарий удалён", {"id": comment_id})
