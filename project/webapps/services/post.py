# webapps/services/post.py

from sqlalchemy import select, update, delete, func

from webapps.core.exceptions import NotFoundError
from webapps.models.post import Post as PostModel, Comment as CommentModel
from webapps.models.user import User as UserModel
from webapps.utils.database import Database
from webapps.utils.log import Log

PREVIEW_LENGTH = 300


def _post_columns():
    return (
        PostModel.id,
        PostModel.title,
        PostModel.blog_text,
        PostModel.date_posted,
        PostModel.author_id,
        func.substr(PostModel.blog_text, 1, PREVIEW_LENGTH).label("preview_text"),
        UserModel.username.label("author_name"),
    )


async def count_posts_service(database: Database) -> int:
    async with database.session() as session:
        result = await session.execute(select(func.count()).select_from(PostModel))
        return result.scalar_one()


async def create_post_service(title: str, blog_text: str, author_id: int, database: Database, log: Log) -> int:
    async with database.transaction() as session:
        db_post = PostModel(title=title, blog_text=blog_text, author_id=author_id)
        session.add(db_post)
        await session.flush()
        post_id = db_post.id

    await log.log_info("post", "Пост создан", {"id": post_id, "author_id": author_id})
    return post_id


async def read_posts_service(database: Database, page: int = 1, limit: int = 10) -> list[dict]:
    """
    Страница постов, новые сверху, с превью текста и именем автора.
    """
    page = max(page, 1)
    stmt = (
        select(*_post_columns())
        .join(UserModel, PostModel.author_id == UserModel.id)
        .order_by(PostModel.date_posted.desc(), PostModel.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
    )
    async with database.session() as session:
        result = await session.execute(stmt)
        return [dict(row) for row in result.mappings().all()]


async def read_recent_posts_service(database: Database, limit: int = 5) -> list[dict]:
    return await read_posts_service(database, page=1, limit=limit)


async def read_post_service(post_id: int, database: Database) -> dict | None:
    stmt = (
        select(*_post_columns())
        .join(UserModel, PostModel.author_id == UserModel.id)
        .where(PostModel.id == post_id)
    )
    async with database.session() as session:
        result = await session.execute(stmt)
        row = result.mappings().one_or_none()
    return dict(row) if row else None


async def update_post_service(post_id: int, title: str, blog_text: str, database: Database, log: Log) -> None:
    async with database.session() as session:
        result = await session.execute(
            update(PostModel)
            .where(PostModel.id == post_id)
            .values(title=title, blog_text=blog_text)
            .execution_options(synchronize_session=False)
        )
        await session.commit()

    if result.rowcount == 0:
        await log.log_warning("post", "Пост не найден для обновления", {"id": post_id})
        raise NotFoundError("Post not found.", {"id": post_id})
    await log.log_info("post", "Пост обновлён", {"id": post_id})


async def delete_post_service(post_id: int, database: Database, log: Log) -> None:
    """Удаляет пост вместе с комментариями, одной транзакцией."""
    async with database.transaction() as session:
        await session.execute(delete(CommentModel).where(CommentModel.post_id == post_id))
        result = await session.execute(delete(PostModel).where(PostModel.id == post_id))
        if result.rowcount == 0:
            await log.log_warning("post", "Пост не найден для удаления", {"id": post_id})
            raise NotFoundError("Post not found.", {"id": post_id})

    await log.log_info("post", "Пост удалён", {"id": post_id})
