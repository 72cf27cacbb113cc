# webapps/services/user.py

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from webapps.core.exceptions import ValidationError, StoreError
from webapps.models.user import User as UserModel
from webapps.utils.database import Database
from webapps.utils.log import Log
from webapps.utils.security import hash_password


async def create_user_service(username: str, password: str, database: Database, log: Log) -> UserModel:
    """
    Регистрация нового пользователя.
    Все новые пользователи обычные (is_admin=False), пароль хэшируется.
    """
    db_user = UserModel(username=username, password_hash=hash_password(password), is_admin=False)
    try:
        async with database.transaction() as session:
            session.add(db_user)
    except StoreError as e:
        # гонка двух регистраций с одним логином ловится уникальным индексом
        if isinstance(e.__cause__, IntegrityError):
            raise ValidationError(["Username already taken."]) from e
        raise

    await log.log_info("user", "Пользователь создан", {"id": db_user.id, "username": username})
    return db_user


async def read_user_by_username_service(username: str, database: Database) -> UserModel | None:
    async with database.session() as session:
        result = await session.execute(select(UserModel).where(UserModel.username == username))
        return result.scalar_one_or_none()


async def read_user_service(user_id: int, database: Database) -> UserModel | None:
    async with database.session() as session:
        result = await session.execute(select(UserModel).where(UserModel.id == user_id))
        return result.scalar_one_or_none()


async def escalate_to_admin_service(user_id: int, database: Database, log: Log) -> bool:
    """
    Делает пользователя админом. Условие is_admin = False в WHERE:
    повторное повышение ничего не меняет и возвращает False.
    """
    async with database.session() as session:
        result = await session.execute(
            update(UserModel)
            .where(UserModel.id == user_id)
            .where(UserModel.is_admin.is_(False))
            .values(is_admin=True)
            .execution_options(synchronize_session=False)
        )
        await session.commit()

    escalated = result.rowcount > 0
    await log.log_info("user", "Повышение до админа", {"id": user_id, "escalated": escalated})
    return escalated
