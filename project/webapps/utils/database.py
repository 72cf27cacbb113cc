# webapps/utils/database.py

from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base

from webapps.core.exceptions import StoreError

# ────────────── Base для моделей ──────────────
Base = declarative_base()  # базовый класс для всех моделей SQLAlchemy


class Database:
    """
    Шлюз к БД: асинхронный движок с ограниченным пулом и фабрика сессий.

    Создаётся один раз на время жизни приложения (lifespan) и передаётся
    в сервисы явно. Все запросы строятся через SQLAlchemy с привязкой
    параметров, значения никогда не подставляются в текст SQL.

    - session()     - одиночные чтения/записи, без явной транзакции
    - transaction() - несколько операторов: либо commit всех, либо rollback
    """

    def __init__(self, url: str, pool_size: int = 5, echo: bool = False):
        self.url = url
        engine_kwargs = {"echo": echo}
        # in-memory SQLite живёт на одном соединении, пул там не настраивается
        if make_url(url).database not in (None, "", ":memory:"):
            engine_kwargs.update(pool_size=pool_size, max_overflow=0)

        # ────────────── Асинхронный движок ──────────────
        self.engine = create_async_engine(url, **engine_kwargs)

        # ────────────── Асинхронная сессия ──────────────
        self.session_factory = sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Сессия из пула для одиночного оператора. Коммит за вызывающим."""
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                await session.rollback()
                raise StoreError(f"Ошибка запроса к БД: {e}") from e

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncSession]:
        """
        Транзакционная единица работы:
            • соединение берётся из пула (при исчерпании пула - ждём)
            • при любом исключении - rollback, затем исключение летит дальше
            • сессия закрывается в finally при любом исходе
        """
        session = self.session_factory()
        try:
            await session.begin()
            yield session
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            raise StoreError(f"Ошибка транзакции: {e}") from e
        except BaseException:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def dispose(self):
        await self.engine.dispose()


# ────────────── Инициализация базы данных ──────────────
async def init_db(database: Database):
    """
    Создаёт все таблицы в базе данных (если ещё не созданы).
    Модели импортируются здесь, чтобы попасть в Base.metadata.
    """
    from webapps.models import order, user, post  # noqa: F401

    async with database.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
