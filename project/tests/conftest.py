import asyncio
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from webapps.config import Settings
from webapps.main import create_shop_app, create_blog_app
from webapps.utils.database import Database, init_db
from webapps.utils.log import Log

START = datetime(2025, 10, 4, 12, 0, 0)


class FakeClock:
    """Подменяет app.state.clock: время идёт только по advance()."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'app.db'}",
        LOG_DIR=str(tmp_path / "log"),
        LOG_PRINT="0",
        ADMIN_ORDER_PATH="secret-orders",
        ADMIN_SECRET_PATH="let-me-in",
        AUTH_SECRET_KEY="test-secret-key",
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def shop_client(settings, clock):
    app = create_shop_app(settings)
    app.state.clock = clock
    with TestClient(app) as client:
        yield client


@pytest.fixture
def blog_client(settings):
    with TestClient(create_blog_app(settings)) as client:
        yield client


@pytest.fixture
def run_db(tmp_path):
    """
    Запускает async-сценарий scenario(database, log) в собственном event loop
    на файле SQLite. Файл общий для всех вызовов внутри одного теста.
    """
    url = f"sqlite+aiosqlite:///{tmp_path / 'services.db'}"

    def run(scenario, pool_size: int = 5):
        async def main():
            database = Database(url, pool_size=pool_size)
            log = Log(str(tmp_path / "log"), "0")
            await init_db(database)
            try:
                return await scenario(database, log)
            finally:
                await database.dispose()
                await log.shutdown()

        return asyncio.run(main())

    return run
