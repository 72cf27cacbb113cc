# webapps/main.py

import sys
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI

from webapps.config import Settings
from webapps.core.exceptions import StoreError, register_exception_handlers
from webapps.middleware.request_log import RequestLogMiddleware
from webapps.services.order import count_orders_service, utcnow
from webapps.utils.database import Database, init_db
from webapps.utils.log import Log

# --- загрузка переменных окружения ---
load_dotenv()

# ────────────── Lifespan ──────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    boot_log = Log(settings.LOG_DIR, settings.LOG_PRINT)
    boot_log.log_info_sync(target="startup", message=f"lifespan: startup начат ({app.title})")

    # Пул соединений живёт ровно столько, сколько приложение
    app.state.database = Database(settings.DATABASE_URL, settings.DB_POOL_SIZE, settings.DB_ECHO)
    await init_db(app.state.database)
    boot_log.log_info_sync(target="startup", message="База инициализирована")

    app.state.log = Log(settings.LOG_DIR, settings.LOG_PRINT)
    await app.state.log.log_info(target="startup", message="Async Log инициализирован")

    yield

    # shutdown
    await app.state.log.log_info(target="shutdown", message="Остановка приложения")
    await app.state.database.dispose()
    await app.state.log.shutdown()
    boot_log.log_info_sync(target="shutdown", message="Log корректно завершён")


def build_app(title: str, settings: Settings | None, templates, log_suffix=None) -> FastAPI:
    app = FastAPI(title=title, lifespan=lifespan)
    app.state.settings = settings or Settings()
    # шаблоны приложения нужны общим обработчикам ошибок (404.html / 500.html)
    app.state.templates = templates
    # часы подменяются в тестах, чтобы "прошло 5 минут"
    app.state.clock = utcnow

    register_exception_handlers(app)
    app.add_middleware(RequestLogMiddleware, log_suffix=log_suffix)
    return app


# ────────────── Магазин ──────────────
async def orders_count_suffix(state) -> str:
    """Хвост строки лога запросов магазина: сколько заказов сейчас в базе."""
    try:
        count = await count_orders_service(state.database)
    except StoreError:
        count = "N/A (DB Unavailable)"
    return f"Orders Count: {count}"


def create_shop_app(settings: Settings | None = None) -> FastAPI:
    from webapps.routes import order

    app = build_app("Shop: orders & tracking", settings, order.templates, log_suffix=orders_count_suffix)
    app.include_router(order.router, tags=["order"])
    return app


# ────────────── Блог ──────────────
def create_blog_app(settings: Settings | None = None) -> FastAPI:
    from webapps.routes import auth, post, comment

    app = build_app("Blog", settings, auth.templates)
    app.include_router(auth.router, tags=["auth"])
    app.include_router(post.router, tags=["post"])
    app.include_router(comment.router, tags=["comment"])
    return app


shop_app = create_shop_app()
blog_app = create_blog_app()

# ────────────── Запуск uvicorn ──────────────
# python -m webapps.main shop|blog [port]
if __name__ == "__main__":
    kind = sys.argv[1] if len(sys.argv) > 1 else "shop"
    port = int(sys.argv[2]) if len(sys.argv) > 2 else 4131
    if kind not in ("shop", "blog"):
        sys.exit("usage: python -m webapps.main shop|blog [port]")

    uvicorn.run(
        f"webapps.main:{kind}_app",
        host="127.0.0.1",
        port=port,
        log_level="info",
    )
