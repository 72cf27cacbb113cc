# webapps/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite+aiosqlite:///./webapps.db"
    DB_POOL_SIZE: int = 5       # общий пул соединений, не раздуваем
    DB_ECHO: bool = False

    # магазин
    SHIP_DURATION_SECONDS: int = 300    # через 5 минут Placed -> Shipped
    HISTORY_LIMIT: int = 5
    ADMIN_ORDER_PATH: str = "orders"
    CUSTOMER_COOKIE_MAX_AGE: int = 3600

    # блог
    ADMIN_SECRET_PATH: str = "change-me"
    AUTH_SECRET_KEY: str = "change-me"
    AUTH_TOKEN_EXPIRE_MINUTES: int = 15

    LOG_DIR: str = "webapps/log"
    LOG_PRINT: str = "1"

    # экземпляр создаётся в фабриках приложений (webapps.main) или в тестах
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )
