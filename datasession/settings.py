from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):  # type: ignore[misc]
    model_config = SettingsConfigDict(case_sensitive=True)

    ENVIRONMENT: str = "dev"

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str | None = None

    # Database settings
    DATABASE_URL: str = "sqlite+aiosqlite:///:memory:"
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 20
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_PRE_PING: bool = True
    DB_INIT_RETRY_INTERVAL: int = 2
    DB_INIT_MAX_RETRIES: int = 5

    # Mode used by sessions created with ChangeTracking.DEFAULT
    DB_DEFAULT_CHANGE_TRACKING: Literal["enable", "disable"] = "enable"

    # Query monitoring (seconds)
    DB_SLOW_QUERY_THRESHOLD: float = 0.1

    # Pagination settings
    DEFAULT_PAGE_SIZE: int = 20


app_settings = Settings()
