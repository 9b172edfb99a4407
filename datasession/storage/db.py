import asyncio

from sqlalchemy import MetaData
from sqlalchemy.engine import make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
)
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from datasession.logging import logger
from datasession.settings import Settings, app_settings


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    """
    Create the async engine described by the settings.

    Pool sizing options are only passed to dialects that use a queue pool;
    SQLite engines are created without them.

    Args:
        settings: Settings to read DATABASE_URL and pool options from.
            Defaults to app_settings.

    Returns:
        AsyncEngine: A new engine. The caller owns it and must dispose it.
    """
    if settings is None:
        settings = app_settings

    url = make_url(settings.DATABASE_URL)
    if url.get_backend_name() == "sqlite":
        return create_async_engine(url, echo=settings.DB_ECHO)

    return create_async_engine(
        url,
        echo=settings.DB_ECHO,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=settings.DB_POOL_PRE_PING,
    )


def create_session_maker(engine: AsyncEngine) -> sessionmaker:
    """
    Create the factory of underlying async sessions bound to an engine.

    Args:
        engine: The engine every produced AsyncSession connects through.

    Returns:
        sessionmaker: Produces a new, independent AsyncSession per call.
    """
    return sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


async def wait_and_init_db(
    engine: AsyncEngine,
    retry_interval: int | None = None,
    max_retries: int | None = None,
) -> None:
    """
    Wait until the database is available.

    Args:
        engine: The engine to test connections with.
        retry_interval: Time in seconds between retries.
            Defaults to app_settings.DB_INIT_RETRY_INTERVAL
        max_retries: Maximum number of retries before giving up.
            Defaults to app_settings.DB_INIT_MAX_RETRIES

    Raises:
        RuntimeError: If the database is still unavailable after all retries.
    """
    if retry_interval is None:
        retry_interval = app_settings.DB_INIT_RETRY_INTERVAL
    if max_retries is None:
        max_retries = app_settings.DB_INIT_MAX_RETRIES
    for attempt in range(max_retries):
        try:
            async with engine.connect() as conn:
                await conn.exec_driver_sql("SELECT 1")
            logger.info("Database is now ready.")
            return
        except OperationalError:
            logger.warning(
                f"Database not ready, retrying in {retry_interval} seconds... (Attempt {attempt + 1}/{max_retries})"
            )
            await asyncio.sleep(retry_interval)

    logger.error("Failed to connect to the database after multiple attempts.")
    raise RuntimeError("Database connection could not be established.")


async def init_db(
    engine: AsyncEngine, metadata: MetaData | None = None
) -> None:
    """
    Create all tables registered in the metadata.

    Args:
        engine: The engine to create tables with.
        metadata: Table metadata. Defaults to SQLModel.metadata.
    """
    if metadata is None:
        metadata = SQLModel.metadata
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
