"""Tests for engine creation and database bootstrap."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy import MetaData, inspect
from sqlalchemy.exc import OperationalError
from sqlmodel.ext.asyncio.session import AsyncSession

from datasession.settings import Settings
from datasession.storage.db import (
    create_engine,
    create_session_maker,
    init_db,
    wait_and_init_db,
)


class TestCreateEngine:
    @pytest.mark.asyncio
    async def test_sqlite_engine(self, test_settings):
        engine = create_engine(test_settings)
        try:
            assert engine.dialect.name == "sqlite"
            assert engine.url.drivername == "sqlite+aiosqlite"
        finally:
            await engine.dispose()

    @pytest.mark.asyncio
    async def test_pooled_engine_uses_pool_settings(self):
        settings = Settings(
            DATABASE_URL="postgresql+asyncpg://user:secret@db:5432/blogs",
            DB_POOL_SIZE=7,
            DB_MAX_OVERFLOW=3,
        )

        engine = create_engine(settings)
        try:
            assert engine.dialect.name == "postgresql"
            assert engine.pool.size() == 7
            assert engine.pool._max_overflow == 3
        finally:
            await engine.dispose()


class TestSessionMaker:
    @pytest.mark.asyncio
    async def test_produces_independent_async_sessions(self, engine):
        maker = create_session_maker(engine)

        first = maker()
        second = maker()
        try:
            assert isinstance(first, AsyncSession)
            assert first is not second
            assert first.sync_session.expire_on_commit is False
        finally:
            await first.close()
            await second.close()


class TestInitDb:
    @pytest.mark.asyncio
    async def test_creates_tables(self, engine):
        async with engine.connect() as conn:
            tables = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).get_table_names()
            )

        assert {"blog", "post"} <= set(tables)

    @pytest.mark.asyncio
    async def test_custom_metadata(self, test_settings):
        engine = create_engine(test_settings)
        try:
            await init_db(engine, MetaData())
            async with engine.connect() as conn:
                tables = await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).get_table_names()
                )
            assert tables == []
        finally:
            await engine.dispose()


class TestWaitAndInitDb:
    @pytest.mark.asyncio
    async def test_ready_database(self, engine, caplog):
        with caplog.at_level("INFO", logger="datasession"):
            await wait_and_init_db(engine, retry_interval=0, max_retries=1)

        assert "Database is now ready." in caplog.text

    @pytest.mark.asyncio
    async def test_unavailable_database_raises(self, caplog):
        engine = MagicMock()
        engine.connect.return_value.__aenter__ = AsyncMock(
            side_effect=OperationalError("SELECT 1", {}, Exception("refused"))
        )

        with patch(
            "datasession.storage.db.asyncio.sleep", new_callable=AsyncMock
        ) as sleep_mock:
            with pytest.raises(
                RuntimeError, match="Database connection could not be established"
            ):
                await wait_and_init_db(engine, retry_interval=2, max_retries=3)

        assert sleep_mock.await_count == 3
        sleep_mock.assert_awaited_with(2)
        assert "Attempt 3/3" in caplog.text
