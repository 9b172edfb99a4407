"""
Pytest configuration and fixtures for testing.

This module provides shared fixtures for the in-memory database, session
factories and seeded Blog/Post data.
"""

import os

import pytest
import pytest_asyncio

# Tests always run against in-memory SQLite, whatever the environment says
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("DB_DEFAULT_CHANGE_TRACKING", "enable")

from datasession.sessions.factory import SessionFactory  # noqa: E402
from datasession.settings import Settings  # noqa: E402
from datasession.storage.db import create_engine, init_db  # noqa: E402
from tests.mocks.blog_models import get_blogs  # noqa: E402


@pytest.fixture
def test_settings():
    """
    Provides settings pointing at an in-memory database.

    Returns:
        Settings: Settings with change tracking enabled by default
    """
    return Settings(
        DATABASE_URL="sqlite+aiosqlite:///:memory:",
        DB_DEFAULT_CHANGE_TRACKING="enable",
    )


@pytest_asyncio.fixture
async def engine(test_settings):
    """
    Provides an async engine over a fresh in-memory database.

    All Blog/Post tables are created before the test and the engine is
    disposed afterwards.

    Yields:
        AsyncEngine: Engine with the schema created
    """
    db_engine = create_engine(test_settings)
    await init_db(db_engine)
    yield db_engine
    await db_engine.dispose()


@pytest.fixture
def session_factory(engine, test_settings):
    """
    Provides a session factory bound to the test engine.

    Returns:
        SessionFactory: Factory creating sessions on the in-memory database
    """
    return SessionFactory.from_engine(engine, settings=test_settings)


@pytest_asyncio.fixture
async def seeded_factory(session_factory):
    """
    Provides a session factory whose database holds the seed blogs.

    Returns:
        SessionFactory: Factory over a database with three blogs and
        three posts
    """
    async with session_factory.create() as session:
        session.add_range(get_blogs())
        await session.save_changes()
    return session_factory
