"""
Tests for SessionFactory session creation and tracking resolution.
"""

from unittest.mock import MagicMock

import pytest

from datasession.protocols import DbSession, QueryExecutor, QuerySession
from datasession.sessions.factory import SessionFactory
from datasession.sessions.options import EntityOptionsSelector
from datasession.sessions.session import Session
from datasession.sessions.tracking import ChangeTracking, SessionState
from datasession.settings import Settings
from datasession.storage.db import create_session_maker


@pytest.fixture
def wrapped_maker(engine):
    """Session maker spy that still produces real AsyncSessions."""
    return MagicMock(wraps=create_session_maker(engine))


class TestResolveTracking:
    def test_default_resolves_from_settings(self, wrapped_maker):
        factory = SessionFactory(
            wrapped_maker,
            settings=Settings(DB_DEFAULT_CHANGE_TRACKING="disable"),
        )

        assert factory.resolve_tracking(None) is ChangeTracking.DISABLE
        assert (
            factory.resolve_tracking(ChangeTracking.DEFAULT)
            is ChangeTracking.DISABLE
        )

    def test_explicit_mode_kept(self, wrapped_maker):
        factory = SessionFactory(
            wrapped_maker,
            settings=Settings(DB_DEFAULT_CHANGE_TRACKING="disable"),
        )

        assert (
            factory.resolve_tracking(ChangeTracking.ENABLE)
            is ChangeTracking.ENABLE
        )


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_tracking_session(self, wrapped_maker, test_settings):
        factory = SessionFactory(wrapped_maker, settings=test_settings)

        session = factory.create()

        assert isinstance(session, Session)
        assert session.tracking is ChangeTracking.ENABLE
        assert session.state is SessionState.ACTIVE
        wrapped_maker.assert_called_once_with(autoflush=True)
        await session.close()

    @pytest.mark.asyncio
    async def test_create_for_query_disables_tracking(
        self, wrapped_maker, test_settings
    ):
        factory = SessionFactory(wrapped_maker, settings=test_settings)

        session = factory.create_for_query()

        assert session.tracking is ChangeTracking.DISABLE
        wrapped_maker.assert_called_once_with(autoflush=False)
        await session.close()

    @pytest.mark.asyncio
    async def test_each_session_owns_its_connection(
        self, wrapped_maker, test_settings
    ):
        factory = SessionFactory(wrapped_maker, settings=test_settings)

        first = factory.create()
        second = factory.create()

        assert first is not second
        assert wrapped_maker.call_count == 2
        await first.close()
        assert second.state is SessionState.ACTIVE
        await second.close()

    @pytest.mark.asyncio
    async def test_sessions_share_options_selector(self, engine):
        selector = EntityOptionsSelector()
        factory = SessionFactory.from_engine(engine, options_selector=selector)

        async with factory.create() as session:
            assert session._options_selector is selector
            assert factory.options_selector is selector

    @pytest.mark.asyncio
    async def test_session_rejects_unresolved_default(self, engine):
        maker = create_session_maker(engine)
        async_session = maker()

        with pytest.raises(ValueError, match="DEFAULT"):
            Session(async_session, ChangeTracking.DEFAULT)

        await async_session.close()


class TestProtocols:
    @pytest.mark.asyncio
    async def test_session_satisfies_protocols(self, session_factory):
        async with session_factory.create() as session:
            assert isinstance(session, DbSession)
            assert isinstance(session, QuerySession)
            assert isinstance(session, QueryExecutor)
