"""
Factory producing read-write and query-only sessions.

Example:
    ```python
    from datasession.sessions import SessionFactory
    from datasession.storage.db import create_engine

    engine = create_engine()
    factory = SessionFactory.from_engine(engine)

    async with factory.create() as session:
        session.add(Blog(name="First"))
        await session.save_changes()

    async with factory.create_for_query() as session:
        blogs = await session.query(Blog).to_list()
    ```
"""

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.orm import sessionmaker

from datasession.logging import logger as default_logger
from datasession.sessions.options import EntityOptionsSelector
from datasession.sessions.session import Session
from datasession.sessions.tracking import ChangeTracking
from datasession.settings import Settings, app_settings
from datasession.storage.db import create_session_maker


class SessionFactory:
    """
    Creates sessions, each bound to its own underlying AsyncSession.

    Attributes:
        options_selector: Per-entity query options shared by all sessions.
    """

    def __init__(
        self,
        session_maker: sessionmaker,
        options_selector: EntityOptionsSelector | None = None,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the factory.

        Args:
            session_maker: Produces a new AsyncSession per call.
            options_selector: Per-entity query options.
            settings: Settings providing DB_DEFAULT_CHANGE_TRACKING.
                Defaults to app_settings.
            logger: Logger handed to every session. Defaults to the
                package logger.
        """
        self._session_maker = session_maker
        self.options_selector = options_selector or EntityOptionsSelector()
        self._settings = settings or app_settings
        self._logger = logger or default_logger

    @classmethod
    def from_engine(cls, engine: AsyncEngine, **kwargs: Any) -> "SessionFactory":
        """
        Create a factory whose sessions connect through an engine.

        Args:
            engine: Engine the sessions use.
            **kwargs: Forwarded to the constructor.

        Returns:
            SessionFactory using ``create_session_maker(engine)``.
        """
        return cls(create_session_maker(engine), **kwargs)

    def resolve_tracking(self, tracking: ChangeTracking | None) -> ChangeTracking:
        """
        Resolve a requested tracking mode to ENABLE or DISABLE.

        Args:
            tracking: Requested mode; None means DEFAULT.

        Returns:
            The mode the session will use for its whole lifetime.
        """
        if tracking is None or tracking is ChangeTracking.DEFAULT:
            return ChangeTracking(self._settings.DB_DEFAULT_CHANGE_TRACKING)
        return tracking

    def create(self, tracking: ChangeTracking | None = None) -> Session:
        """
        Create a read-write session.

        Args:
            tracking: Change tracking mode. Defaults to the configured mode.

        Returns:
            A new active session owning a new AsyncSession.
        """
        resolved = self.resolve_tracking(tracking)
        async_session = self._session_maker(
            autoflush=resolved is ChangeTracking.ENABLE
        )
        self._logger.debug(f"Created session (tracking={resolved.value})")
        return Session(
            async_session,
            resolved,
            options_selector=self.options_selector,
            logger=self._logger,
        )

    def create_for_query(self) -> Session:
        """
        Create a session for reading only.

        Equivalent to ``create(ChangeTracking.DISABLE)``: autoflush is off
        and loaded entities are detached after each query.

        Returns:
            A new active session with change tracking disabled.
        """
        return self.create(ChangeTracking.DISABLE)
