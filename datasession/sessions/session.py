"""
Unit-of-work session over one underlying async session.

Example:
    ```python
    async with factory.create() as session:
        session.add(Blog(name="First"))
        await session.save_changes()

        # Same session: the saved blog is visible
        blog = await session.query(Blog).where(Blog.name == "First").single_or_default()
    ```
"""

import logging
from collections.abc import Iterable, Iterator
from typing import Any, TypeVar

from sqlalchemy import Executable, Result, Row, event, inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import InstanceState
from sqlmodel import Session as SyncSession, select
from sqlmodel.ext.asyncio.session import AsyncSession

from datasession.exceptions import SessionDisposedError
from datasession.logging import logger as default_logger
from datasession.queries.query import Query
from datasession.queries.strategy import QueryStrategy
from datasession.sessions.options import EntityOptionsSelector
from datasession.sessions.tracking import ChangeTracking, SessionState

T = TypeVar("T")


def _mapped_instances(values: Iterable[Any]) -> Iterator[Any]:
    """Yield ORM-mapped instances found in values, looking inside rows."""
    for value in values:
        if isinstance(value, Row):
            yield from _mapped_instances(value)
        elif isinstance(inspect(value, raiseerr=False), InstanceState):
            yield value


class Session:
    """
    Unit-of-work scope bound to one underlying AsyncSession.

    Mutations and queries issued through the same session share the
    underlying connection, so a query after ``save_changes()`` observes the
    saved state. Sessions created separately have no such guarantee.

    A session and its connection support one in-flight operation at a
    time. Concurrent use of one instance from several tasks is not guarded
    and is the caller's responsibility.

    After ``close()`` every operation raises ``SessionDisposedError``.
    Closing again is a no-op.

    Attributes:
        tracking: Resolved change tracking mode (never DEFAULT).
        state: Current lifecycle state.
    """

    def __init__(
        self,
        session: AsyncSession,
        tracking: ChangeTracking,
        options_selector: EntityOptionsSelector | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the session.

        Args:
            session: Underlying async session. Owned by this object and
                closed by ``close()``.
            tracking: Resolved change tracking mode, ENABLE or DISABLE.
            options_selector: Per-entity query options.
            logger: Logger for session and query failures.
        """
        if tracking is ChangeTracking.DEFAULT:
            raise ValueError(
                "ChangeTracking.DEFAULT must be resolved before creating a session"
            )
        self._session = session
        self._tracking = tracking
        self._options_selector = options_selector or EntityOptionsSelector()
        self._logger = logger or default_logger
        self._pending_changes = 0
        event.listen(self._session.sync_session, "after_flush", self._on_flush)
        self._state = SessionState.ACTIVE

    @property
    def tracking(self) -> ChangeTracking:
        return self._tracking

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_disposed(self) -> bool:
        return self._state is SessionState.DISPOSED

    def query(self, target: QueryStrategy[Any, T] | type[T]) -> Query[T]:
        """
        Create a deferred query from a strategy or an entity class.

        Nothing is executed until a terminal operation of the returned
        query is awaited.

        Args:
            target: Strategy to apply, or the entity class to query in full.

        Returns:
            Query over the shaped statement.

        Raises:
            SessionDisposedError: If the session is closed.
            TypeError: If target is neither a strategy nor a class.
        """
        self._ensure_active("query")
        if isinstance(target, QueryStrategy):
            statement = target.build()
        elif isinstance(target, type):
            statement = select(target)
        else:
            raise TypeError(
                f"Expected a QueryStrategy or an entity class, got {type(target).__name__}"
            )
        return Query(self, self._apply_entity_options(statement), self._logger)

    async def execute(self, statement: Executable) -> Result[Any]:
        """
        Execute a statement on the underlying session.

        Args:
            statement: Statement to execute.

        Returns:
            The buffered result.

        Raises:
            SessionDisposedError: If the session is closed.
        """
        self._ensure_active("execute")
        return await self._session.exec(statement)  # type: ignore[call-overload]

    def detach(self, instances: Iterable[Any]) -> None:
        """
        Expunge loaded instances when change tracking is disabled.

        With tracking disabled, query results are snapshots: later changes
        to them are not persisted by ``save_changes()``.
        """
        if self._tracking is not ChangeTracking.DISABLE or self.is_disposed:
            return
        for instance in _mapped_instances(instances):
            if instance in self._session:
                self._session.expunge(instance)

    def add(self, entity: Any) -> None:
        """Stage a new entity for insertion."""
        self._ensure_active("add")
        self._session.add(entity)

    def add_range(self, entities: Iterable[Any]) -> None:
        """Stage new entities for insertion."""
        self._ensure_active("add_range")
        self._session.add_all(list(entities))

    async def remove(self, entity: Any) -> None:
        """Stage an entity for deletion."""
        self._ensure_active("remove")
        await self._session.delete(entity)

    async def remove_range(self, entities: Iterable[Any]) -> None:
        """Stage entities for deletion."""
        self._ensure_active("remove_range")
        for entity in entities:
            await self._session.delete(entity)

    async def update(self, entity: T) -> T:
        """
        Stage an entity's current values for update.

        Works with entities loaded by another session or detached by a
        session without change tracking.

        Args:
            entity: Entity carrying the values to persist.

        Returns:
            The instance attached to this session.
        """
        self._ensure_active("update")
        return await self._session.merge(entity)

    async def update_range(self, entities: Iterable[T]) -> list[T]:
        """Stage entities' current values for update."""
        self._ensure_active("update_range")
        return [await self._session.merge(entity) for entity in entities]

    async def save_changes(self) -> int:
        """
        Persist all staged changes and commit.

        Returns:
            Number of entities inserted, updated or deleted since the last
            save, including changes flushed automatically by queries.

        Raises:
            SessionDisposedError: If the session is closed.
            SQLAlchemyError: If the database rejects the changes. The
                session is rolled back first.
        """
        self._ensure_active("save_changes")
        try:
            await self._session.commit()
        except SQLAlchemyError as ex:
            await self._session.rollback()
            self._pending_changes = 0
            self._logger.error(f"Error saving changes: {ex}")
            raise

        saved = self._pending_changes
        self._pending_changes = 0
        return saved

    async def close(self) -> None:
        """
        Release the underlying session and its connection.

        Staged changes that were not saved are discarded. Calling close on
        a disposed session does nothing.
        """
        if self._state is SessionState.DISPOSED:
            return
        self._state = SessionState.DISPOSED
        event.remove(self._session.sync_session, "after_flush", self._on_flush)
        await self._session.close()

    async def __aenter__(self) -> "Session":
        self._ensure_active("__aenter__")
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:  # type: ignore[no-untyped-def]
        await self.close()

    def _ensure_active(self, operation: str) -> None:
        if self._state is not SessionState.ACTIVE:
            raise SessionDisposedError(operation)

    def _apply_entity_options(self, statement: Any) -> Any:
        descriptions = statement.column_descriptions
        if len(descriptions) != 1:
            return statement
        entity = descriptions[0].get("entity")
        if entity is None or descriptions[0].get("expr") is not entity:
            return statement
        options = self._options_selector.get(entity)
        if options is None:
            return statement
        return options.apply(statement, entity)

    def _on_flush(self, session: SyncSession, flush_context: Any) -> None:
        modified = [obj for obj in session.dirty if session.is_modified(obj)]
        self._pending_changes += (
            len(session.new) + len(modified) + len(session.deleted)
        )

    def __repr__(self) -> str:
        return f"Session(tracking={self._tracking.value}, state={self._state.value})"
