"""
Protocol classes for structural subtyping (duck typing with type safety).

Protocols define the capability sets of sessions without requiring explicit
inheritance. ``Session`` implements all of them; callers that only read
should depend on ``QuerySession``.

Example:
    ```python
    from datasession.protocols import QuerySession


    async def count_blogs(session: QuerySession) -> int:
        return await session.query(Blog).count()
    ```
"""

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from sqlalchemy import Executable, Result

if TYPE_CHECKING:
    from datasession.queries.query import Query
    from datasession.queries.strategy import QueryStrategy
    from datasession.sessions.tracking import ChangeTracking

T = TypeVar("T")


@runtime_checkable
class QueryExecutor(Protocol):
    """
    Protocol for objects that execute query statements.

    This is the data source a ``Query`` runs its terminal operations
    against.
    """

    async def execute(self, statement: Executable) -> Result[Any]:
        """
        Execute a statement and return its buffered result.

        Args:
            statement: The statement to execute.

        Returns:
            The statement result.
        """
        ...

    def detach(self, instances: Iterable[Any]) -> None:
        """
        Release loaded instances from change tracking when it is disabled.

        Args:
            instances: Values materialized by a terminal operation.
        """
        ...


@runtime_checkable
class QuerySession(Protocol):
    """
    Protocol for read-only sessions.
    """

    @property
    def tracking(self) -> "ChangeTracking": ...

    def query(self, target: "QueryStrategy[Any, T] | type[T]") -> "Query[T]":
        """
        Create a deferred query from a strategy or an entity class.

        Args:
            target: Strategy to apply, or the entity class to query.

        Returns:
            Query wrapping the shaped, still unexecuted statement.
        """
        ...

    async def close(self) -> None:
        """Release the underlying connection. Idempotent."""
        ...


@runtime_checkable
class DbSession(QuerySession, Protocol):
    """
    Protocol for read-write sessions.
    """

    def add(self, entity: Any) -> None: ...

    def add_range(self, entities: Iterable[Any]) -> None: ...

    async def remove(self, entity: Any) -> None: ...

    async def remove_range(self, entities: Iterable[Any]) -> None: ...

    async def update(self, entity: T) -> T: ...

    async def update_range(self, entities: Iterable[T]) -> list[T]: ...

    async def save_changes(self) -> int:
        """
        Persist staged changes.

        Returns:
            Number of entities inserted, updated or deleted.
        """
        ...
