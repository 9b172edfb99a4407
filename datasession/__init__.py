"""
Async data access layer: unit-of-work sessions and deferred queries.

Example:
    ```python
    from datasession import QueryStrategy, SessionFactory
    from datasession.storage.db import create_engine

    factory = SessionFactory.from_engine(create_engine())

    async with factory.create_for_query() as session:
        posts = session.query(QueryStrategy.nested(Blog.posts))
        page = await posts.to_paged_list(page=1, page_size=20)
    ```
"""

from datasession.exceptions import (
    CardinalityViolationError,
    DataAccessError,
    FailureKind,
    LifecycleError,
    SessionDisposedError,
    classify_failure,
)
from datasession.protocols import DbSession, QueryExecutor, QuerySession
from datasession.queries import Query, QueryStrategy, flatten
from datasession.schemas import PagedResult, PageMetadata, calculate_page_metadata
from datasession.sessions import (
    ChangeTracking,
    EntityOptions,
    EntityOptionsSelector,
    Session,
    SessionFactory,
    SessionState,
)

__all__ = [
    "CardinalityViolationError",
    "ChangeTracking",
    "DataAccessError",
    "DbSession",
    "EntityOptions",
    "EntityOptionsSelector",
    "FailureKind",
    "LifecycleError",
    "PageMetadata",
    "PagedResult",
    "Query",
    "QueryExecutor",
    "QuerySession",
    "QueryStrategy",
    "Session",
    "SessionDisposedError",
    "SessionFactory",
    "SessionState",
    "calculate_page_metadata",
    "classify_failure",
    "flatten",
]
