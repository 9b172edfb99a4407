"""
Deferred query over a single result type.

A ``Query`` wraps an unexecuted SQLAlchemy statement together with the
session that will run it. Nothing touches the database until one of the
terminal operations is awaited; every terminal call runs its own fetch, so
one instance can be executed any number of times.

Example:
    ```python
    async with factory.create_for_query() as session:
        query = session.query(Blog).where(Blog.name.startswith("F"))

        if await query.any():
            total = await query.count()
            page = await query.to_paged_list(page=1, page_size=20)
    ```
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Generic, TypeVar

from sqlalchemy import Select
from sqlalchemy.exc import CompileError, MultipleResultsFound
from sqlalchemy.orm import aliased
from sqlmodel import func, select

from datasession.constants import MAX_PAGE_SIZE
from datasession.exceptions import (
    CardinalityViolationError,
    FailureKind,
    classify_failure,
)
from datasession.logging import logger as default_logger
from datasession.protocols import QueryExecutor
from datasession.schemas.pagination import PagedResult
from datasession.settings import app_settings
from datasession.utils.metrics import MetricsCollector

T = TypeVar("T")
R = TypeVar("R")


class Query(Generic[T]):
    """
    Deferred, composable read operation.

    Terminal operations accept an optional ``timeout`` in seconds. When it
    elapses the operation raises ``TimeoutError`` and, like task
    cancellation, this is not logged. Caller errors, cardinality violations
    and lifecycle errors are not logged either. Any other failure comes from
    the database layer: it is logged with the operation name, counted in
    ``db_query_errors_total`` and re-raised unchanged.

    Type Parameters:
        T: The type of the rows the statement yields.
    """

    __slots__ = ("_executor", "_statement", "_logger")

    def __init__(
        self,
        executor: QueryExecutor,
        statement: Select,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the query.

        Args:
            executor: Session the statement is executed through.
            statement: Statement producing the result rows.
            logger: Logger receiving database failures. Defaults to the
                package logger.
        """
        if executor is None:
            raise ValueError("executor must not be None")
        if statement is None:
            raise ValueError("statement must not be None")
        self._executor = executor
        self._statement = statement
        self._logger = logger or default_logger

    @property
    def statement(self) -> Select:
        return self._statement

    def where(self, *criteria: Any) -> "Query[T]":
        """Return a new query with additional WHERE criteria."""
        return Query(
            self._executor, self._statement.where(*criteria), self._logger
        )

    def order_by(self, *clauses: Any) -> "Query[T]":
        """Return a new query with additional ORDER BY clauses."""
        return Query(
            self._executor, self._statement.order_by(*clauses), self._logger
        )

    async def any(self, *, timeout: float | None = None) -> bool:
        """
        Check whether the statement yields at least one row.

        Executes ``SELECT EXISTS (...)``; no rows are transferred.
        """
        return await self._run("any", self._fetch_any, timeout)

    async def count(self, *, timeout: float | None = None) -> int:
        """Count the rows the statement yields."""
        return await self._run("count", self._fetch_count, timeout)

    async def long_count(self, *, timeout: float | None = None) -> int:
        """
        Count the rows the statement yields.

        Python integers are unbounded, so this always equals ``count()``.
        """
        return await self._run("long_count", self._fetch_count, timeout)

    async def first_or_default(
        self, *, timeout: float | None = None
    ) -> T | None:
        """
        Get the first row in statement order.

        Fetches at most one row from within any OFFSET/LIMIT the statement
        already has.

        Returns:
            The first row, or None when the statement yields nothing.
        """
        return await self._run("first_or_default", self._fetch_first, timeout)

    async def single_or_default(
        self, *, timeout: float | None = None
    ) -> T | None:
        """
        Get the only row the statement yields.

        Fetches at most two rows from within any OFFSET/LIMIT the statement
        already has.

        Returns:
            The row, or None when the statement yields nothing.

        Raises:
            CardinalityViolationError: If more than one row matches.
        """
        return await self._run(
            "single_or_default", self._fetch_single, timeout
        )

    async def to_list(self, *, timeout: float | None = None) -> list[T]:
        """Materialize every row in statement order."""
        return await self._run("to_list", self._fetch_all, timeout)

    async def to_paged_list(
        self,
        page: int,
        page_size: int | None = None,
        *,
        timeout: float | None = None,
    ) -> PagedResult[T]:
        """
        Fetch one page of rows using OFFSET/LIMIT.

        The total count is only queried when the page is full. A short page
        is the last one, so its total is ``offset + len(items)``. An empty
        page (including a page past the end) reports a total of 0.

        Args:
            page: Page number (1-indexed).
            page_size: Number of items per page. Capped at MAX_PAGE_SIZE.
                Defaults to app_settings.DEFAULT_PAGE_SIZE.
            timeout: Optional deadline in seconds for the whole operation.

        Returns:
            PagedResult holding the page's rows and metadata.

        Raises:
            ValueError: If page or page_size is lower than 1.
        """
        if page_size is None:
            page_size = app_settings.DEFAULT_PAGE_SIZE
        if page < 1:
            raise ValueError("page must be >= 1")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        page_size = min(page_size, MAX_PAGE_SIZE)

        async def fetch() -> PagedResult[T]:
            offset = (page - 1) * page_size
            result = await self._executor.execute(
                self._window(offset, page_size)
            )
            items = list(result.all())
            self._executor.detach(items)

            if not items:
                return PagedResult.empty(page, page_size)
            if len(items) < page_size:
                # Short page ends the result set; deriving the total from
                # this same read keeps it consistent with the items.
                total = offset + len(items)
            else:
                total = await self._fetch_count()

            return PagedResult.create(items, page, page_size, total)

        return await self._run("to_paged_list", fetch, timeout)

    async def _fetch_any(self) -> bool:
        result = await self._executor.execute(select(self._statement.exists()))
        return bool(result.one())

    async def _fetch_count(self) -> int:
        result = await self._executor.execute(
            select(func.count()).select_from(self._statement.subquery())
        )
        return int(result.one())

    async def _fetch_first(self) -> T | None:
        result = await self._executor.execute(self._window(0, 1))
        item = result.first()
        self._executor.detach([item])
        return item

    async def _fetch_single(self) -> T | None:
        result = await self._executor.execute(self._window(0, 2))
        try:
            item = result.one_or_none()
        except MultipleResultsFound as ex:
            raise CardinalityViolationError(
                "Query returned more than one row where at most one was expected"
            ) from ex
        self._executor.detach([item])
        return item

    async def _fetch_all(self) -> list[T]:
        result = await self._executor.execute(self._statement)
        items = list(result.all())
        self._executor.detach(items)
        return items

    def _window(self, offset: int, limit: int) -> Select:
        """
        Narrow the statement to ``limit`` rows starting at ``offset``.

        The window is taken inside the statement's own OFFSET/LIMIT, so a
        statement already limited to N rows never yields more than N.

        Args:
            offset: Rows to skip, relative to the statement's own offset.
            limit: Maximum number of rows to return.

        Returns:
            Statement selecting the narrowed window.
        """
        statement = self._statement
        try:
            own_offset = statement._offset or 0
            own_limit = statement._limit
        except CompileError:
            # OFFSET/LIMIT given as SQL expressions
            statement = self._subquery_source()
            own_offset, own_limit = 0, None

        if own_limit is not None:
            limit = max(0, min(limit, own_limit - offset))
        return statement.offset(own_offset + offset).limit(limit)

    def _subquery_source(self) -> Select:
        """Select the statement's rows from it as a subquery."""
        subquery = self._statement.subquery()
        descriptions = self._statement.column_descriptions
        if len(descriptions) == 1:
            entity = descriptions[0].get("entity")
            if entity is not None and descriptions[0].get("expr") is entity:
                return select(aliased(entity, subquery))
        return select(*subquery.c)

    async def _run(
        self,
        operation: str,
        fetch: Callable[[], Awaitable[R]],
        timeout: float | None,
    ) -> R:
        """
        Run a fetch, classifying and logging its failure.

        Arguments are validated before this is called, so any failure
        raised here comes from the database layer or the caller (timeout,
        cancellation), never from invalid arguments.

        Args:
            operation: Terminal operation name used in logs and metrics.
            fetch: Coroutine function performing the database calls.
            timeout: Optional deadline in seconds.

        Returns:
            Whatever ``fetch`` returns.
        """
        deadline: asyncio.Timeout | None = None
        try:
            if timeout is None:
                return await fetch()
            async with asyncio.timeout(timeout) as deadline:
                return await fetch()
        except Exception as ex:
            kind = classify_failure(
                ex,
                deadline_expired=deadline is not None and deadline.expired(),
                during_execution=True,
            )
            if kind is FailureKind.STORE_FAILURE:
                self._logger.error(
                    f"Error executing {operation} query: {ex}",
                    exc_info=ex,
                    extra={"query_operation": operation},
                )
                MetricsCollector.record_query_error(operation, ex)
            raise

    def __repr__(self) -> str:
        return f"Query({self._statement})"
