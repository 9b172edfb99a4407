"""
Database query performance monitoring.

Provides SQLAlchemy event listeners for tracking statement execution times,
identifying slow queries, and collecting performance metrics.
"""

import time

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

from datasession.constants import SLOW_QUERY_STATEMENT_PREVIEW_CHARS
from datasession.logging import logger
from datasession.settings import app_settings
from datasession.utils.metrics import MetricsCollector


def _get_query_operation(statement: str) -> str:
    """
    Extract the operation type from a SQL statement.

    Args:
        statement: SQL statement string.

    Returns:
        Operation type (select, insert, update, delete, other).
    """
    statement_lower = statement.strip().lower()

    if statement_lower.startswith("select"):
        return "select"
    elif statement_lower.startswith("insert"):
        return "insert"
    elif statement_lower.startswith("update"):
        return "update"
    elif statement_lower.startswith("delete"):
        return "delete"
    else:
        return "other"


def before_cursor_execute(  # type: ignore[no-untyped-def]
    conn, cursor, statement, parameters, context, executemany
):
    """
    SQLAlchemy event listener: before statement execution.

    Records the start time for execution timing.
    """
    context._query_start_time = time.perf_counter()


def make_after_cursor_execute(threshold: float):  # type: ignore[no-untyped-def]
    """
    Build the after-execution listener for a given slow query threshold.

    Args:
        threshold: Duration in seconds above which a statement is logged
            as slow.

    Returns:
        Listener calculating the duration, recording metrics and logging
        slow statements.
    """

    def after_cursor_execute(  # type: ignore[no-untyped-def]
        conn, cursor, statement, parameters, context, executemany
    ):
        start_time = getattr(context, "_query_start_time", None)
        if start_time is None:
            return

        duration = time.perf_counter() - start_time
        operation = _get_query_operation(statement)

        MetricsCollector.record_query_duration(operation, duration)

        if duration > threshold:
            MetricsCollector.record_slow_query(operation)

            statement_preview = (
                statement[:SLOW_QUERY_STATEMENT_PREVIEW_CHARS] + "..."
                if len(statement) > SLOW_QUERY_STATEMENT_PREVIEW_CHARS
                else statement
            )

            logger.warning(
                f"Slow query detected: {duration:.3f}s [{operation.upper()}] "
                f"Statement: {statement_preview}"
            )

    return after_cursor_execute


def enable_query_monitoring(
    engine: AsyncEngine, threshold: float | None = None
) -> None:
    """
    Enable query performance monitoring on one engine.

    Registers SQLAlchemy cursor execution listeners on the engine's
    underlying sync engine. Calling it twice for the same engine is a
    no-op.

    Args:
        engine: The async engine to monitor.
        threshold: Slow query threshold in seconds.
            Defaults to app_settings.DB_SLOW_QUERY_THRESHOLD
    """
    if threshold is None:
        threshold = app_settings.DB_SLOW_QUERY_THRESHOLD

    sync_engine = engine.sync_engine
    if event.contains(sync_engine, "before_cursor_execute", before_cursor_execute):
        return

    event.listen(sync_engine, "before_cursor_execute", before_cursor_execute)
    event.listen(
        sync_engine,
        "after_cursor_execute",
        make_after_cursor_execute(threshold),
    )

    logger.info(
        f"Database query monitoring enabled (slow query threshold: "
        f"{threshold * 1000:.0f}ms)"
    )
