"""
Facade for centralized metrics emission.

Provides high-level methods for recording metrics without exposing
Prometheus implementation details to the rest of the codebase.
"""


class MetricsCollector:
    """
    Centralized facade for the data access Prometheus metrics.

    All methods are static for easy use without instantiation.
    """

    @staticmethod
    def record_query_duration(operation: str, duration: float) -> None:
        """
        Record execution time of one SQL statement.

        Args:
            operation: One of 'select', 'insert', 'update', 'delete', 'other'
            duration: Execution time in seconds
        """
        from datasession.utils.metrics import db_query_duration_seconds

        db_query_duration_seconds.labels(operation=operation).observe(duration)

    @staticmethod
    def record_slow_query(operation: str) -> None:
        """Record a statement that exceeded the slow query threshold."""
        from datasession.utils.metrics import db_slow_queries_total

        db_slow_queries_total.labels(operation=operation).inc()

    @staticmethod
    def record_query_error(operation: str, error: BaseException) -> None:
        """
        Record a query operation that failed inside the database layer.

        Args:
            operation: Terminal operation name, e.g. 'count' or 'to_list'
            error: The exception raised by the database layer
        """
        from datasession.utils.metrics import db_query_errors_total

        db_query_errors_total.labels(
            operation=operation, error_type=type(error).__name__
        ).inc()
