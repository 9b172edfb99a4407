"""
Prometheus metrics definitions and utilities.

Metrics are re-exported here so callers can import them directly:

    from datasession.utils.metrics import db_query_errors_total

Library code records metrics through the MetricsCollector facade:

    from datasession.utils.metrics import MetricsCollector
    MetricsCollector.record_query_error("count", ex)
"""

from datasession.utils.metrics.collector import MetricsCollector
from datasession.utils.metrics.database import (
    db_query_duration_seconds,
    db_query_errors_total,
    db_slow_queries_total,
)

__all__ = [
    "MetricsCollector",
    "db_query_duration_seconds",
    "db_query_errors_total",
    "db_slow_queries_total",
]
