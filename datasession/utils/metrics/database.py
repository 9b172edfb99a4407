"""
Prometheus metrics for database operation monitoring.

This module defines metrics for tracking statement durations, slow
statements and failed query operations.
"""

from datasession.utils.metrics._helpers import (
    _get_or_create_counter,
    _get_or_create_histogram,
)

db_query_duration_seconds = _get_or_create_histogram(
    "db_query_duration_seconds",
    "Database query duration in seconds",
    ["operation"],  # select, insert, update, delete
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

db_slow_queries_total = _get_or_create_counter(
    "db_slow_queries_total",
    "Total number of slow database queries (exceeding threshold)",
    ["operation"],
)

db_query_errors_total = _get_or_create_counter(
    "db_query_errors_total",
    "Total failed query operations caused by the database",
    ["operation", "error_type"],  # any, count, to_list, ...
)

__all__ = [
    "db_query_duration_seconds",
    "db_slow_queries_total",
    "db_query_errors_total",
]
