"""
Registration helpers for the database metrics.

prometheus_client registers every metric in the process-wide ``REGISTRY``
when it is constructed and raises ``ValueError`` ("Duplicated timeseries")
for a name that is already taken. ``datasession.utils.metrics.database``
builds its metrics at import time, so re-importing it (``importlib.reload``,
pytest importing the package under two module paths) would fail without
reusing the collector that is already registered.
"""

from collections.abc import Callable
from typing import TypeVar

from prometheus_client import REGISTRY, Counter, Histogram

M = TypeVar("M", Counter, Histogram)


def _registered(name: str, build: Callable[[], M]) -> M:
    """Build a metric, or return the collector already holding ``name``."""
    try:
        return build()
    except ValueError:
        # REGISTRY keys counters by both "x" and "x_total"
        existing = REGISTRY._names_to_collectors.get(name)
        if existing is None:
            raise
        return existing


def _get_or_create_counter(
    name: str, doc: str, labels: list[str] | None = None
) -> Counter:
    """Counter for ``name``, shared across re-imports."""
    return _registered(name, lambda: Counter(name, doc, labels or []))


def _get_or_create_histogram(
    name: str,
    doc: str,
    labels: list[str] | None = None,
    buckets: list[float] | tuple[float, ...] | None = None,
) -> Histogram:
    """
    Histogram for ``name``, shared across re-imports.

    Args:
        name: Metric name.
        doc: Help text exported with the metric.
        labels: Label names, e.g. ``["operation"]``.
        buckets: Upper bounds in seconds. Defaults to prometheus_client's
            ``Histogram.DEFAULT_BUCKETS``.
    """
    kwargs = {"buckets": buckets} if buckets else {}
    return _registered(
        name, lambda: Histogram(name, doc, labels or [], **kwargs)
    )
