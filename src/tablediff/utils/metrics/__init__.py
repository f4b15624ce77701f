"""
Metrics publishing to Prometheus

This module provides utilities for registering and publishing application
metrics to Prometheus.

Usage:
    from tablediff.utils.metrics import MetricsPublisher, ReconciliationMetrics

    # Expose /metrics for the duration of a run
    publisher = MetricsPublisher(port=9091)
    publisher.start()

    # Record table sweep metrics
    metrics = ReconciliationMetrics()
    metrics.record_table_sweep("accounts", success=True, duration=45.2, differing_rows=3)
"""

from typing import Callable, TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a metric or return the one already registered under the same name.

    Module reloads and repeated instantiation would otherwise raise
    "Duplicated timeseries" errors from prometheus_client.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Name of the metric for lookup if already registered
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)

    Example:
        CHUNKS_TOTAL = get_or_create_metric(
            lambda: Counter("tablediff_chunks_total", "Chunks processed", ["status"]),
            "tablediff_chunks_total"
        )
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise


from .publisher import MetricsPublisher  # noqa: E402
from .reconciliation import ReconciliationMetrics  # noqa: E402

__all__ = [
    "MetricsPublisher",
    "ReconciliationMetrics",
    "get_or_create_metric",
]
