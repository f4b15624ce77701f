"""
Metrics for table reconciliation sweeps.

Tracks sweep runs, differing rows and mismatching chunks per table.
"""

import logging
import time
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from . import get_or_create_metric

logger = logging.getLogger(__name__)


class ReconciliationMetrics:
    """
    Metrics for table reconciliation sweeps

    Safe to instantiate more than once against the same registry.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize reconciliation metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.table_sweeps_total = get_or_create_metric(
            lambda: Counter(
                "tablediff_table_sweeps_total",
                "Total number of table sweeps",
                ["table_name", "status"],
                registry=self.registry,
            ),
            "tablediff_table_sweeps_total",
            self.registry,
        )

        self.table_sweep_duration_seconds = get_or_create_metric(
            lambda: Histogram(
                "tablediff_table_sweep_duration_seconds",
                "Duration of table sweeps in seconds",
                ["table_name"],
                buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
                registry=self.registry,
            ),
            "tablediff_table_sweep_duration_seconds",
            self.registry,
        )

        self.last_sweep_timestamp = get_or_create_metric(
            lambda: Gauge(
                "tablediff_last_sweep_timestamp",
                "Timestamp of the last sweep of a table",
                ["table_name"],
                registry=self.registry,
            ),
            "tablediff_last_sweep_timestamp",
            self.registry,
        )

        self.differing_rows = get_or_create_metric(
            lambda: Gauge(
                "tablediff_differing_rows",
                "Number of differing primary keys found by the last sweep",
                ["table_name"],
                registry=self.registry,
            ),
            "tablediff_differing_rows",
            self.registry,
        )

        self.mismatched_chunks_total = get_or_create_metric(
            lambda: Counter(
                "tablediff_mismatched_chunks_total",
                "Total number of chunks whose digests disagreed",
                ["table_name"],
                registry=self.registry,
            ),
            "tablediff_mismatched_chunks_total",
            self.registry,
        )

    def record_table_sweep(
        self,
        table_name: str,
        success: bool,
        duration: float,
        differing_rows: Optional[int] = None,
        mismatched_chunks: int = 0,
    ) -> None:
        """
        Record a completed (or failed) table sweep

        Args:
            table_name: Name of the table swept
            success: Whether the sweep completed
            duration: Duration in seconds
            differing_rows: Number of differing keys (None when the sweep failed)
            mismatched_chunks: Number of chunks whose digests disagreed
        """
        status = "success" if success else "failed"

        self.table_sweeps_total.labels(table_name=table_name, status=status).inc()
        self.table_sweep_duration_seconds.labels(table_name=table_name).observe(duration)
        self.last_sweep_timestamp.labels(table_name=table_name).set(time.time())

        if differing_rows is not None:
            self.differing_rows.labels(table_name=table_name).set(differing_rows)
        if mismatched_chunks:
            self.mismatched_chunks_total.labels(table_name=table_name).inc(mismatched_chunks)

        logger.debug(
            f"Recorded table sweep: table={table_name}, status={status}, "
            f"duration={duration:.2f}s, differing_rows={differing_rows}"
        )
