"""
Prometheus metrics for chunk sweeps.

This module defines metrics to track chunk throughput, digest mismatches
and query retries while tables are being reconciled.
"""

from prometheus_client import Counter, Gauge, Histogram

from ..utils.metrics import get_or_create_metric

CHUNKS_PROCESSED = get_or_create_metric(
    lambda: Counter(
        "tablediff_chunks_processed_total",
        "Total chunks processed",
        ["status"],  # match, mismatch, failed, cancelled
    ),
    "tablediff_chunks_processed_total",
)

CHUNK_DIGEST_MISMATCHES = get_or_create_metric(
    lambda: Counter(
        "tablediff_chunk_digest_mismatches_total",
        "Chunks whose source and target digests disagreed",
        ["table"],
    ),
    "tablediff_chunk_digest_mismatches_total",
)

DIFFERING_ROWS_FOUND = get_or_create_metric(
    lambda: Counter(
        "tablediff_differing_rows_found_total",
        "Differing keys named by row-level reconciliation",
        ["table", "kind"],  # modified, extra, missing
    ),
    "tablediff_differing_rows_found_total",
)

QUERY_RETRIES = get_or_create_metric(
    lambda: Counter(
        "tablediff_query_retries_total",
        "Transient query failures that were retried",
        ["side", "operation"],
    ),
    "tablediff_query_retries_total",
)

CHUNK_TIME = get_or_create_metric(
    lambda: Histogram(
        "tablediff_chunk_seconds",
        "Time to compare one chunk (digests plus any row scan)",
        buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 10, 30, 60, 300],
    ),
    "tablediff_chunk_seconds",
)

SWEEP_TIME = get_or_create_metric(
    lambda: Histogram(
        "tablediff_chunk_sweep_seconds",
        "Wall time of the parallel chunk sweep for one table",
        ["worker_count"],
        buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600],
    ),
    "tablediff_chunk_sweep_seconds",
)

ACTIVE_WORKERS = get_or_create_metric(
    lambda: Gauge(
        "tablediff_active_workers",
        "Number of worker threads currently comparing a chunk",
    ),
    "tablediff_active_workers",
)

QUEUE_SIZE = get_or_create_metric(
    lambda: Gauge(
        "tablediff_chunk_queue_size",
        "Chunks submitted but not yet finished",
    ),
    "tablediff_chunk_queue_size",
)
