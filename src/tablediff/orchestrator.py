"""
End-to-end table reconciliation.

For each table: build the descriptor from the source, probe the key range,
plan chunks, compare chunk digests on a worker pool, and fall back to
row-level reconciliation for chunks whose digests disagree.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from opentelemetry import trace

from .compare.checksum import compare_digests, compute_chunk_digest
from .compare.executor import QueryExecutor
from .compare.planner import ChunkWindow, KeyRange, chunk_count, get_key_range, plan_chunks
from .compare.schema import TableDescriptor, build_table_descriptor
from .config import DatabaseConfig, DiffConfig, validate_filters
from .errors import CancellationError, ConfigError, DatabaseConnectionError, TableDiffError
from .parallel.metrics import CHUNK_DIGEST_MISMATCHES
from .parallel.reconciler import ChunkOutcome, ParallelChunkReconciler
from .row_level.reconciler import RowDigestReconciler, RowDiscrepancy
from .utils.db_pool import create_pool
from .utils.logging import ContextLogger
from .utils.metrics import ReconciliationMetrics
from .utils.tracing import add_span_attributes, add_span_event, trace_operation

logger = ContextLogger(__name__)

STATUS_MATCH = "MATCH"
STATUS_DIFF = "DIFF"
STATUS_ERROR = "ERROR"


@dataclass
class TableDiffResult:
    """Outcome of one table's sweep."""

    table: str
    status: str
    columns: tuple[str, ...] = ()
    key_range: Optional[KeyRange] = None
    chunk_count: int = 0
    mismatched_chunks: list[ChunkWindow] = field(default_factory=list)
    unresolved_chunks: list[ChunkWindow] = field(default_factory=list)
    discrepancies: list[RowDiscrepancy] = field(default_factory=list)
    error: Optional[str] = None
    error_type: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def differing_keys(self) -> list[int]:
        """Differing primary keys in ascending order."""
        return sorted({d.key for d in self.discrepancies})

    @property
    def differing_row_count(self) -> int:
        return len(self.differing_keys)

    @property
    def has_differences(self) -> bool:
        return bool(self.discrepancies or self.mismatched_chunks)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "table": self.table,
            "status": self.status,
            "columns": list(self.columns),
            "key_range": (
                {"low": self.key_range.low, "high": self.key_range.high}
                if self.key_range
                else None
            ),
            "chunk_count": self.chunk_count,
            "mismatched_chunks": [[w.low, w.high] for w in self.mismatched_chunks],
            "unresolved_chunks": [[w.low, w.high] for w in self.unresolved_chunks],
            "differing_row_count": self.differing_row_count,
            "differing_keys": self.differing_keys,
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "error": self.error,
            "error_type": self.error_type,
            "duration_seconds": round(self.duration_seconds, 3),
        }


class ReconciliationOrchestrator:
    """
    Drives the chunked checksum diff between a source and a target.

    Args:
        source: Query executor for the side being treated as the reference
        target: Query executor for the side being validated
        config: Run options
        metrics: Optional table sweep metrics
    """

    def __init__(
        self,
        source: QueryExecutor,
        target: QueryExecutor,
        config: Optional[DiffConfig] = None,
        metrics: Optional[ReconciliationMetrics] = None,
    ):
        self.source = source
        self.target = target
        self.config = config or DiffConfig()
        self.metrics = metrics
        self.row_reconciler = RowDigestReconciler(source, target, self.config.direction)
        self.chunk_reconciler = ParallelChunkReconciler(max_workers=self.config.max_workers)

    @classmethod
    def from_config(
        cls,
        source: DatabaseConfig,
        target: DatabaseConfig,
        config: DiffConfig,
        metrics: Optional[ReconciliationMetrics] = None,
    ) -> "ReconciliationOrchestrator":
        """Create pools and executors for both sides; every worker gets one connection per side."""
        executors = []
        for side, db_config in (("source", source), ("target", target)):
            pool = create_pool(db_config, pool_name=side, max_size=config.max_workers)
            executors.append(
                QueryExecutor(
                    side,
                    pool,
                    query_timeout=config.query_timeout,
                    max_retries=config.max_retries,
                    retry_base_delay=config.retry_base_delay,
                )
            )
        return cls(executors[0], executors[1], config, metrics)

    def validate_connections(self) -> None:
        """
        Ping both sides.

        Raises:
            DatabaseConnectionError: If either side is unreachable
        """
        self.source.ping()
        self.target.ping()

    def _key_range(self, descriptor: TableDescriptor) -> Optional[KeyRange]:
        key_range = get_key_range(self.source, descriptor.name, descriptor.key_column)
        if not self.config.span_target_range:
            return key_range

        target_range = get_key_range(self.target, descriptor.name, descriptor.key_column)
        if key_range is None:
            return target_range
        return key_range.span(target_range)

    def _compare_chunk(
        self,
        descriptor: TableDescriptor,
        window: ChunkWindow,
        cancellation_token: threading.Event,
    ) -> ChunkOutcome:
        log = logger.bind(table=descriptor.name, chunk=str(window))

        source_digest = compute_chunk_digest(self.source, descriptor, window)
        if cancellation_token.is_set():
            raise CancellationError(f"Chunk {window} cancelled")
        target_digest = compute_chunk_digest(self.target, descriptor, window)

        if compare_digests(source_digest, target_digest):
            log.debug("Chunk digests match")
            return ChunkOutcome(window, source_digest, target_digest, matched=True)

        CHUNK_DIGEST_MISMATCHES.labels(table=descriptor.name).inc()
        log.info(
            "Chunk digest mismatch",
            source_digest=str(source_digest),
            target_digest=str(target_digest),
        )

        if cancellation_token.is_set():
            raise CancellationError(f"Chunk {window} cancelled")
        discrepancies = self.row_reconciler.reconcile_window(descriptor, window)

        if not discrepancies:
            log.warning(
                "Chunk digests differ but no differing key was found on the target side",
                source_rows=source_digest.row_count,
                target_rows=target_digest.row_count,
            )
        return ChunkOutcome(
            window, source_digest, target_digest, matched=False, discrepancies=discrepancies
        )

    def _sweep(self, table: str, include: tuple[str, ...], exclude: tuple[str, ...]) -> TableDiffResult:
        descriptor = build_table_descriptor(
            self.source.list_columns,
            table,
            include=include,
            exclude=exclude,
            key_column=self.config.key_column,
        )

        key_range = self._key_range(descriptor)
        if key_range is None:
            logger.info("Table is empty, nothing to compare", table=table)
            return TableDiffResult(table=table, status=STATUS_MATCH, columns=descriptor.columns)

        total_chunks = chunk_count(key_range, self.config.chunk_size)
        add_span_attributes(chunk_count=total_chunks, key_range=str(key_range))
        logger.info(
            f"Comparing {total_chunks} chunks over keys {key_range}",
            table=table,
            columns=len(descriptor.columns),
        )

        sweep = self.chunk_reconciler.run(
            plan_chunks(key_range, self.config.chunk_size),
            lambda window, token: self._compare_chunk(descriptor, window, token),
            label=table,
            total=total_chunks,
        )
        if sweep.error is not None:
            raise sweep.error

        mismatched = sweep.mismatched_windows
        for window in mismatched:
            add_span_event("chunk_digest_mismatch", chunk=str(window))
        return TableDiffResult(
            table=table,
            status=STATUS_DIFF if mismatched else STATUS_MATCH,
            columns=descriptor.columns,
            key_range=key_range,
            chunk_count=total_chunks,
            mismatched_chunks=mismatched,
            unresolved_chunks=sweep.unresolved_windows,
            discrepancies=sweep.discrepancies,
        )

    def reconcile_table(
        self,
        table: str,
        include: Optional[Iterable[str]] = None,
        exclude: Optional[Iterable[str]] = None,
    ) -> TableDiffResult:
        """
        Run the full sweep for one table.

        Args:
            table: Table name, optionally schema qualified
            include: Column include list (defaults to the run's)
            exclude: Column exclude list (defaults to the run's)

        Returns:
            TableDiffResult with status MATCH or DIFF

        Raises:
            ConfigError: If include and exclude are both given (no query is issued)
            SchemaError: If the table or its columns cannot be resolved
            QueryError: If a chunk query fails after retries
        """
        include = tuple(self.config.include if include is None else include)
        exclude = tuple(self.config.exclude if exclude is None else exclude)
        validate_filters(include, exclude)

        start_time = time.monotonic()
        success = False
        result: Optional[TableDiffResult] = None

        with trace_operation(
            "reconcile_table",
            kind=trace.SpanKind.INTERNAL,
            table=table,
            chunk_size=self.config.chunk_size,
            direction=self.config.direction,
        ) as span:
            try:
                result = self._sweep(table, include, exclude)
                success = True
            finally:
                duration = time.monotonic() - start_time
                if self.metrics is not None:
                    self.metrics.record_table_sweep(
                        table,
                        success=success,
                        duration=duration,
                        differing_rows=result.differing_row_count if result else None,
                        mismatched_chunks=len(result.mismatched_chunks) if result else 0,
                    )

            result.duration_seconds = duration
            span.set_attribute("status", result.status)
            span.set_attribute("differing_rows", result.differing_row_count)

        logger.info(
            f"{result.differing_row_count} rows for table {table} differ",
            table=table,
            status=result.status,
            mismatched_chunks=len(result.mismatched_chunks),
            unresolved_chunks=len(result.unresolved_chunks),
            duration_seconds=round(duration, 3),
        )
        return result

    def reconcile_tables(self, tables: Iterable[str]) -> list[TableDiffResult]:
        """
        Reconcile several tables one after another.

        A table whose sweep fails is recorded with status ERROR and the
        remaining tables still run. Configuration and connection errors
        abort the whole run.
        """
        results = []
        for table in tables:
            try:
                results.append(self.reconcile_table(table))
            except (ConfigError, DatabaseConnectionError):
                raise
            except TableDiffError as e:
                logger.error(f"Reconciliation failed: {e}", table=table, error_type=type(e).__name__)
                results.append(
                    TableDiffResult(
                        table=table,
                        status=STATUS_ERROR,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                )
        return results

    def close(self) -> None:
        """Close both sides' connection pools."""
        self.source.close()
        self.target.close()

    def __enter__(self) -> "ReconciliationOrchestrator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
