"""
Parallel chunk reconciliation engine.

This module provides the ParallelChunkReconciler class for comparing the
chunks of one table concurrently using ThreadPoolExecutor.
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sized
from concurrent.futures import FIRST_COMPLETED, CancelledError, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Optional

from opentelemetry import trace

from ..errors import CancellationError
from ..utils.tracing import trace_operation
from .metrics import ACTIVE_WORKERS, CHUNK_TIME, CHUNKS_PROCESSED, QUEUE_SIZE, SWEEP_TIME

if TYPE_CHECKING:
    from ..compare.checksum import Digest
    from ..compare.planner import ChunkWindow
    from ..row_level.reconciler import RowDiscrepancy

logger = logging.getLogger(__name__)


@dataclass
class ChunkOutcome:
    """Result of comparing one chunk."""

    window: "ChunkWindow"
    source_digest: "Digest"
    target_digest: "Digest"
    matched: bool
    discrepancies: list["RowDiscrepancy"] = field(default_factory=list)

    @property
    def unresolved(self) -> bool:
        """Digests disagree but no differing key could be named."""
        return not self.matched and not self.discrepancies


@dataclass
class ChunkSweepResult:
    """
    Shared sink for chunk outcomes of one table.

    Workers add outcomes concurrently; accessors return key-ordered views.
    """

    chunks_total: int = 0
    cancelled: int = 0
    error: Optional[BaseException] = None
    duration_seconds: float = 0.0
    _outcomes: list[ChunkOutcome] = field(default_factory=list, repr=False)
    _lock: Any = field(default_factory=threading.Lock, repr=False, compare=False)

    def add(self, outcome: ChunkOutcome) -> None:
        with self._lock:
            self._outcomes.append(outcome)

    @property
    def outcomes(self) -> list[ChunkOutcome]:
        with self._lock:
            return sorted(self._outcomes, key=lambda o: o.window.low)

    @property
    def chunks_completed(self) -> int:
        with self._lock:
            return len(self._outcomes)

    @property
    def mismatched_windows(self) -> list["ChunkWindow"]:
        return [o.window for o in self.outcomes if not o.matched]

    @property
    def unresolved_windows(self) -> list["ChunkWindow"]:
        return [o.window for o in self.outcomes if o.unresolved]

    @property
    def discrepancies(self) -> list["RowDiscrepancy"]:
        # Windows are disjoint, so per-window key order concatenates into global order
        return [d for o in self.outcomes for d in o.discrepancies]

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.chunks_completed == self.chunks_total


ProcessChunk = Callable[["ChunkWindow", threading.Event], ChunkOutcome]


class ParallelChunkReconciler:
    """
    Compares the chunks of a table on a bounded worker pool.

    The first failing chunk cancels the work that has not started yet;
    chunks already in flight finish and keep their outcomes, but the sweep
    is reported as failed.
    """

    def __init__(self, max_workers: int = 4):
        """
        Initialize parallel chunk reconciler.

        Args:
            max_workers: Maximum concurrent workers (default: 4)
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self._metrics_lock = threading.Lock()

    def run(
        self,
        windows: Iterable["ChunkWindow"],
        process_chunk: ProcessChunk,
        label: str = "",
        total: Optional[int] = None,
    ) -> ChunkSweepResult:
        """
        Process every window, at most ``max_workers`` at a time.

        Windows are pulled from the iterable only as workers free up, so a
        lazily planned key range never needs to be materialised. After the
        first failure no further windows are pulled.

        Args:
            windows: Chunk windows to compare
            process_chunk: Called as process_chunk(window, cancellation_token)
            label: Name used in logs and spans (usually the table)
            total: Number of windows, when ``windows`` has no length

        Returns:
            ChunkSweepResult; ``error`` holds the first failure, if any
        """
        if total is None and isinstance(windows, Sized):
            total = len(windows)
        result = ChunkSweepResult(chunks_total=total or 0)
        if total == 0:
            return result

        pending_windows = iter(windows)
        max_in_flight = self.max_workers * 2
        cancellation_token = threading.Event()
        submitted = 0
        start_time = time.monotonic()

        with trace_operation(
            "parallel_chunk_sweep",
            kind=trace.SpanKind.INTERNAL,
            table=label,
            chunk_count=total,
            max_workers=self.max_workers,
        ), SWEEP_TIME.labels(worker_count=self.max_workers).time():
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="tablediff-chunk"
            ) as executor:
                in_flight: dict[Future, "ChunkWindow"] = {}

                def refill() -> None:
                    nonlocal submitted
                    while len(in_flight) < max_in_flight and not cancellation_token.is_set():
                        window = next(pending_windows, None)
                        if window is None:
                            return
                        future = executor.submit(
                            self._process_chunk_wrapper,
                            window,
                            process_chunk,
                            cancellation_token,
                            result,
                        )
                        in_flight[future] = window
                        submitted += 1
                        QUEUE_SIZE.inc()

                refill()
                while in_flight:
                    done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                    for future in done:
                        window = in_flight.pop(future)
                        QUEUE_SIZE.dec()
                        self._collect(future, window, result, label, cancellation_token, in_flight)
                    refill()

        if total is None:
            result.chunks_total = submitted
        elif submitted < total:
            # Windows never pulled after a failure
            result.cancelled += total - submitted
        result.duration_seconds = time.monotonic() - start_time

        logger.info(
            f"{label} chunk sweep: {result.chunks_completed}/{result.chunks_total} chunks, "
            f"{len(result.mismatched_windows)} mismatched, {result.cancelled} cancelled "
            f"in {result.duration_seconds:.2f}s"
        )
        return result

    @staticmethod
    def _collect(
        future: Future,
        window: "ChunkWindow",
        result: ChunkSweepResult,
        label: str,
        cancellation_token: threading.Event,
        in_flight: dict[Future, "ChunkWindow"],
    ) -> None:
        try:
            future.result()
        except (CancellationError, CancelledError):
            result.cancelled += 1
            CHUNKS_PROCESSED.labels(status="cancelled").inc()
        except Exception as e:
            CHUNKS_PROCESSED.labels(status="failed").inc()
            if result.error is not None:
                logger.debug(f"{label} chunk {window} also failed: {e}")
                return

            result.error = e
            logger.error(f"{label} chunk {window} failed, cancelling remaining chunks: {e}")
            cancellation_token.set()
            for pending in in_flight:
                pending.cancel()

    def _process_chunk_wrapper(
        self,
        window: "ChunkWindow",
        process_chunk: ProcessChunk,
        cancellation_token: threading.Event,
        sink: ChunkSweepResult,
    ) -> None:
        if cancellation_token.is_set():
            raise CancellationError(f"Chunk {window} cancelled before starting")

        with self._metrics_lock:
            ACTIVE_WORKERS.inc()
        try:
            with CHUNK_TIME.time():
                outcome = process_chunk(window, cancellation_token)
        finally:
            with self._metrics_lock:
                ACTIVE_WORKERS.dec()

        sink.add(outcome)
        CHUNKS_PROCESSED.labels(status="match" if outcome.matched else "mismatch").inc()
