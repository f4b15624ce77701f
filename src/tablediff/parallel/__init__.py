"""
Parallel chunk reconciliation.

Chunks of a table are independent, so they are compared concurrently
using ThreadPoolExecutor.

Features:
- Configurable worker count (one connection per side per worker)
- Cancellation of unstarted chunks on the first failure
- Lock-protected result sink with key-ordered output
- Prometheus metrics for chunk throughput and retries
- Distributed tracing integration
"""

from .reconciler import ChunkOutcome, ChunkSweepResult, ParallelChunkReconciler

__all__ = [
    'ParallelChunkReconciler',
    'ChunkOutcome',
    'ChunkSweepResult',
]
