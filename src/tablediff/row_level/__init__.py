"""
Row-level reconciliation for mismatching chunks.

Identifies, within one key window:
- Modified rows (same key, different row hash)
- Extra rows (in target but not source)
- Missing rows (in source but not target; bidirectional mode)

Only (key, hash) pairs cross the wire, so the payload is bounded by the chunk size.
"""

from .reconciler import (
    EXTRA,
    MISSING,
    MODIFIED,
    RowDigest,
    RowDigestReconciler,
    RowDiscrepancy,
    diff_row_digests,
)

__all__ = [
    'RowDigestReconciler',
    'RowDigest',
    'RowDiscrepancy',
    'diff_row_digests',
    'MODIFIED',
    'EXTRA',
    'MISSING',
]
