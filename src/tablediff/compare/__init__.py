"""
Chunk planning and digest comparison for table reconciliation.

This subpackage provides the building blocks of a hierarchical checksum diff:
- Table descriptors (comparable columns after include/exclude filtering)
- Key range probing and chunk planning
- Per-chunk aggregate digests (row count + order-insensitive hash sum)
- Per-engine SQL and the query executor that runs it
"""

from .checksum import Digest, compare_digests, compute_chunk_digest
from .executor import QueryExecutor
from .hashing import combine_row_hashes, compute_row_hash
from .planner import ChunkWindow, KeyRange, chunk_count, get_key_range, plan_chunks
from .schema import TableDescriptor, build_table_descriptor

__all__ = [
    'TableDescriptor',
    'build_table_descriptor',
    'KeyRange',
    'ChunkWindow',
    'plan_chunks',
    'chunk_count',
    'get_key_range',
    'Digest',
    'compute_chunk_digest',
    'compare_digests',
    'QueryExecutor',
    'compute_row_hash',
    'combine_row_hashes',
]
