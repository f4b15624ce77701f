"""
Chunk digests: row count plus order-insensitive combined row hash.

One aggregate query per side per chunk; the payload returned is two values
regardless of how many rows the window holds.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..errors import QueryError
from .hashing import reduce_sum
from .planner import ChunkWindow
from .schema import TableDescriptor

if TYPE_CHECKING:
    from .executor import QueryExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Digest:
    """Summary of the rows of one window on one side."""

    row_count: int
    combined_hash: int

    def __str__(self) -> str:
        return f"rows={self.row_count} hash={self.combined_hash:016x}"


def compute_chunk_digest(
    executor: "QueryExecutor", descriptor: TableDescriptor, window: ChunkWindow
) -> Digest:
    """
    Compute the digest of the rows whose key lies in ``window``.

    Raises:
        QueryError: If the aggregate query fails (after retries)
    """
    sql = executor.dialect.chunk_digest_query(
        descriptor.name, descriptor.key_column, descriptor.columns
    )
    try:
        row = executor.fetch_one(sql, (window.low, window.high), operation="chunk_digest")
    except QueryError as e:
        raise e.with_context(table=descriptor.name, window=window)

    if row is None:
        return Digest(row_count=0, combined_hash=0)

    digest = Digest(row_count=int(row[0] or 0), combined_hash=reduce_sum(row[1]))
    logger.debug(f"{descriptor.name} {window} on {executor.side}: {digest}")
    return digest


def compare_digests(source: Digest, target: Digest) -> bool:
    """True when both the row count and the combined hash match."""
    return (
        source.row_count == target.row_count
        and source.combined_hash == target.combined_hash
    )
