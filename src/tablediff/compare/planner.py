"""
Key range probing and chunk planning.

The key range of a table is split into contiguous, non-overlapping windows
of ``chunk_size`` keys. Planning is pure arithmetic; only get_key_range
touches the database.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Iterator, Optional

from ..errors import ConfigError, SchemaError

if TYPE_CHECKING:
    from .executor import QueryExecutor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyRange:
    """Inclusive range of integer primary keys."""

    low: int
    high: int

    def __post_init__(self) -> None:
        if self.low > self.high:
            raise ValueError(f"Invalid key range: low {self.low} > high {self.high}")

    @property
    def size(self) -> int:
        return self.high - self.low + 1

    def contains(self, key: int) -> bool:
        return self.low <= key <= self.high

    def span(self, other: Optional["KeyRange"]) -> "KeyRange":
        """Smallest range covering both ranges."""
        if other is None:
            return self
        return KeyRange(min(self.low, other.low), max(self.high, other.high))

    def __str__(self) -> str:
        return f"[{self.low}, {self.high}]"


@dataclass(frozen=True)
class ChunkWindow(KeyRange):
    """One window of the sweep; ``index`` is its position from the left."""

    index: int = 0

    def __str__(self) -> str:
        return f"#{self.index} [{self.low}, {self.high}]"


def plan_chunks(key_range: Optional[KeyRange], chunk_size: int) -> Iterator[ChunkWindow]:
    """
    Tile a key range left to right with windows of ``chunk_size`` keys.

    The last window is narrower when the range does not divide evenly.
    An empty table (no range) yields no windows.

    >>> [str(w) for w in plan_chunks(KeyRange(0, 24999), 10000)]
    ['#0 [0, 9999]', '#1 [10000, 19999]', '#2 [20000, 24999]']

    Raises:
        ConfigError: If chunk_size < 1
    """
    if chunk_size < 1:
        raise ConfigError(f"chunk_size must be >= 1, got {chunk_size}")
    if key_range is None:
        return

    low = key_range.low
    index = 0
    while low <= key_range.high:
        high = min(low + chunk_size - 1, key_range.high)
        yield ChunkWindow(low=low, high=high, index=index)
        low = high + 1
        index += 1


def chunk_count(key_range: Optional[KeyRange], chunk_size: int) -> int:
    """Number of windows plan_chunks will produce."""
    if key_range is None:
        return 0
    return -(-key_range.size // chunk_size)


def _as_key(value: Any, table: str, key_column: str) -> int:
    if isinstance(value, bool):
        raise SchemaError(table, f"key column {key_column!r} is not an integer column")
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)
    raise SchemaError(
        table, f"key column {key_column!r} is not an integer column (got {type(value).__name__})"
    )


def get_key_range(executor: "QueryExecutor", table: str, key_column: str) -> Optional[KeyRange]:
    """
    Probe MIN/MAX of the key column on one side.

    Returns:
        The inclusive key range, or None when the table is empty

    Raises:
        SchemaError: If the key column does not hold integers
        QueryError: If the probe fails
    """
    sql = executor.dialect.key_range_query(table, key_column)
    row = executor.fetch_one(sql, (), operation="key_range")

    if row is None or row[0] is None or row[1] is None:
        logger.info(f"{table}: no rows on {executor.side}")
        return None

    return KeyRange(_as_key(row[0], table, key_column), _as_key(row[1], table, key_column))
