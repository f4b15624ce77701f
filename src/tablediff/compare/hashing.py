"""
Reference implementation of the row hash and chunk digest arithmetic.

The SQL dialects compute the same values server-side; this module is used
by the SQLite backend (registered as SQL functions) and to reduce the
exact server-side sums into fixed-width digests.

Row hash::

    text(c)    = "<len>:<value>"  or "#NULL#" when c is NULL
    row_text   = "|".join(text(c) for c in comparable columns)
    row_hash   = int(md5(row_text).hexdigest()[17:], 16)      # 60 bits

Chunk digest::

    combined   = sum(row_hash) mod 2**64
"""

import hashlib
from decimal import Decimal
from typing import Any, Iterable, Optional

NULL_SENTINEL = "#NULL#"
COLUMN_SEPARATOR = "|"
HASH_MODULUS = 2 ** 64
# MD5 hex digits 18..32, i.e. the last 15 (60 bits)
HEX_OFFSET = 17


def column_text(value: Any) -> str:
    """Length-prefixed text form of one column value."""
    if value is None:
        return NULL_SENTINEL
    if isinstance(value, (bytes, bytearray, memoryview)):
        text = bytes(value).decode("utf-8", errors="replace")
    else:
        text = str(value)
    return f"{len(text)}:{text}"


def hash_row_text(row_text: Optional[str]) -> Optional[int]:
    """Reduce an assembled row text to its 60-bit hash."""
    if row_text is None:
        return None
    digest = hashlib.md5(row_text.encode("utf-8")).hexdigest()
    return int(digest[HEX_OFFSET:], 16)


def compute_row_hash(values: Iterable[Any]) -> int:
    """
    Hash a row from its comparable column values, in column order.

    Matches the server-side expression for integer and text columns.
    """
    return hash_row_text(COLUMN_SEPARATOR.join(column_text(value) for value in values))


def reduce_sum(value: Any) -> int:
    """
    Reduce an exact server-side SUM to the 64-bit combined hash.

    SUM over no rows is NULL, which reduces to 0.
    """
    if value is None:
        return 0
    if isinstance(value, float):
        raise TypeError(f"Hash sum lost precision (got float {value!r})")
    return int(Decimal(str(value))) % HASH_MODULUS


def combine_row_hashes(hashes: Iterable[int]) -> int:
    """Order-insensitive combination of row hashes (modular sum)."""
    total = 0
    for row_hash in hashes:
        total = (total + row_hash) % HASH_MODULUS
    return total


class ExactSumAggregate:
    """
    SQLite aggregate summing row hashes without 64-bit overflow.

    The result is returned as text because SQLite integers are signed
    64-bit; reduce_sum turns it back into the combined hash.
    """

    def __init__(self) -> None:
        self.total = 0
        self.seen = False

    def step(self, value: Optional[int]) -> None:
        if value is not None:
            self.total += int(value)
            self.seen = True

    def finalize(self) -> Optional[str]:
        return str(self.total) if self.seen else None
