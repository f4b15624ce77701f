"""SQLite connection pool implementation."""

import sqlite3
import time
from pathlib import Path
from typing import Any
from urllib.parse import quote

from opentelemetry import trace

from ...compare.hashing import ExactSumAggregate, hash_row_text
from ..database_types import DatabaseType
from ..tracing import trace_operation
from .base import BaseConnectionPool

# Opcodes between progress handler calls
PROGRESS_INTERVAL = 10_000


class SQLiteConnectionPool(BaseConnectionPool):
    """
    Connection pool for SQLite database files.

    SQLite has no MD5 or wide-integer sum, so every connection gets
    ``tablediff_hash(text)`` and the ``tablediff_sum(int)`` aggregate
    registered, both backed by the Python reference implementation.
    Files are opened read-only; a missing file is a connection error.
    """

    database_type = DatabaseType.SQLITE
    driver_errors = (sqlite3.Error,)

    def __init__(self, database: str, busy_timeout: float = 5.0, **kwargs: Any):
        """
        Initialize SQLite connection pool.

        Args:
            database: Path to the database file
            busy_timeout: Seconds to wait on a locked database
            **kwargs: Additional arguments for BaseConnectionPool
        """
        self.database = database
        self.busy_timeout = busy_timeout
        super().__init__(**kwargs)

    def _create_connection(self) -> sqlite3.Connection:
        """Open the database file read-only and register the hash functions."""
        with trace_operation(
            "sqlite_connect",
            kind=trace.SpanKind.CLIENT,
            db_name=self.database,
        ):
            uri = f"file:{quote(str(Path(self.database)))}?mode=ro"
            conn = sqlite3.connect(
                uri,
                uri=True,
                timeout=self.busy_timeout,
                check_same_thread=False,
            )
            conn.create_function("tablediff_hash", 1, hash_row_text, deterministic=True)
            conn.create_aggregate("tablediff_sum", 1, ExactSumAggregate)
            return conn

    def _is_connection_healthy(self, conn: sqlite3.Connection) -> bool:
        """Check if SQLite connection is usable."""
        if conn is None:
            return False

        try:
            conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error:
            return False

    def _close_connection(self, conn: sqlite3.Connection) -> None:
        """Close SQLite connection."""
        if conn is not None:
            conn.close()

    def _set_query_timeout(self, conn: sqlite3.Connection, timeout: float) -> None:
        deadline = time.monotonic() + timeout

        # A truthy return aborts the running statement with "interrupted"
        def _past_deadline() -> bool:
            return time.monotonic() > deadline

        conn.set_progress_handler(_past_deadline, PROGRESS_INTERVAL)

    def _clear_query_timeout(self, conn: sqlite3.Connection) -> None:
        conn.set_progress_handler(None, 0)
