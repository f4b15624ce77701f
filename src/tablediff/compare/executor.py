"""
Query execution for one side of the comparison.

QueryExecutor pairs a connection pool with its SQL dialect and is the only
place driver exceptions are handled. Every statement runs under the
configured deadline. Transient failures are retried with backoff and
escalate to QueryError once retries are exhausted.
"""

import logging
from typing import Any, Optional, Sequence

from opentelemetry import trace

from ..errors import DatabaseConnectionError, QueryError, SchemaError, TransientIOError
from ..parallel.metrics import QUERY_RETRIES
from ..utils.db_pool import BaseConnectionPool, ConnectionPoolError, PoolExhaustedError
from ..utils.retry import retry_with_backoff
from ..utils.tracing import trace_operation
from .dialects import SqlDialect, get_dialect

logger = logging.getLogger(__name__)


class QueryExecutor:
    """
    Runs reconciliation queries against one database.

    Args:
        side: "source" or "target", used in errors, logs and metrics
        pool: Connection pool for the database
        query_timeout: Per-statement deadline in seconds (None disables it)
        max_retries: Retries of a transient failure before raising QueryError
        retry_base_delay: First backoff delay in seconds
    """

    def __init__(
        self,
        side: str,
        pool: BaseConnectionPool,
        query_timeout: Optional[float] = 300.0,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
    ):
        self.side = side
        self.pool = pool
        self.dialect: SqlDialect = get_dialect(pool.database_type)
        self.query_timeout = query_timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    def _run_once(self, sql: str, params: Sequence[Any], fetch_all: bool, operation: str) -> Any:
        try:
            with self.pool.acquire() as conn:
                with self.pool.query_deadline(conn, self.query_timeout):
                    cursor = conn.cursor()
                    try:
                        cursor.execute(sql, tuple(params))
                        return cursor.fetchall() if fetch_all else cursor.fetchone()
                    finally:
                        cursor.close()
        except PoolExhaustedError as e:
            raise TransientIOError(str(e), side=self.side, operation=operation) from e
        except ConnectionPoolError as e:
            cause = e.__cause__ or e
            error_class = TransientIOError if self.pool.is_transient_error(cause) else QueryError
            raise error_class(str(e), side=self.side, operation=operation) from e
        except self.pool.driver_errors as e:
            error_class = TransientIOError if self.pool.is_transient_error(e) else QueryError
            raise error_class(
                f"{type(e).__name__}: {e}".strip(), side=self.side, operation=operation
            ) from e

    def _run(self, sql: str, params: Sequence[Any], fetch_all: bool, operation: str) -> Any:
        def on_retry(attempt: int, exc: Exception, delay: float) -> None:
            QUERY_RETRIES.labels(side=self.side, operation=operation).inc()

        @retry_with_backoff(
            max_retries=self.max_retries,
            base_delay=self.retry_base_delay,
            retryable_exceptions=(TransientIOError,),
            on_retry=on_retry,
        )
        def attempt() -> Any:
            return self._run_once(sql, params, fetch_all, operation)

        with trace_operation(
            "db_query",
            kind=trace.SpanKind.CLIENT,
            side=self.side,
            operation=operation,
            database_type=self.pool.database_type.value,
        ):
            try:
                return attempt()
            except TransientIOError as e:
                raise QueryError(
                    f"{e.message} (gave up after {self.max_retries} retries)",
                    side=self.side,
                    operation=operation,
                ) from e

    def fetch_one(self, sql: str, params: Sequence[Any] = (), operation: str = "query") -> Any:
        """Run a statement and return its first row (None when empty)."""
        return self._run(sql, params, fetch_all=False, operation=operation)

    def fetch_all(
        self, sql: str, params: Sequence[Any] = (), operation: str = "query"
    ) -> list[Any]:
        """Run a statement and return all rows."""
        return list(self._run(sql, params, fetch_all=True, operation=operation))

    def list_columns(self, table_name: str) -> list[str]:
        """
        Column names of a table in schema order.

        Raises:
            SchemaError: If the table name is invalid or the columns cannot be listed
        """
        try:
            sql, params = self.dialect.list_columns_query(table_name)
        except ValueError as e:
            raise SchemaError(table_name, str(e)) from e

        try:
            rows = self.fetch_all(sql, params, operation="list_columns")
        except QueryError as e:
            raise SchemaError(table_name, f"cannot list columns on {self.side}: {e}") from e

        return [row[0] for row in rows]

    def ping(self) -> None:
        """
        Validate that the side's database is reachable.

        Raises:
            DatabaseConnectionError: If no healthy connection can be opened
        """
        try:
            self.pool.ping()
        except ConnectionPoolError as e:
            raise DatabaseConnectionError(self.side, str(e)) from e
        except self.pool.driver_errors as e:
            raise DatabaseConnectionError(self.side, f"{type(e).__name__}: {e}") from e

        logger.info(f"Connected to {self.side} ({self.pool.database_type.value})")

    def close(self) -> None:
        self.pool.close()
