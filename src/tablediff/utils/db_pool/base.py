"""
Base classes and functionality for database connection pooling.

Provides thread-safe connection pools with on-acquire health checks,
per-query deadlines, metrics, and recycling of stale connections.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from queue import Empty, Queue
from typing import Any, ClassVar

from opentelemetry import trace
from prometheus_client import Counter, Gauge, Histogram

from ..database_types import DatabaseType
from ..metrics import get_or_create_metric
from ..retry import is_retryable_db_exception
from ..tracing import trace_operation

logger = logging.getLogger(__name__)


# Metrics
CONNECTION_POOL_SIZE = get_or_create_metric(
    lambda: Gauge(
        "tablediff_db_pool_size",
        "Current size of database connection pool",
        ["database_type", "pool_name"],
    ),
    "tablediff_db_pool_size",
)

CONNECTION_POOL_ACTIVE = get_or_create_metric(
    lambda: Gauge(
        "tablediff_db_pool_active",
        "Number of connections currently checked out",
        ["database_type", "pool_name"],
    ),
    "tablediff_db_pool_active",
)

CONNECTION_POOL_WAITS = get_or_create_metric(
    lambda: Counter(
        "tablediff_db_pool_waits_total",
        "Number of times a connection request had to wait",
        ["database_type", "pool_name"],
    ),
    "tablediff_db_pool_waits_total",
)

CONNECTION_POOL_ERRORS = get_or_create_metric(
    lambda: Counter(
        "tablediff_db_pool_errors_total",
        "Number of connection pool errors",
        ["database_type", "pool_name", "error_type"],
    ),
    "tablediff_db_pool_errors_total",
)

CONNECTION_ACQUIRE_TIME = get_or_create_metric(
    lambda: Histogram(
        "tablediff_db_connection_acquire_seconds",
        "Time to acquire a connection from pool",
        ["database_type", "pool_name"],
        buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
    ),
    "tablediff_db_connection_acquire_seconds",
)


@dataclass
class PooledConnection:
    """Wrapper for a pooled database connection with metadata."""

    connection: Any
    created_at: float = field(default_factory=time.monotonic)
    last_used: float = field(default_factory=time.monotonic)
    use_count: int = 0

    def mark_used(self) -> None:
        """Mark connection as used and update timestamp."""
        self.last_used = time.monotonic()
        self.use_count += 1


class ConnectionPoolError(Exception):
    """Base exception for connection pool errors."""

    pass


class PoolExhaustedError(ConnectionPoolError):
    """Raised when no connection frees up within the acquire timeout."""

    pass


class PoolClosedError(ConnectionPoolError):
    """Raised when attempting to use a closed pool."""

    pass


class BaseConnectionPool:
    """
    Base class for database connection pools.

    Connections are created lazily up to ``max_size`` and handed to one
    caller at a time. Subclasses supply the driver specifics: connecting,
    health checks, closing, and setting/clearing a statement deadline.
    """

    database_type: ClassVar[DatabaseType]
    # Exception base classes raised by the driver; the query layer translates these
    driver_errors: ClassVar[tuple[type[BaseException], ...]] = ()

    def __init__(
        self,
        max_size: int = 4,
        max_idle_time: int = 300,
        max_lifetime: int = 3600,
        acquire_timeout: float = 30.0,
        pool_name: str = "default",
    ):
        """
        Initialize connection pool.

        Args:
            max_size: Maximum number of connections allowed
            max_idle_time: Maximum idle time in seconds before recycling
            max_lifetime: Maximum connection lifetime in seconds
            acquire_timeout: Timeout for acquiring connection in seconds
            pool_name: Name of the pool for metrics (e.g. "source")
        """
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")

        self.max_size = max_size
        self.max_idle_time = max_idle_time
        self.max_lifetime = max_lifetime
        self.acquire_timeout = acquire_timeout
        self.pool_name = pool_name

        self._pool: Queue[PooledConnection] = Queue(maxsize=max_size)
        self._all_connections: list[PooledConnection] = []
        self._lock = threading.RLock()
        self._closed = False

        logger.info(
            f"Initialized {self.__class__.__name__} '{pool_name}' (max={max_size})"
        )

    def _create_connection(self) -> Any:
        """Create a new database connection. Must be implemented by subclasses."""
        raise NotImplementedError

    def _is_connection_healthy(self, conn: Any) -> bool:
        """Check if connection is healthy. Must be implemented by subclasses."""
        raise NotImplementedError

    def _close_connection(self, conn: Any) -> None:
        """Close a database connection. Must be implemented by subclasses."""
        raise NotImplementedError

    def _set_query_timeout(self, conn: Any, timeout: float) -> None:
        """Arm a statement deadline on the connection. Must be implemented by subclasses."""
        raise NotImplementedError

    def _clear_query_timeout(self, conn: Any) -> None:
        """Disarm the statement deadline. Must be implemented by subclasses."""
        raise NotImplementedError

    def _labels(self) -> dict[str, str]:
        return {"database_type": self.database_type.value, "pool_name": self.pool_name}

    def _is_stale(self, pooled_conn: PooledConnection) -> bool:
        now = time.monotonic()

        if now - pooled_conn.created_at > self.max_lifetime:
            logger.debug("Connection exceeded max lifetime, recycling")
            return True

        if now - pooled_conn.last_used > self.max_idle_time:
            logger.debug("Connection exceeded max idle time, recycling")
            return True

        return False

    def _check_connection_health(self, pooled_conn: PooledConnection) -> bool:
        """
        Check if a pooled connection may be handed out.

        Checks:
        - Connection has not exceeded max lifetime
        - Connection has not been idle too long
        - Connection passes the driver health check query
        """
        if self._is_stale(pooled_conn):
            return False

        try:
            return self._is_connection_healthy(pooled_conn.connection)
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            CONNECTION_POOL_ERRORS.labels(**self._labels(), error_type="health_check").inc()
            return False

    def _recycle_connection(self, pooled_conn: PooledConnection) -> None:
        """Close and remove a connection from the pool."""
        try:
            self._close_connection(pooled_conn.connection)
        except Exception as e:
            logger.warning(f"Error closing connection: {e}")
        finally:
            with self._lock:
                if pooled_conn in self._all_connections:
                    self._all_connections.remove(pooled_conn)
            self._update_metrics()

    def _new_pooled_connection(self) -> PooledConnection:
        try:
            conn = self._create_connection()
        except Exception as e:
            CONNECTION_POOL_ERRORS.labels(**self._labels(), error_type="creation").inc()
            raise ConnectionPoolError(
                f"Failed to connect pool '{self.pool_name}': {e}"
            ) from e

        pooled_conn = PooledConnection(connection=conn)
        self._all_connections.append(pooled_conn)
        logger.debug(f"Created connection {len(self._all_connections)}/{self.max_size}")
        return pooled_conn

    def _update_metrics(self) -> None:
        """Update Prometheus gauges."""
        with self._lock:
            total_size = len(self._all_connections)
            active_size = total_size - self._pool.qsize()

        CONNECTION_POOL_SIZE.labels(**self._labels()).set(total_size)
        CONNECTION_POOL_ACTIVE.labels(**self._labels()).set(active_size)

    def _checkout(self) -> PooledConnection:
        start_time = time.monotonic()

        while True:
            elapsed = time.monotonic() - start_time
            if elapsed >= self.acquire_timeout:
                raise PoolExhaustedError(
                    f"No connection available within {self.acquire_timeout}s"
                )

            pooled_conn: PooledConnection | None = None
            try:
                pooled_conn = self._pool.get_nowait()
            except Empty:
                with self._lock:
                    if len(self._all_connections) < self.max_size:
                        pooled_conn = self._new_pooled_connection()

            if pooled_conn is None:
                CONNECTION_POOL_WAITS.labels(**self._labels()).inc()
                try:
                    pooled_conn = self._pool.get(timeout=self.acquire_timeout - elapsed)
                except Empty:
                    raise PoolExhaustedError(
                        f"No connection available within {self.acquire_timeout}s"
                    )

            if pooled_conn.use_count and not self._check_connection_health(pooled_conn):
                logger.info("Connection unhealthy, recycling and retrying")
                self._recycle_connection(pooled_conn)
                continue

            CONNECTION_ACQUIRE_TIME.labels(**self._labels()).observe(
                time.monotonic() - start_time
            )
            return pooled_conn

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """
        Acquire a connection from the pool.

        Yields:
            Database connection

        Raises:
            PoolClosedError: If pool is closed
            PoolExhaustedError: If no connection available within timeout
            ConnectionPoolError: If a new connection could not be opened
        """
        if self._closed:
            raise PoolClosedError(f"Connection pool '{self.pool_name}' is closed")

        with trace_operation(
            "db_pool_acquire",
            kind=trace.SpanKind.CLIENT,
            database_type=self.database_type.value,
            pool_name=self.pool_name,
        ):
            pooled_conn = self._checkout()

        pooled_conn.mark_used()
        self._update_metrics()
        try:
            yield pooled_conn.connection
        finally:
            if self._closed:
                self._recycle_connection(pooled_conn)
            else:
                self._pool.put_nowait(pooled_conn)
                self._update_metrics()

    @contextmanager
    def query_deadline(self, conn: Any, timeout: float | None) -> Iterator[None]:
        """
        Bound every statement run inside the block by ``timeout`` seconds.

        A statement that overruns fails with the driver's own cancellation
        error, which ``is_transient_error`` classifies as retryable.
        """
        if not timeout:
            yield
            return

        self._set_query_timeout(conn, timeout)
        try:
            yield
        finally:
            try:
                self._clear_query_timeout(conn)
            except Exception as e:
                logger.warning(f"Failed to clear query deadline on '{self.pool_name}': {e}")

    def is_transient_error(self, exception: BaseException) -> bool:
        """True when a driver exception is worth retrying (timeouts, dropped links, locks)."""
        return isinstance(exception, Exception) and is_retryable_db_exception(exception)

    def ping(self) -> None:
        """
        Open (or reuse) a connection and run the health check query.

        Raises:
            ConnectionPoolError: If the database cannot be reached
        """
        with self.acquire() as conn:
            if not self._is_connection_healthy(conn):
                raise ConnectionPoolError(f"Health check failed for pool '{self.pool_name}'")

    def close(self) -> None:
        """Close all connections and shutdown the pool."""
        if self._closed:
            return

        logger.info(f"Closing connection pool '{self.pool_name}'")
        self._closed = True

        with self._lock:
            for pooled_conn in self._all_connections:
                try:
                    self._close_connection(pooled_conn.connection)
                except Exception as e:
                    logger.warning(f"Error closing connection: {e}")

            self._all_connections.clear()

            while True:
                try:
                    self._pool.get_nowait()
                except Empty:
                    break

        self._update_metrics()

    def get_stats(self) -> dict[str, Any]:
        """Get pool statistics."""
        with self._lock:
            total_size = len(self._all_connections)
            idle_size = self._pool.qsize()

            return {
                "pool_name": self.pool_name,
                "database_type": self.database_type.value,
                "total_connections": total_size,
                "idle_connections": idle_size,
                "active_connections": total_size - idle_size,
                "max_size": self.max_size,
                "closed": self._closed,
            }

    def __enter__(self) -> "BaseConnectionPool":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
