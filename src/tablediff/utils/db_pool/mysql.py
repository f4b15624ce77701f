"""MySQL / MariaDB connection pool implementation."""

from typing import Any

import pymysql
from opentelemetry import trace

from ..database_types import DatabaseType
from ..tracing import trace_operation
from .base import BaseConnectionPool


class MySQLConnectionPool(BaseConnectionPool):
    """Connection pool for MySQL databases (PyMySQL)."""

    database_type = DatabaseType.MYSQL
    driver_errors = (pymysql.err.MySQLError,)

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str | None = None,
        password: str | None = None,
        connect_timeout: int = 10,
        options: dict[str, str] | None = None,
        **kwargs: Any,
    ):
        """
        Initialize MySQL connection pool.

        Args:
            host: MySQL host
            port: MySQL port
            database: Database (schema) name
            user: Username
            password: Password
            connect_timeout: Seconds to wait for a new connection
            options: Extra keyword arguments for pymysql.connect (e.g. charset)
            **kwargs: Additional arguments for BaseConnectionPool
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        self.options = {"charset": "utf8mb4", **(options or {})}

        super().__init__(**kwargs)

    def _create_connection(self) -> pymysql.connections.Connection:
        """Create a new MySQL connection."""
        with trace_operation(
            "mysql_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=self.host,
            db_name=self.database,
        ):
            return pymysql.connect(
                host=self.host,
                port=int(self.port),
                user=self.user,
                password=self.password or "",
                database=self.database,
                connect_timeout=self.connect_timeout,
                autocommit=True,
                **self.options,
            )

    def _is_connection_healthy(self, conn: pymysql.connections.Connection) -> bool:
        """Check if MySQL connection is healthy."""
        if conn is None or not conn.open:
            return False

        try:
            conn.ping(reconnect=False)
            return True
        except pymysql.err.MySQLError:
            return False

    def _close_connection(self, conn: pymysql.connections.Connection) -> None:
        """Close MySQL connection."""
        if conn is not None and conn.open:
            conn.close()

    def _set_query_timeout(self, conn: pymysql.connections.Connection, timeout: float) -> None:
        # MAX_EXECUTION_TIME applies to SELECT statements only, in milliseconds
        with conn.cursor() as cursor:
            cursor.execute("SET SESSION MAX_EXECUTION_TIME = %s", (int(timeout * 1000),))

    def _clear_query_timeout(self, conn: pymysql.connections.Connection) -> None:
        if not conn.open:
            return
        with conn.cursor() as cursor:
            cursor.execute("SET SESSION MAX_EXECUTION_TIME = 0")
