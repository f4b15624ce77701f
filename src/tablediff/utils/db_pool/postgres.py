"""PostgreSQL connection pool implementation."""

from typing import Any

import psycopg2
import psycopg2.extensions
from opentelemetry import trace

from ..database_types import DatabaseType
from ..tracing import trace_operation
from .base import BaseConnectionPool


class PostgresConnectionPool(BaseConnectionPool):
    """Connection pool for PostgreSQL databases."""

    database_type = DatabaseType.POSTGRESQL
    driver_errors = (psycopg2.Error,)

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
        Initialize PostgreSQL connection pool.

        Args:
            host: PostgreSQL host
            port: PostgreSQL port
            database: Database name
            user: Username
            password: Password
            connect_timeout: Seconds to wait for a new connection
            options: Extra libpq keywords (e.g. sslmode) passed to psycopg2.connect
            **kwargs: Additional arguments for BaseConnectionPool
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        self.options = dict(options or {})

        super().__init__(**kwargs)

    def _create_connection(self) -> psycopg2.extensions.connection:
        """Create a new PostgreSQL connection."""
        with trace_operation(
            "postgres_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=self.host,
            db_name=self.database,
        ):
            conn = psycopg2.connect(
                host=self.host,
                port=self.port,
                dbname=self.database,
                user=self.user,
                password=self.password,
                connect_timeout=self.connect_timeout,
                application_name="tablediff",
                **self.options,
            )
            # Each chunk query is its own statement; no long-lived snapshot
            conn.set_session(autocommit=True, readonly=True)
            return conn

    def _is_connection_healthy(self, conn: psycopg2.extensions.connection) -> bool:
        """Check if PostgreSQL connection is healthy."""
        if conn is None or conn.closed:
            return False

        try:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            return True
        except psycopg2.Error:
            return False

    def _close_connection(self, conn: psycopg2.extensions.connection) -> None:
        """Close PostgreSQL connection."""
        if conn is not None and not conn.closed:
            conn.close()

    def _set_query_timeout(self, conn: psycopg2.extensions.connection, timeout: float) -> None:
        with conn.cursor() as cursor:
            cursor.execute("SET statement_timeout = %s", (int(timeout * 1000),))

    def _clear_query_timeout(self, conn: psycopg2.extensions.connection) -> None:
        if conn.closed:
            return
        with conn.cursor() as cursor:
            cursor.execute("RESET statement_timeout")
