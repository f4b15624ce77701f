"""SQL Server connection pool implementation."""

from typing import Any

import pyodbc
from opentelemetry import trace

from ..database_types import DatabaseType
from ..tracing import trace_operation
from .base import BaseConnectionPool

DEFAULT_DRIVER = "ODBC Driver 18 for SQL Server"


class SQLServerConnectionPool(BaseConnectionPool):
    """Connection pool for SQL Server databases."""

    database_type = DatabaseType.SQLSERVER
    driver_errors = (pyodbc.Error,)

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        database: str | None = None,
        user: str | None = None,
        password: str | None = None,
        driver: str = DEFAULT_DRIVER,
        connection_string: str | None = None,
        options: dict[str, str] | None = None,
        **kwargs: Any,
    ):
        """
        Initialize SQL Server connection pool.

        Args:
            host: SQL Server host (required if connection_string not provided)
            port: SQL Server port
            database: Database name (required if connection_string not provided)
            user: Username
            password: Password
            driver: ODBC driver name
            connection_string: Complete ODBC connection string (alternative to individual params)
            options: Extra ODBC keywords appended to the built connection string
            **kwargs: Additional arguments for BaseConnectionPool
        """
        if connection_string:
            self.connection_string = connection_string
            self.host = self._extract_from_conn_str(connection_string, "SERVER")
            self.database = self._extract_from_conn_str(connection_string, "DATABASE")
        else:
            if not host or not database:
                raise ValueError(
                    "Either connection_string or host and database must be provided"
                )
            self.host = host
            self.database = database
            self.connection_string = self._build_connection_string(
                host, port, database, user, password, driver, options or {}
            )

        super().__init__(**kwargs)

    @staticmethod
    def _build_connection_string(
        host: str,
        port: int | None,
        database: str,
        user: str | None,
        password: str | None,
        driver: str,
        options: dict[str, str],
    ) -> str:
        server = f"{host},{port}" if port else host
        parts = {
            "DRIVER": f"{{{driver}}}",
            "SERVER": server,
            "DATABASE": database,
            "TrustServerCertificate": "yes",
            "Encrypt": "yes",
        }
        if user:
            parts["UID"] = user
            parts["PWD"] = password or ""
        else:
            parts["Trusted_Connection"] = "yes"
        parts.update(options)
        return "".join(f"{key}={value};" for key, value in parts.items())

    @staticmethod
    def _extract_from_conn_str(conn_str: str, key: str) -> str:
        """Extract a value from connection string for span attributes."""
        for part in conn_str.split(";"):
            if part.strip().upper().startswith(key.upper() + "="):
                return part.split("=", 1)[1].strip()
        return "unknown"

    def _create_connection(self) -> pyodbc.Connection:
        """Create a new SQL Server connection."""
        with trace_operation(
            "sqlserver_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=self.host,
            db_name=self.database,
        ):
            conn = pyodbc.connect(self.connection_string, timeout=10)
            conn.autocommit = True
            return conn

    def _is_connection_healthy(self, conn: pyodbc.Connection) -> bool:
        """Check if SQL Server connection is healthy."""
        if conn is None:
            return False

        try:
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.fetchone()
            cursor.close()
            return True
        except pyodbc.Error:
            return False

    def _close_connection(self, conn: pyodbc.Connection) -> None:
        """Close SQL Server connection."""
        if conn is not None:
            conn.close()

    def _set_query_timeout(self, conn: pyodbc.Connection, timeout: float) -> None:
        # pyodbc only accepts whole seconds; 0 would disable the deadline
        conn.timeout = max(1, int(timeout))

    def _clear_query_timeout(self, conn: pyodbc.Connection) -> None:
        conn.timeout = 0
