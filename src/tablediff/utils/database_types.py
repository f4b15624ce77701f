"""
Database type enumeration for type-safe engine identification.

Replaces hardcoded engine strings throughout the codebase.
"""

from enum import Enum


class DatabaseType(str, Enum):
    """
    Enumeration of supported database engines.

    Inherits from str for JSON serialization compatibility and
    easy comparison with string values.
    """

    POSTGRESQL = "postgresql"
    SQLSERVER = "sqlserver"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def from_scheme(cls, scheme: str) -> "DatabaseType":
        """
        Map a connection URL scheme to a database type.

        Driver suffixes such as ``postgresql+psycopg2`` are accepted.

        Args:
            scheme: URL scheme

        Returns:
            DatabaseType enum value

        Raises:
            ValueError: If the scheme is not supported
        """
        base = scheme.lower().split("+", 1)[0]
        aliases = {
            "postgresql": cls.POSTGRESQL,
            "postgres": cls.POSTGRESQL,
            "mssql": cls.SQLSERVER,
            "sqlserver": cls.SQLSERVER,
            "mysql": cls.MYSQL,
            "mariadb": cls.MYSQL,
            "sqlite": cls.SQLITE,
        }
        if base not in aliases:
            raise ValueError(f"Unsupported database scheme: {scheme!r}")
        return aliases[base]

    @property
    def default_port(self) -> int | None:
        """Default TCP port for the engine (None for file-based engines)."""
        return {
            DatabaseType.POSTGRESQL: 5432,
            DatabaseType.SQLSERVER: 1433,
            DatabaseType.MYSQL: 3306,
        }.get(self)
