"""
Per-engine SQL for the reconciliation queries.

Each dialect builds four statements for the query executor:

- column listing for a (schema qualified) table
- MIN/MAX probe of the key column
- chunk aggregate: COUNT(*) and the exact SUM of row hashes in a key window
- row scan: (key, row hash) pairs in a key window, ordered by key

Identifiers are validated and quoted; key bounds are bound parameters.
"""

from typing import Sequence

from ..utils.database_types import DatabaseType
from ..utils.sql_safety import quote_identifier, quote_schema_table, split_schema_table
from .hashing import COLUMN_SEPARATOR, NULL_SENTINEL


class SqlDialect:
    """Base class for engine-specific SQL builders."""

    db_type: DatabaseType
    placeholder = "?"

    def quote(self, identifier: str) -> str:
        return quote_identifier(identifier, self.db_type)

    def table(self, table_name: str) -> str:
        return quote_schema_table(table_name, self.db_type)

    def column_text(self, quoted_column: str) -> str:
        """Length-prefixed text of one column, or the NULL sentinel."""
        raise NotImplementedError

    def row_hash(self, columns: Sequence[str]) -> str:
        """Expression yielding the unsigned integer hash of a row."""
        raise NotImplementedError

    def hash_sum(self, row_hash: str) -> str:
        """Aggregate expression yielding the exact (non-overflowing) sum of row hashes."""
        return f"SUM({row_hash})"

    def list_columns_query(self, table_name: str) -> tuple[str, tuple]:
        """Statement and parameters returning column names in schema order."""
        raise NotImplementedError

    def _window_predicate(self, key_column: str) -> str:
        p = self.placeholder
        return f"{self.quote(key_column)} >= {p} AND {self.quote(key_column)} <= {p}"

    def key_range_query(self, table_name: str, key_column: str) -> str:
        key = self.quote(key_column)
        return f"SELECT MIN({key}), MAX({key}) FROM {self.table(table_name)}"

    def chunk_digest_query(
        self, table_name: str, key_column: str, columns: Sequence[str]
    ) -> str:
        return (
            f"SELECT COUNT(*), {self.hash_sum(self.row_hash(columns))} "
            f"FROM {self.table(table_name)} "
            f"WHERE {self._window_predicate(key_column)}"
        )

    def row_digest_query(
        self, table_name: str, key_column: str, columns: Sequence[str]
    ) -> str:
        key = self.quote(key_column)
        return (
            f"SELECT {key}, {self.row_hash(columns)} "
            f"FROM {self.table(table_name)} "
            f"WHERE {self._window_predicate(key_column)} "
            f"ORDER BY {key}"
        )


class PostgresDialect(SqlDialect):
    db_type = DatabaseType.POSTGRESQL
    placeholder = "%s"

    def column_text(self, quoted_column: str) -> str:
        as_text = f"CAST({quoted_column} AS text)"
        return f"COALESCE(length({as_text}) || ':' || {as_text}, '{NULL_SENTINEL}')"

    def row_hash(self, columns: Sequence[str]) -> str:
        row_text = f" || '{COLUMN_SEPARATOR}' || ".join(
            self.column_text(self.quote(c)) for c in columns
        )
        return f"('x' || substr(md5({row_text}), 18))::bit(60)::bigint"

    def list_columns_query(self, table_name: str) -> tuple[str, tuple]:
        schema, table = split_schema_table(table_name)
        sql = (
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_schema = COALESCE(%s, current_schema()) AND table_name = %s "
            "ORDER BY ordinal_position"
        )
        return sql, (schema, table)


class MySQLDialect(SqlDialect):
    db_type = DatabaseType.MYSQL
    placeholder = "%s"

    def column_text(self, quoted_column: str) -> str:
        as_text = f"CAST({quoted_column} AS CHAR)"
        return f"COALESCE(CONCAT(CHAR_LENGTH({as_text}), ':', {as_text}), '{NULL_SENTINEL}')"

    def row_hash(self, columns: Sequence[str]) -> str:
        parts = ", ".join(self.column_text(self.quote(c)) for c in columns)
        return (
            f"CAST(CONV(SUBSTRING(MD5(CONCAT_WS('{COLUMN_SEPARATOR}', {parts})), 18), 16, 10) "
            f"AS UNSIGNED)"
        )

    def list_columns_query(self, table_name: str) -> tuple[str, tuple]:
        schema, table = split_schema_table(table_name)
        sql = (
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_schema = COALESCE(%s, DATABASE()) AND table_name = %s "
            "ORDER BY ordinal_position"
        )
        return sql, (schema, table)


class SQLServerDialect(SqlDialect):
    """
    SQL Server hashes UTF-16 text with HASHBYTES and keeps 56 bits, so its
    row hashes are only comparable with another SQL Server.
    """

    db_type = DatabaseType.SQLSERVER

    def column_text(self, quoted_column: str) -> str:
        as_text = f"CAST({quoted_column} AS NVARCHAR(MAX))"
        # LEN ignores trailing spaces; measure with a terminator appended
        return (
            f"CASE WHEN {quoted_column} IS NULL THEN N'{NULL_SENTINEL}' "
            f"ELSE CONCAT(LEN(CONCAT({as_text}, N'x')) - 1, N':', {as_text}) END"
        )

    def row_hash(self, columns: Sequence[str]) -> str:
        parts = ", ".join(self.column_text(self.quote(c)) for c in columns)
        return (
            f"CAST(SUBSTRING(HASHBYTES('MD5', CONCAT_WS(N'{COLUMN_SEPARATOR}', {parts})), 10, 7) "
            f"AS BIGINT)"
        )

    def hash_sum(self, row_hash: str) -> str:
        return f"SUM(CAST({row_hash} AS DECIMAL(38, 0)))"

    def list_columns_query(self, table_name: str) -> tuple[str, tuple]:
        schema, table = split_schema_table(table_name)
        sql = (
            "SELECT COLUMN_NAME FROM INFORMATION_SCHEMA.COLUMNS "
            "WHERE TABLE_SCHEMA = COALESCE(?, SCHEMA_NAME()) AND TABLE_NAME = ? "
            "ORDER BY ORDINAL_POSITION"
        )
        return sql, (schema, table)


class SQLiteDialect(SqlDialect):
    """Uses the tablediff_hash/tablediff_sum functions registered by the SQLite pool."""

    db_type = DatabaseType.SQLITE

    def column_text(self, quoted_column: str) -> str:
        as_text = f"CAST({quoted_column} AS TEXT)"
        return f"COALESCE(length({as_text}) || ':' || {as_text}, '{NULL_SENTINEL}')"

    def row_hash(self, columns: Sequence[str]) -> str:
        row_text = f" || '{COLUMN_SEPARATOR}' || ".join(
            self.column_text(self.quote(c)) for c in columns
        )
        return f"tablediff_hash({row_text})"

    def hash_sum(self, row_hash: str) -> str:
        return f"tablediff_sum({row_hash})"

    def list_columns_query(self, table_name: str) -> tuple[str, tuple]:
        schema, table = split_schema_table(table_name)
        if schema is None:
            return "SELECT name FROM pragma_table_info(?) ORDER BY cid", (table,)
        return "SELECT name FROM pragma_table_info(?, ?) ORDER BY cid", (table, schema)


_DIALECTS: dict[DatabaseType, SqlDialect] = {
    DatabaseType.POSTGRESQL: PostgresDialect(),
    DatabaseType.MYSQL: MySQLDialect(),
    DatabaseType.SQLSERVER: SQLServerDialect(),
    DatabaseType.SQLITE: SQLiteDialect(),
}


def get_dialect(db_type: DatabaseType) -> SqlDialect:
    """Return the SQL builder for an engine."""
    try:
        return _DIALECTS[DatabaseType(db_type)]
    except (KeyError, ValueError):
        raise ValueError(f"No SQL dialect for database type: {db_type!r}")
