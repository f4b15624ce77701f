"""
Error hierarchy for table reconciliation.

Every error raised by the package derives from TableDiffError so callers can
isolate failures per table while letting programming errors propagate.
"""

from typing import Any


class TableDiffError(Exception):
    """Base exception for reconciliation failures."""

    pass


class ConfigError(TableDiffError):
    """Invalid, missing or mutually exclusive inputs. Raised before any database work."""

    pass


class DatabaseConnectionError(TableDiffError):
    """A side's connection could not be established or validated."""

    def __init__(self, side: str, message: str):
        self.side = side
        super().__init__(f"{side}: {message}")


class SchemaError(TableDiffError):
    """Table or comparable columns could not be resolved."""

    def __init__(self, table: str, message: str):
        self.table = table
        super().__init__(f"{table}: {message}")


class _QueryFailure(TableDiffError):
    """Shared context for query-level failures."""

    def __init__(
        self,
        message: str,
        side: str | None = None,
        operation: str | None = None,
        table: str | None = None,
        window: Any = None,
    ):
        self.side = side
        self.operation = operation
        self.table = table
        self.window = window
        self.message = message
        super().__init__(self._describe())

    def _describe(self) -> str:
        context = []
        if self.table:
            context.append(f"table={self.table}")
        if self.window is not None:
            context.append(f"chunk={self.window}")
        if self.side:
            context.append(f"side={self.side}")
        if self.operation:
            context.append(f"operation={self.operation}")

        if not context:
            return self.message
        return f"{self.message} ({', '.join(context)})"

    def with_context(self, table: str | None = None, window: Any = None) -> "_QueryFailure":
        """Fill in table/chunk context that was unknown where the error was raised."""
        if table and not self.table:
            self.table = table
        if window is not None and self.window is None:
            self.window = window
        self.args = (self._describe(),)
        return self


class QueryError(_QueryFailure):
    """A digest, row-scan or probe query failed outright, or retries were exhausted."""

    pass


class TransientIOError(_QueryFailure):
    """Timeout or recoverable connection hiccup; retried before escalating to QueryError."""

    pass


class CancellationError(TableDiffError):
    """Raised when chunk work is cancelled because another chunk failed."""

    pass
