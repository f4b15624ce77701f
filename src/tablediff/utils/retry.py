"""
Exponential backoff for reconciliation queries.

Chunk digest and row scan queries that hit a statement deadline, a lock
wait or a dropped connection are re-run a bounded number of times.
The delay doubles per attempt and carries +/-25% jitter so that workers
that failed together do not retry together.

Usage:
    from tablediff.utils.retry import retry_with_backoff

    @retry_with_backoff(max_retries=3, retryable_exceptions=(TransientIOError,))
    def fetch_digest():
        return executor.fetch_one(sql, params)
"""

import logging
import random
import time
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)

MIN_JITTERED_DELAY = 0.1


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """Seconds to wait after the given zero-based failed attempt."""
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if not jitter or delay <= 0:
        return delay
    spread = delay * 0.25
    return max(min(MIN_JITTERED_DELAY, delay), delay + random.uniform(-spread, spread))


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None
):
    """
    Decorator that re-runs a function on failure with exponential backoff

    Args:
        max_retries: Retries after the first attempt; 0 disables retrying
        base_delay: Delay before the first retry in seconds; 0 retries at once
        max_delay: Upper bound of any single delay in seconds
        exponential_base: Growth factor between consecutive delays
        jitter: Spread each delay by +/-25%
        retryable_exceptions: Exception types worth retrying (default: all)
        on_retry: Callback(attempt, exception, delay) run before each sleep;
            its own failures are logged and ignored

    The last exception propagates unchanged once retries are exhausted.
    """
    def decorator(func: Callable) -> Callable:
        func_name = getattr(func, '__name__', 'function')

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if retryable_exceptions and not isinstance(e, retryable_exceptions):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            f"Giving up on {func_name} after {max_retries} retries: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)
                    attempt += 1
                    logger.warning(
                        f"{func_name} failed (attempt {attempt}/{max_retries + 1}): "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s"
                    )

                    if on_retry:
                        try:
                            on_retry(attempt, e, delay)
                        except Exception as callback_error:
                            logger.error(f"Retry callback failed: {callback_error}")

                    if delay > 0:
                        time.sleep(delay)

        return wrapper
    return decorator


# Message fragments of transient failures across psycopg2, pyodbc, PyMySQL and sqlite3
RETRYABLE_PATTERNS = (
    "timeout",
    "timed out",
    "deadlock",
    "lock wait timeout",
    "database is locked",
    "lost connection",
    "server has gone away",
    "can't connect",
    "unable to connect",
    "connection refused",
    "connection reset",
    "connection closed",
    "connection terminated",
    "connection already closed",
    "server closed the connection",
    "broken pipe",
    "network error",
    "communication link failure",
    "canceling statement due to statement timeout",
    "maximum statement execution time exceeded",
    "interrupted",
)

RETRYABLE_EXCEPTION_NAMES = (
    "connectionerror",
    "timeouterror",
    "interfaceerror",
    "querycanceled",
)


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Determine if a database exception is transient and worth retrying

    Checks for common transient database errors:
    - Connection errors
    - Timeout and statement-deadline errors
    - Lock wait and deadlock errors

    Syntax errors, missing objects and permission errors are not retryable.

    Args:
        exception: The exception to check

    Returns:
        True if the exception is retryable, False otherwise
    """
    exception_str = str(exception).lower()
    exception_type = type(exception).__name__.lower()

    if exception_type in RETRYABLE_EXCEPTION_NAMES:
        return True

    for pattern in RETRYABLE_PATTERNS:
        if pattern in exception_str:
            return True

    # pyodbc reports query timeouts as SQLSTATE HYT00/HYT01 and link failures as 08S01
    sqlstate = exception.args[0] if exception.args else ""
    if isinstance(sqlstate, str) and sqlstate in ("HYT00", "HYT01", "08S01", "08001"):
        return True

    return False
