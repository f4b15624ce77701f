"""
Unit tests for retry logic with exponential backoff.

Tests retry_with_backoff decorator and transient error classification.
"""

from unittest.mock import Mock, patch

import pytest

from tablediff.errors import QueryError, TransientIOError
from tablediff.utils.retry import backoff_delay, is_retryable_db_exception, retry_with_backoff


class TestRetryWithBackoff:
    """Test retry_with_backoff decorator"""

    def test_successful_call_no_retry(self):
        mock_func = Mock(return_value="success")
        decorated = retry_with_backoff(max_retries=3)(mock_func)

        assert decorated() == "success"
        assert mock_func.call_count == 1

    @patch('time.sleep')
    def test_retry_on_failure_then_success(self, mock_sleep):
        mock_func = Mock(side_effect=[TransientIOError("timeout"), TransientIOError("timeout"), "ok"])
        mock_func.__name__ = "fetch_digest"
        decorated = retry_with_backoff(max_retries=3, base_delay=0.1)(mock_func)

        assert decorated() == "ok"
        assert mock_func.call_count == 3
        assert mock_sleep.call_count == 2

    @patch('time.sleep')
    def test_max_retries_exceeded(self, mock_sleep):
        mock_func = Mock(side_effect=TransientIOError("timeout"))
        mock_func.__name__ = "fetch_digest"
        decorated = retry_with_backoff(max_retries=2, base_delay=0.1)(mock_func)

        with pytest.raises(TransientIOError):
            decorated()

        assert mock_func.call_count == 3
        assert mock_sleep.call_count == 2

    @patch('time.sleep')
    def test_exponential_backoff_delays(self, mock_sleep):
        mock_func = Mock(side_effect=[TransientIOError("x")] * 3 + ["ok"])
        mock_func.__name__ = "fetch_digest"
        decorated = retry_with_backoff(max_retries=3, base_delay=1.0, jitter=False)(mock_func)

        decorated()

        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0, 4.0]

    @patch('time.sleep')
    def test_max_delay_cap(self, mock_sleep):
        mock_func = Mock(side_effect=[TransientIOError("x")] * 3 + ["ok"])
        mock_func.__name__ = "fetch_digest"
        decorated = retry_with_backoff(
            max_retries=3, base_delay=10.0, max_delay=15.0, jitter=False
        )(mock_func)

        decorated()

        assert all(c.args[0] <= 15.0 for c in mock_sleep.call_args_list)

    @patch('time.sleep')
    def test_non_retryable_exception_raises_immediately(self, mock_sleep):
        mock_func = Mock(side_effect=QueryError("syntax error"))
        decorated = retry_with_backoff(
            max_retries=3, retryable_exceptions=(TransientIOError,)
        )(mock_func)

        with pytest.raises(QueryError):
            decorated()

        assert mock_func.call_count == 1
        mock_sleep.assert_not_called()

    @patch('time.sleep')
    def test_on_retry_callback(self, mock_sleep):
        callback = Mock()
        mock_func = Mock(side_effect=[TransientIOError("x"), "ok"])
        mock_func.__name__ = "fetch_digest"
        decorated = retry_with_backoff(max_retries=2, on_retry=callback)(mock_func)

        decorated()

        callback.assert_called_once()
        attempt, exc, delay = callback.call_args.args
        assert attempt == 1
        assert isinstance(exc, TransientIOError)
        assert delay > 0

    @patch('time.sleep')
    def test_failing_callback_does_not_stop_retry(self, mock_sleep):
        mock_func = Mock(side_effect=[TransientIOError("x"), "ok"])
        mock_func.__name__ = "fetch_digest"
        decorated = retry_with_backoff(
            max_retries=2, on_retry=Mock(side_effect=RuntimeError("metrics down"))
        )(mock_func)

        assert decorated() == "ok"


class TestBackoffDelay:
    """Test backoff_delay"""

    def test_doubles_until_capped(self):
        delays = [backoff_delay(n, 1.0, 5.0, jitter=False) for n in range(5)]

        assert delays == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_jitter_stays_within_a_quarter(self):
        for _ in range(50):
            assert 3.0 <= backoff_delay(2, 1.0, 60.0) <= 5.0

    def test_zero_base_never_waits(self):
        assert backoff_delay(3, 0.0, 60.0) == 0.0

    @patch('time.sleep')
    def test_zero_base_retries_without_sleeping(self, mock_sleep):
        mock_func = Mock(side_effect=[TransientIOError("x"), "ok"])
        mock_func.__name__ = "fetch_digest"

        assert retry_with_backoff(max_retries=1, base_delay=0.0)(mock_func)() == "ok"
        mock_sleep.assert_not_called()


class TestIsRetryableDbException:
    """Test transient error classification"""

    @pytest.mark.parametrize(
        "message",
        [
            "canceling statement due to statement timeout",
            "Lost connection to MySQL server during query",
            "MySQL server has gone away",
            "database is locked",
            "interrupted",
            "Deadlock found when trying to get lock",
            "server closed the connection unexpectedly",
            "Query execution was interrupted, maximum statement execution time exceeded",
        ],
    )
    def test_transient_messages(self, message):
        assert is_retryable_db_exception(Exception(message))

    @pytest.mark.parametrize(
        "message",
        [
            'relation "accounts" does not exist',
            "no such table: accounts",
            "syntax error at or near SELECT",
            "permission denied for table accounts",
        ],
    )
    def test_permanent_messages(self, message):
        assert not is_retryable_db_exception(Exception(message))

    def test_pyodbc_timeout_sqlstate(self):
        assert is_retryable_db_exception(Exception("HYT00", "[HYT00] Query timeout expired"))
        assert is_retryable_db_exception(Exception("08S01", "[08S01] link failure"))
        assert not is_retryable_db_exception(Exception("42S02", "[42S02] Invalid object name"))

    def test_exception_type_names(self):
        class InterfaceError(Exception):
            pass

        assert is_retryable_db_exception(InterfaceError("closed"))
