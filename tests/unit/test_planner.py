"""
Unit tests for key range probing and chunk planning.
"""

from decimal import Decimal
from unittest.mock import Mock

import pytest

from tablediff.compare.planner import (
    ChunkWindow,
    KeyRange,
    chunk_count,
    get_key_range,
    plan_chunks,
)
from tablediff.errors import ConfigError, SchemaError


class TestKeyRange:
    """Test KeyRange behaviour"""

    def test_size_is_inclusive(self):
        assert KeyRange(0, 9999).size == 10000
        assert KeyRange(5, 5).size == 1

    def test_rejects_inverted_range(self):
        with pytest.raises(ValueError):
            KeyRange(10, 1)

    def test_contains(self):
        key_range = KeyRange(10, 20)
        assert key_range.contains(10)
        assert key_range.contains(20)
        assert not key_range.contains(21)

    def test_span_covers_both_ranges(self):
        assert KeyRange(5, 10).span(KeyRange(0, 7)) == KeyRange(0, 10)
        assert KeyRange(5, 10).span(None) == KeyRange(5, 10)

    def test_str(self):
        assert str(KeyRange(1, 2)) == "[1, 2]"
        assert str(ChunkWindow(10000, 19999, index=1)) == "#1 [10000, 19999]"


class TestPlanChunks:
    """Test chunk planning arithmetic"""

    def test_uneven_range(self):
        """Test 25,000 keys in chunks of 10,000 give three windows, the last narrower"""
        windows = list(plan_chunks(KeyRange(0, 24999), 10000))

        assert [(w.low, w.high) for w in windows] == [
            (0, 9999),
            (10000, 19999),
            (20000, 24999),
        ]
        assert [w.index for w in windows] == [0, 1, 2]

    def test_even_range(self):
        windows = list(plan_chunks(KeyRange(1, 100), 50))
        assert [(w.low, w.high) for w in windows] == [(1, 50), (51, 100)]

    def test_chunk_larger_than_range(self):
        windows = list(plan_chunks(KeyRange(3, 7), 10000))
        assert [(w.low, w.high) for w in windows] == [(3, 7)]

    def test_single_key_chunks(self):
        windows = list(plan_chunks(KeyRange(-2, 1), 1))
        assert [(w.low, w.high) for w in windows] == [(-2, -2), (-1, -1), (0, 0), (1, 1)]

    def test_empty_table_has_no_windows(self):
        assert list(plan_chunks(None, 10000)) == []
        assert chunk_count(None, 10000) == 0

    @pytest.mark.parametrize("chunk_size", [0, -1])
    def test_invalid_chunk_size(self, chunk_size):
        with pytest.raises(ConfigError):
            list(plan_chunks(KeyRange(0, 10), chunk_size))

    def test_chunk_count_matches_plan(self):
        key_range = KeyRange(17, 123456)
        assert chunk_count(key_range, 1000) == len(list(plan_chunks(key_range, 1000)))


class TestGetKeyRange:
    """Test MIN/MAX probing through a mocked executor"""

    def _executor(self, row):
        executor = Mock()
        executor.side = "source"
        executor.dialect.key_range_query.return_value = "SELECT MIN(id), MAX(id) FROM t"
        executor.fetch_one.return_value = row
        return executor

    def test_returns_range(self):
        executor = self._executor((1, 500))

        assert get_key_range(executor, "accounts", "id") == KeyRange(1, 500)
        executor.dialect.key_range_query.assert_called_once_with("accounts", "id")
        executor.fetch_one.assert_called_once_with(
            "SELECT MIN(id), MAX(id) FROM t", (), operation="key_range"
        )

    def test_empty_table_returns_none(self):
        assert get_key_range(self._executor((None, None)), "accounts", "id") is None
        assert get_key_range(self._executor(None), "accounts", "id") is None

    def test_decimal_keys_are_accepted(self):
        """Test NUMERIC keys returned as Decimal by some drivers"""
        executor = self._executor((Decimal("1"), Decimal("42")))
        assert get_key_range(executor, "accounts", "id") == KeyRange(1, 42)

    @pytest.mark.parametrize("row", [("a", "z"), (1.5, 3.0), (True, True)])
    def test_non_integer_keys_raise_schema_error(self, row):
        with pytest.raises(SchemaError) as exc_info:
            get_key_range(self._executor(row), "accounts", "id")

        assert "not an integer column" in str(exc_info.value)
