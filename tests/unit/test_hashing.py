"""
Unit tests for the row hash and digest arithmetic.
"""

import hashlib

import pytest

from tablediff.compare.hashing import (
    HASH_MODULUS,
    NULL_SENTINEL,
    ExactSumAggregate,
    column_text,
    combine_row_hashes,
    compute_row_hash,
    hash_row_text,
    reduce_sum,
)


class TestColumnText:
    """Test the length-prefixed column encoding"""

    def test_value_is_length_prefixed(self):
        assert column_text("abc") == "3:abc"
        assert column_text(42) == "2:42"

    def test_null_and_empty_string_differ(self):
        assert column_text(None) == NULL_SENTINEL
        assert column_text("") == "0:"

    def test_literal_sentinel_text_is_not_null(self):
        assert column_text("#NULL#") != column_text(None)

    def test_bytes_are_decoded(self):
        assert column_text(b"hi") == "2:hi"

    def test_length_counts_characters(self):
        assert column_text("héllo") == "5:héllo"


class TestRowHash:
    """Test row hashing"""

    def test_hash_is_low_60_bits_of_md5(self):
        expected = int(hashlib.md5("1:1|3:abc".encode()).hexdigest()[17:], 16)

        assert compute_row_hash([1, "abc"]) == expected
        assert 0 <= expected < 2 ** 60

    def test_null_vs_empty_rows_hash_differently(self):
        assert compute_row_hash([1, None]) != compute_row_hash([1, ""])

    def test_separator_inside_values_cannot_shift_columns(self):
        """Test ('a|b', 'c') and ('a', 'b|c') produce different hashes"""
        assert compute_row_hash(["a|b", "c"]) != compute_row_hash(["a", "b|c"])

    def test_column_order_matters(self):
        assert compute_row_hash(["x", "y"]) != compute_row_hash(["y", "x"])

    def test_none_text_hashes_to_none(self):
        assert hash_row_text(None) is None


class TestDigestArithmetic:
    """Test the modular sum used for chunk digests"""

    def test_combine_is_order_insensitive(self):
        hashes = [compute_row_hash([key, f"row-{key}"]) for key in range(50)]
        assert combine_row_hashes(hashes) == combine_row_hashes(reversed(hashes))

    def test_combine_wraps_at_64_bits(self):
        assert combine_row_hashes([HASH_MODULUS - 1, 2]) == 1

    def test_reduce_sum_of_no_rows(self):
        assert reduce_sum(None) == 0

    @pytest.mark.parametrize("value", [5, "5", 5 + HASH_MODULUS, str(5 + 3 * HASH_MODULUS)])
    def test_reduce_sum_reduces_modulo(self, value):
        assert reduce_sum(value) == 5

    def test_reduce_sum_accepts_decimal(self):
        from decimal import Decimal

        assert reduce_sum(Decimal(HASH_MODULUS + 7)) == 7

    def test_reduce_sum_rejects_float(self):
        with pytest.raises(TypeError):
            reduce_sum(1.0)

    def test_server_sum_matches_client_combination(self):
        hashes = [2 ** 60 - 1 - key for key in range(100)]
        assert reduce_sum(sum(hashes)) == combine_row_hashes(hashes)


class TestExactSumAggregate:
    """Test the SQLite aggregate"""

    def test_sums_without_overflow(self):
        aggregate = ExactSumAggregate()
        for value in (2 ** 60, 2 ** 60, 2 ** 62, None):
            aggregate.step(value)

        assert aggregate.finalize() == str(2 ** 61 + 2 ** 62)

    def test_no_rows_is_null(self):
        aggregate = ExactSumAggregate()
        aggregate.step(None)
        assert aggregate.finalize() is None
