"""
Tests for the error taxonomy.
"""

import pytest
from bintensor import error
from bintensor.error import (
    BinTensorError,
    ConversionError,
    ConversionOrderingViolation,
    DuplicateCoordinate,
    IllegalFormatSequence,
    IOFailure,
    NotFound,
    OrderingViolation,
    StoreError,
    StructuralError,
    TypeMismatch,
    error_message,
)


class TestHierarchy:
    @pytest.mark.parametrize("exc,base", [
        (IllegalFormatSequence(1, 3), StructuralError),
        (DuplicateCoordinate((0, 1)), ConversionError),
        (NotFound('x'), StoreError),
        (IOFailure('x', 'closed'), StoreError),
    ])
    def test_categories(self, exc, base):
        assert isinstance(exc, base)
        assert isinstance(exc, BinTensorError)

    def test_conversion_ordering_is_both(self):
        exc = ConversionOrderingViolation(2)
        assert isinstance(exc, OrderingViolation)
        assert isinstance(exc, ConversionError)
        assert exc.axis_index == 2


class TestMessages:
    def test_codes(self):
        assert NotFound('x').code == error.BT_ERROR_NOT_FOUND
        assert IllegalFormatSequence(0, 2).code == error.BT_ERROR_ILLEGAL_FORMAT_SEQUENCE
        assert error_message(12345).startswith("Unknown error")

    def test_grammar_message_names_rule(self):
        exc = IllegalFormatSequence(1, 3)
        assert exc.rule == 3
        assert "rule 3" in str(exc)
        assert "axis 1" in str(exc)

    def test_store_fields(self):
        exc = TypeMismatch('values/values', 'int64', 'int32')
        assert exc.name == 'values/values'
        assert 'values/values' in str(exc)
        assert exc.expected == 'int64'

    def test_duplicate_coordinate(self):
        exc = DuplicateCoordinate([1, 2])
        assert exc.coordinate == (1, 2)
        assert "(1, 2)" in str(exc)
