"""
Error handling for bintensor.

Every failure the core can report is a typed exception carrying an integer
error code plus the structured fields needed to build a diagnostic
(axis index, grammar rule, expected vs. actual sizes) without re-deriving
anything from the tensor.

Hierarchy:

    BinTensorError
    ├── StructuralError          (validator)
    │   ├── IllegalFormatSequence
    │   ├── SizeMismatch
    │   └── OrderingViolation
    ├── ResolutionError          (named-format resolver)
    │   └── UnsupportedLayout
    ├── ConversionError          (format converter)
    │   ├── RankMismatch
    │   ├── DimensionMismatch
    │   ├── IllegalTargetFormat
    │   ├── ConversionOrderingViolation  (also an OrderingViolation)
    │   └── DuplicateCoordinate
    └── StoreError               (store adapter boundary)
        ├── NotFound
        ├── TypeMismatch
        └── IOFailure
"""

from __future__ import annotations

from typing import Any, Optional, Tuple


# =============================================================================
# Error Codes
# =============================================================================

BT_OK = 0

# Structural errors (10-19)
BT_ERROR_ILLEGAL_FORMAT_SEQUENCE = 10
BT_ERROR_SIZE_MISMATCH = 11
BT_ERROR_ORDERING_VIOLATION = 12

# Resolution errors (20-29)
BT_ERROR_UNSUPPORTED_LAYOUT = 20

# Conversion errors (30-39)
BT_ERROR_RANK_MISMATCH = 30
BT_ERROR_DIMENSION_MISMATCH = 31
BT_ERROR_ILLEGAL_TARGET_FORMAT = 32
BT_ERROR_DUPLICATE_COORDINATE = 33

# Store errors (40-49)
BT_ERROR_NOT_FOUND = 40
BT_ERROR_TYPE_MISMATCH = 41
BT_ERROR_IO_FAILURE = 42


_ERROR_MESSAGES = {
    BT_OK: "Success",
    BT_ERROR_ILLEGAL_FORMAT_SEQUENCE: "Illegal axis format sequence",
    BT_ERROR_SIZE_MISMATCH: "Size mismatch",
    BT_ERROR_ORDERING_VIOLATION: "Ordering violation",
    BT_ERROR_UNSUPPORTED_LAYOUT: "Unsupported layout",
    BT_ERROR_RANK_MISMATCH: "Rank mismatch",
    BT_ERROR_DIMENSION_MISMATCH: "Dimension mismatch",
    BT_ERROR_ILLEGAL_TARGET_FORMAT: "Illegal target format",
    BT_ERROR_DUPLICATE_COORDINATE: "Duplicate coordinate",
    BT_ERROR_NOT_FOUND: "Array not found",
    BT_ERROR_TYPE_MISMATCH: "Element type mismatch",
    BT_ERROR_IO_FAILURE: "I/O failure",
}

# Human readable statement of each grammar rule, keyed by rule id.
RULE_DESCRIPTIONS = {
    1: "once an axis is Full, every axis to its right must be Full",
    2: "the last axis must be Index or Full",
    3: "Sparse may not appear immediately left of Full",
    4: "Hyper may not appear immediately left of Full",
    5: "once an axis is Index, every axis to its right must be Index or Full",
}


def error_message(code: int) -> str:
    """Return the generic message for an error code."""
    return _ERROR_MESSAGES.get(code, f"Unknown error (code={code})")


# =============================================================================
# Base Exception
# =============================================================================

class BinTensorError(Exception):
    """
    Base exception for all bintensor errors.

    Attributes:
        code: Integer error code (BT_ERROR_*)
        message: Detailed message
    """

    code = BT_OK

    def __init__(self, message: Optional[str] = None, code: Optional[int] = None):
        if code is not None:
            self.code = code
        if message is None:
            message = error_message(self.code)
        self.message = message
        super().__init__(f"bintensor error {self.code}: {message}")


# =============================================================================
# Structural Errors (Validator)
# =============================================================================

class StructuralError(BinTensorError):
    """A tensor layout or its buffers violate the format rules."""


class IllegalFormatSequence(StructuralError):
    """
    The per-axis format sequence is rejected by the grammar.

    Attributes:
        axis_index: Storage level at which the violation was detected
        rule: Grammar rule id (1-5)
        left: Format of the axis to the left (None for the first axis)
        right: Format of the offending axis (None when the sequence ended
            early, e.g. rule 2)
    """

    code = BT_ERROR_ILLEGAL_FORMAT_SEQUENCE

    def __init__(self, axis_index: int, rule: int, left: Any = None, right: Any = None):
        self.axis_index = axis_index
        self.rule = rule
        self.left = left
        self.right = right
        pair = f"({_fmt_name(left)}, {_fmt_name(right)})"
        super().__init__(
            f"axis {axis_index}: {pair} violates rule {rule}: "
            f"{RULE_DESCRIPTIONS.get(rule, 'unknown rule')}"
        )


class SizeMismatch(StructuralError):
    """
    A buffer or count does not have the size the layout requires.

    Attributes:
        axis_index: Storage level (None for the values buffer)
        expected: Required size or value
        actual: Observed size or value
        field: Which quantity was checked ('pointer', 'index', 'nindex', ...)
    """

    code = BT_ERROR_SIZE_MISMATCH

    def __init__(
        self,
        axis_index: Optional[int],
        expected: Any,
        actual: Any,
        field: str = "",
    ):
        self.axis_index = axis_index
        self.expected = expected
        self.actual = actual
        self.field = field
        where = "values" if axis_index is None else f"axis {axis_index}"
        what = f" {field}" if field else ""
        super().__init__(f"{where}{what}: expected {expected}, got {actual}")


class OrderingViolation(StructuralError):
    """
    An axis claims (or requires) ascending indices that are not ascending.

    Attributes:
        axis_index: Storage level of the offending axis
    """

    code = BT_ERROR_ORDERING_VIOLATION

    def __init__(self, axis_index: int, detail: str = ""):
        self.axis_index = axis_index
        msg = f"axis {axis_index}: indices are not in ascending order"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


# =============================================================================
# Resolution Errors (Named-Format Resolver)
# =============================================================================

class ResolutionError(BinTensorError):
    """A named layout could not be mapped to a generic layout."""


class UnsupportedLayout(ResolutionError):
    """
    The requested layout is unknown, illegal, or its buffers do not fit.

    When the layout is grammar-illegal the originating
    IllegalFormatSequence is available as ``cause`` and its rule id as
    ``rule``.
    """

    code = BT_ERROR_UNSUPPORTED_LAYOUT

    def __init__(
        self,
        requested_name: Any,
        reason: str = "",
        cause: Optional[BinTensorError] = None,
    ):
        self.requested_name = requested_name
        self.reason = reason
        self.cause = cause
        self.rule = getattr(cause, "rule", None)
        msg = f"unsupported layout {requested_name!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


# =============================================================================
# Conversion Errors (Format Converter)
# =============================================================================

class ConversionError(BinTensorError):
    """A tensor could not be converted to the requested layout."""


class RankMismatch(ConversionError):
    code = BT_ERROR_RANK_MISMATCH

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"target has rank {actual}, source has rank {expected}")


class DimensionMismatch(ConversionError):
    code = BT_ERROR_DIMENSION_MISMATCH

    def __init__(self, expected: Tuple[int, ...], actual: Tuple[int, ...]):
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        super().__init__(f"expected shape {self.expected}, got {self.actual}")


class IllegalTargetFormat(ConversionError):
    """The target format sequence (or order) is not a legal layout."""

    code = BT_ERROR_ILLEGAL_TARGET_FORMAT

    def __init__(self, formats: Any, cause: Optional[BinTensorError] = None, reason: str = ""):
        self.formats = formats
        self.cause = cause
        self.rule = getattr(cause, "rule", None)
        detail = reason or (cause.message if cause is not None else "")
        super().__init__(f"illegal target layout {formats!r}: {detail}")


class ConversionOrderingViolation(ConversionError, OrderingViolation):
    """Raised lazily when a conversion relies on an ordering claim that is false."""

    code = BT_ERROR_ORDERING_VIOLATION

    def __init__(self, axis_index: int, detail: str = ""):
        OrderingViolation.__init__(self, axis_index, detail)


class DuplicateCoordinate(ConversionError):
    """Two stored entries map to the same slot of a Full target level."""

    code = BT_ERROR_DUPLICATE_COORDINATE

    def __init__(self, coordinate: Tuple[int, ...]):
        self.coordinate = tuple(int(c) for c in coordinate)
        super().__init__(f"coordinate {self.coordinate} is stored more than once")


# =============================================================================
# Store Errors (Adapter Boundary)
# =============================================================================

class StoreError(BinTensorError):
    """Failure reported by a store adapter."""

    def __init__(self, name: str, message: Optional[str] = None):
        self.name = name
        base = error_message(self.code)
        super().__init__(f"{base}: {name!r}" + (f" ({message})" if message else ""))


class NotFound(StoreError):
    code = BT_ERROR_NOT_FOUND


class TypeMismatch(StoreError):
    code = BT_ERROR_TYPE_MISMATCH

    def __init__(self, name: str, expected: Any, actual: Any):
        self.expected = expected
        self.actual = actual
        super().__init__(name, f"expected {_fmt_name(expected)}, stored {_fmt_name(actual)}")


class IOFailure(StoreError):
    code = BT_ERROR_IO_FAILURE


def _fmt_name(value: Any) -> str:
    if value is None:
        return "-"
    return getattr(value, "name", None) or str(value)


__all__ = [
    "BT_OK",
    "BT_ERROR_ILLEGAL_FORMAT_SEQUENCE",
    "BT_ERROR_SIZE_MISMATCH",
    "BT_ERROR_ORDERING_VIOLATION",
    "BT_ERROR_UNSUPPORTED_LAYOUT",
    "BT_ERROR_RANK_MISMATCH",
    "BT_ERROR_DIMENSION_MISMATCH",
    "BT_ERROR_ILLEGAL_TARGET_FORMAT",
    "BT_ERROR_DUPLICATE_COORDINATE",
    "BT_ERROR_NOT_FOUND",
    "BT_ERROR_TYPE_MISMATCH",
    "BT_ERROR_IO_FAILURE",
    "RULE_DESCRIPTIONS",
    "error_message",
    "BinTensorError",
    "StructuralError",
    "IllegalFormatSequence",
    "SizeMismatch",
    "OrderingViolation",
    "ResolutionError",
    "UnsupportedLayout",
    "ConversionError",
    "RankMismatch",
    "DimensionMismatch",
    "IllegalTargetFormat",
    "ConversionOrderingViolation",
    "DuplicateCoordinate",
    "StoreError",
    "NotFound",
    "TypeMismatch",
    "IOFailure",
]
