"""
bintensor DTypes - Element Type Registry

Enumerates the scalar element types a tensor can hold, with their
interchange type codes, byte sizes and numpy storage dtypes.

Type codes are the wire values written to the tensor header and must stay
stable across implementations of the format:

    code  type          code  type
    ----  ----------    ----  ----------
      1   bit1            10  int16
      2   bit2            11  int32
      3   bit4            12  int64
      4   bool            13  float32
      5   uint8           14  float64
      6   uint16          15  complex64
      7   uint32          16  complex128
      8   uint64          17  user
      9   int8

Bit types are stored one element per byte (numpy uint8); only the low
``bits`` bits may be set. The ``user`` type has no intrinsic size: its
size is supplied by the caller and it is stored as raw bytes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional, Union

import numpy as np


# =============================================================================
# Element Type Enumeration
# =============================================================================

class ElementType(Enum):
    """
    Supported element types.

    Example:
        >>> ElementType.FLOAT64.itemsize
        8
        >>> ElementType.from_code(11)
        ElementType.INT32
    """

    BIT1 = "bit1"
    BIT2 = "bit2"
    BIT4 = "bit4"
    BOOL = "bool"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    INT8 = "int8"
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    COMPLEX64 = "complex64"
    COMPLEX128 = "complex128"
    USER = "user"

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"ElementType.{self.name}"

    @property
    def code(self) -> int:
        """Interchange type code."""
        return _TYPE_INFO[self]["code"]

    @property
    def itemsize(self) -> Optional[int]:
        """Size in bytes of one element (None for user types)."""
        return _TYPE_INFO[self]["size"]

    @property
    def bits(self) -> Optional[int]:
        """Number of significant bits for bit types, else None."""
        return _TYPE_INFO[self].get("bits")

    @property
    def numpy_dtype(self) -> Optional[np.dtype]:
        """Numpy storage dtype (None for user types, see ``to_numpy_dtype``)."""
        dtype = _TYPE_INFO[self]["numpy"]
        return None if dtype is None else np.dtype(dtype)

    @property
    def is_bit(self) -> bool:
        return self.bits is not None

    @property
    def is_integer(self) -> bool:
        return self in _INTEGER_TYPES

    @property
    def is_float(self) -> bool:
        return self in (ElementType.FLOAT32, ElementType.FLOAT64)

    @property
    def is_complex(self) -> bool:
        return self in (ElementType.COMPLEX64, ElementType.COMPLEX128)

    @classmethod
    def from_code(cls, code: int) -> "ElementType":
        """Get ElementType from its interchange type code."""
        try:
            return _CODE_TO_TYPE[int(code)]
        except (KeyError, TypeError, ValueError):
            raise ValueError(f"Unknown element type code: {code!r}") from None


_TYPE_INFO: Dict[ElementType, Dict[str, Any]] = {
    ElementType.BIT1: {"code": 1, "size": 1, "numpy": np.uint8, "bits": 1},
    ElementType.BIT2: {"code": 2, "size": 1, "numpy": np.uint8, "bits": 2},
    ElementType.BIT4: {"code": 3, "size": 1, "numpy": np.uint8, "bits": 4},
    ElementType.BOOL: {"code": 4, "size": 1, "numpy": np.bool_},
    ElementType.UINT8: {"code": 5, "size": 1, "numpy": np.uint8},
    ElementType.UINT16: {"code": 6, "size": 2, "numpy": np.uint16},
    ElementType.UINT32: {"code": 7, "size": 4, "numpy": np.uint32},
    ElementType.UINT64: {"code": 8, "size": 8, "numpy": np.uint64},
    ElementType.INT8: {"code": 9, "size": 1, "numpy": np.int8},
    ElementType.INT16: {"code": 10, "size": 2, "numpy": np.int16},
    ElementType.INT32: {"code": 11, "size": 4, "numpy": np.int32},
    ElementType.INT64: {"code": 12, "size": 8, "numpy": np.int64},
    ElementType.FLOAT32: {"code": 13, "size": 4, "numpy": np.float32},
    ElementType.FLOAT64: {"code": 14, "size": 8, "numpy": np.float64},
    ElementType.COMPLEX64: {"code": 15, "size": 8, "numpy": np.complex64},
    ElementType.COMPLEX128: {"code": 16, "size": 16, "numpy": np.complex128},
    ElementType.USER: {"code": 17, "size": None, "numpy": None},
}

_CODE_TO_TYPE = {info["code"]: et for et, info in _TYPE_INFO.items()}

_INTEGER_TYPES = frozenset({
    ElementType.UINT8, ElementType.UINT16, ElementType.UINT32, ElementType.UINT64,
    ElementType.INT8, ElementType.INT16, ElementType.INT32, ElementType.INT64,
})

# numpy dtype -> ElementType (bit types are never inferred; uint8 wins)
_NUMPY_TO_TYPE = {
    np.dtype(info["numpy"]): et
    for et, info in _TYPE_INFO.items()
    if info["numpy"] is not None and info.get("bits") is None
}

_ALIASES = {
    "uint1": ElementType.BIT1,
    "uint2": ElementType.BIT2,
    "uint4": ElementType.BIT4,
    "fp32": ElementType.FLOAT32,
    "fp64": ElementType.FLOAT64,
    "fc32": ElementType.COMPLEX64,
    "fc64": ElementType.COMPLEX128,
    "float": ElementType.FLOAT32,
    "double": ElementType.FLOAT64,
    "bool_": ElementType.BOOL,
}


# =============================================================================
# Module-Level Constants
# =============================================================================

bit1 = ElementType.BIT1
bit2 = ElementType.BIT2
bit4 = ElementType.BIT4
bool_ = ElementType.BOOL
uint8 = ElementType.UINT8
uint16 = ElementType.UINT16
uint32 = ElementType.UINT32
uint64 = ElementType.UINT64
int8 = ElementType.INT8
int16 = ElementType.INT16
int32 = ElementType.INT32
int64 = ElementType.INT64
float32 = ElementType.FLOAT32
float64 = ElementType.FLOAT64
complex64 = ElementType.COMPLEX64
complex128 = ElementType.COMPLEX128
user = ElementType.USER


# =============================================================================
# Type Utilities
# =============================================================================

def normalize_element_type(value: Union[str, ElementType, np.dtype, type]) -> ElementType:
    """
    Normalize an element type specification.

    Args:
        value: ElementType, name string (``'float32'``, ``'fp64'``...),
            numpy dtype or numpy scalar type

    Returns:
        ElementType

    Example:
        >>> normalize_element_type('fp64')
        ElementType.FLOAT64
        >>> normalize_element_type(np.int32)
        ElementType.INT32
    """
    if isinstance(value, ElementType):
        return value
    if isinstance(value, str):
        key = value.lower()
        if key in _ALIASES:
            return _ALIASES[key]
        try:
            return ElementType(key)
        except ValueError:
            raise ValueError(
                f"Invalid element type: {value!r}. "
                f"Valid: {[e.value for e in ElementType]}"
            ) from None
    if value is None:
        raise TypeError("element type must not be None")
    try:
        dtype = np.dtype(value)
    except TypeError:
        raise TypeError(f"Cannot interpret {value!r} as an element type") from None
    if dtype.kind == "V":
        return ElementType.USER
    try:
        return _NUMPY_TO_TYPE[dtype.newbyteorder("=")]
    except KeyError:
        raise ValueError(f"Unsupported numpy dtype: {dtype}") from None


def validate_element_type(name: str) -> None:
    """
    Validate an element type name.

    Raises:
        ValueError: If the name is not supported
        TypeError: If name is not a string
    """
    if not isinstance(name, str):
        raise TypeError(f"element type name must be str, got {type(name)}")
    normalize_element_type(name)


def element_itemsize(element_type: Union[str, ElementType], user_size: Optional[int] = None) -> int:
    """
    Get size in bytes for an element type.

    Args:
        element_type: Element type
        user_size: Byte size of a user-defined type (required for ``user``)

    Returns:
        Size in bytes
    """
    et = normalize_element_type(element_type)
    if et is ElementType.USER:
        if user_size is None or user_size <= 0:
            raise ValueError("user-defined element types need a positive user_size")
        return int(user_size)
    return et.itemsize


def to_numpy_dtype(element_type: Union[str, ElementType], user_size: Optional[int] = None) -> np.dtype:
    """Numpy storage dtype for an element type (user types become raw void)."""
    et = normalize_element_type(element_type)
    if et is ElementType.USER:
        return np.dtype(("V", element_itemsize(et, user_size)))
    return et.numpy_dtype


__all__ = [
    "ElementType",
    "normalize_element_type",
    "validate_element_type",
    "element_itemsize",
    "to_numpy_dtype",
    "bit1", "bit2", "bit4", "bool_",
    "uint8", "uint16", "uint32", "uint64",
    "int8", "int16", "int32", "int64",
    "float32", "float64", "complex64", "complex128",
    "user",
]
