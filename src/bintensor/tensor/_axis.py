"""
Axis Descriptors

Each storage level of a tensor is described by an AxisDescriptor. Its
format is not stored; it follows from which buffers are present:

    pointer   index     format   meaning
    -------   -----     ------   ---------------------------------------
    absent    absent    FULL     every coordinate present, fixed size
    present   absent    SPARSE   every coordinate present, variable size
    present   present   HYPER    some coordinates present, variable size
    absent    present   INDEX    some coordinates present, fixed size

The format is classified once, when the descriptor is built, so the
grammar engine works over a clean four-letter alphabet.
"""

from enum import Enum
from typing import Any, Optional, Sequence, Tuple, Union

from ._array import Buffer

__all__ = [
    'AxisFormat',
    'AxisDescriptor',
    'classify',
    'required_pointer_length',
    'required_index_length',
    'parse_formats',
]


class AxisFormat(Enum):
    """Per-axis storage format."""
    FULL = 'full'
    SPARSE = 'sparse'
    HYPER = 'hyper'
    INDEX = 'index'

    @property
    def has_pointer(self) -> bool:
        return self in (AxisFormat.SPARSE, AxisFormat.HYPER)

    @property
    def has_index(self) -> bool:
        return self in (AxisFormat.HYPER, AxisFormat.INDEX)

    @property
    def symbol(self) -> str:
        """One-letter symbol (F, S, H, I)."""
        return self.name[0]

    @classmethod
    def from_presence(cls, has_pointer: bool, has_index: bool) -> 'AxisFormat':
        """Classify from buffer presence."""
        if has_pointer:
            return cls.HYPER if has_index else cls.SPARSE
        return cls.INDEX if has_index else cls.FULL

    @classmethod
    def from_symbol(cls, value: Union[str, 'AxisFormat']) -> 'AxisFormat':
        """Accept a member, a one-letter symbol or a full name."""
        if isinstance(value, AxisFormat):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for fmt in cls:
                if key in (fmt.value, fmt.symbol.lower()):
                    return fmt
        raise ValueError(f"Unknown axis format: {value!r}")

    def __repr__(self) -> str:
        return f"AxisFormat.{self.name}"


def parse_formats(formats: Union[str, Sequence[Any]]) -> Tuple[AxisFormat, ...]:
    """
    Parse a format sequence.

    Example:
        >>> parse_formats("SI")
        (AxisFormat.SPARSE, AxisFormat.INDEX)
        >>> parse_formats(["hyper", AxisFormat.INDEX])
        (AxisFormat.HYPER, AxisFormat.INDEX)
    """
    if isinstance(formats, str):
        return tuple(AxisFormat.from_symbol(ch) for ch in formats if not ch.isspace())
    return tuple(AxisFormat.from_symbol(f) for f in formats)


class AxisDescriptor:
    """
    One storage level of a tensor.

    Attributes:
        order: Logical axis stored at this level
        dimension: Extent of that logical axis
        in_order: Indices ascend (must be True for Full/Sparse/Hyper)
        pointer: Optional offsets buffer
        index: Optional coordinates buffer
        nindex: Declared index count (dimension for Full/Sparse,
            len(index) for Hyper/Index when not given)
        format: Derived AxisFormat

    Example:
        >>> # column indices of a CSR matrix with 6 entries
        >>> AxisDescriptor(order=1, dimension=5, index=colind)
        AxisDescriptor(order=1, dimension=5, format=index, nindex=6, in_order=False)
    """

    __slots__ = ('_order', '_dimension', '_in_order', '_pointer', '_index', '_nindex', '_format')

    def __init__(
        self,
        order: int,
        dimension: int,
        in_order: bool = True,
        pointer: Optional[Buffer] = None,
        index: Optional[Buffer] = None,
        nindex: Optional[int] = None,
    ):
        if int(dimension) < 0:
            raise ValueError(f"dimension must be non-negative, got {dimension}")
        if pointer is not None and not isinstance(pointer, Buffer):
            raise TypeError(f"pointer must be a Buffer, got {type(pointer).__name__}")
        if index is not None and not isinstance(index, Buffer):
            raise TypeError(f"index must be a Buffer, got {type(index).__name__}")
        self._order = int(order)
        self._dimension = int(dimension)
        self._in_order = bool(in_order)
        self._pointer = pointer
        self._index = index
        self._format = AxisFormat.from_presence(pointer is not None, index is not None)
        if nindex is None:
            nindex = len(index) if index is not None else self._dimension
        self._nindex = int(nindex)

    @property
    def order(self) -> int:
        return self._order

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def in_order(self) -> bool:
        return self._in_order

    @property
    def pointer(self) -> Optional[Buffer]:
        return self._pointer

    @property
    def index(self) -> Optional[Buffer]:
        return self._index

    @property
    def nindex(self) -> int:
        return self._nindex

    @property
    def format(self) -> AxisFormat:
        return self._format

    def replace(self, **changes) -> 'AxisDescriptor':
        """Copy of this descriptor with some fields replaced."""
        fields = {
            'order': self._order,
            'dimension': self._dimension,
            'in_order': self._in_order,
            'pointer': self._pointer,
            'index': self._index,
            'nindex': self._nindex,
        }
        if ('index' in changes or 'pointer' in changes) and 'nindex' not in changes:
            fields['nindex'] = None
        fields.update(changes)
        return AxisDescriptor(**fields)

    def __repr__(self) -> str:
        return (f"AxisDescriptor(order={self._order}, dimension={self._dimension}, "
                f"format={self._format.value}, nindex={self._nindex}, in_order={self._in_order})")


def classify(axis: AxisDescriptor) -> AxisFormat:
    """Format of an axis, from the presence of its pointer and index buffers."""
    return AxisFormat.from_presence(axis.pointer is not None, axis.index is not None)


def required_pointer_length(axis: AxisDescriptor, nobjects: int = 1) -> Optional[int]:
    """
    Pointer length the axis needs, or None if it has no pointer.

    Args:
        axis: The axis
        nobjects: Number of objects described by the level to the left
            (1 for the outermost level)
    """
    fmt = classify(axis)
    if fmt is AxisFormat.SPARSE:
        return nobjects * axis.dimension + 1
    if fmt is AxisFormat.HYPER:
        return axis.nindex + 1
    return None


def required_index_length(axis: AxisDescriptor) -> Optional[int]:
    """Index length the axis needs, or None if it has no index."""
    if classify(axis).has_index:
        return axis.nindex
    return None
