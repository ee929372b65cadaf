"""
Tensor Descriptor

The unit every other component works on: an ordered sequence of
AxisDescriptors (storage order, outermost first), a typed value buffer
(a single value when iso-valued), the element type and optional
free-form metadata.

A descriptor is validated when it is built and structurally immutable
afterwards: its buffers are read-only aliases, its axes are a tuple, and every
transformation (see ``convert``) returns a new descriptor.
"""

from typing import Any, Optional, Sequence, Tuple, Union

import numpy as np

from .._config import get_config
from .._dtypes import ElementType, element_itemsize
from ..error import SizeMismatch
from ._array import Buffer, as_buffer
from ._axis import AxisDescriptor, AxisFormat
from ._grammar import SizePlan, validate_axes, validate_values
from ._ownership import Ownership, RefChain

__all__ = ['TensorDescriptor']


def _read_only(buf: Optional[Buffer]) -> Optional[Buffer]:
    """Read-only alias of buf (same ownership tag), or buf itself if already frozen."""
    if buf is None or buf.readonly:
        return buf
    alias = buf.to_numpy().view()
    alias.flags.writeable = False
    return Buffer(alias, buf.element_type, buf.ownership, _source=buf)


class TensorDescriptor:
    """
    Validated, immutable description of a stored tensor.

    Attributes:
        rank: Number of axes (0 for a scalar)
        axes: AxisDescriptors in storage order
        formats: AxisFormat per storage level
        order: Logical axis per storage level
        shape: Logical shape (``shape[axes[k].order] == axes[k].dimension``)
        element_type: ElementType of the values
        element_size: Bytes per value
        iso_valued: True if ``values`` holds one value standing for all
        values: Value Buffer
        nvals: Number of value slots described by the layout
        metadata: Optional free-form string (JSON text by convention)
        pointer_type, index_type: Integer types of the axis buffers
        ownership: OWNED, BORROWED or VIEW

    Example:
        >>> t = TensorDescriptor(
        ...     axes=[AxisDescriptor(0, 3, pointer=row_ptr),
        ...           AxisDescriptor(1, 3, index=colind)],
        ...     values=[5, 7, 9],
        ... )
        >>> t.formats
        (AxisFormat.SPARSE, AxisFormat.INDEX)
    """

    __slots__ = (
        '_axes', '_values', '_element_type', '_element_size', '_iso_valued',
        '_metadata', '_plan', '_ownership', '_ref_chain', '__weakref__',
    )

    def __init__(
        self,
        axes: Sequence[AxisDescriptor],
        values: Any,
        element_type: Optional[Union[str, ElementType]] = None,
        iso_valued: bool = False,
        metadata: Optional[str] = None,
        element_size: Optional[int] = None,
        nvals: Optional[int] = None,
        check_contents: Optional[bool] = None,
        _ownership: Optional[Ownership] = None,
        _source: Optional[Any] = None,
    ):
        """
        Build and validate a descriptor.

        Args:
            axes: Storage levels, outermost first
            values: Buffer or array-like of values
            element_type: Value type (inferred from ``values`` if omitted)
            iso_valued: ``values`` holds a single value for every entry
            metadata: Optional free-form string
            element_size: Byte size for user-defined element types
            nvals: Expected value count; checked against the derived one
            check_contents: Scan buffer contents (default from configuration)

        Buffers are held through read-only aliases: the caller's Buffer
        objects stay writable but share memory with the descriptor, so
        writing through them changes the tensor.

        Raises:
            StructuralError: The layout or its buffers are invalid
        """
        axes = tuple(axes)
        for axis in axes:
            if not isinstance(axis, AxisDescriptor):
                raise TypeError(f"axes must be AxisDescriptors, got {type(axis).__name__}")

        value_buf = as_buffer(values, element_type, element_size)
        if value_buf is None:
            raise ValueError("values must not be None")
        et = value_buf.element_type
        if et is ElementType.USER:
            element_size = value_buf.itemsize
        if metadata is not None and not isinstance(metadata, str):
            raise TypeError(f"metadata must be a string, got {type(metadata).__name__}")

        plan = validate_axes(axes, check_contents=check_contents)
        validate_values(plan, len(value_buf), iso_valued)
        if nvals is not None and int(nvals) != plan.nvals:
            raise SizeMismatch(None, plan.nvals, int(nvals), 'nvals')

        if _ownership is None:
            _ownership = value_buf.ownership if value_buf.ownership is not Ownership.VIEW else Ownership.OWNED
        # read-only aliases; the caller's Buffer objects keep their flags
        axes = tuple(
            axis.replace(pointer=_read_only(axis.pointer), index=_read_only(axis.index), nindex=axis.nindex)
            for axis in axes
        )
        value_buf = _read_only(value_buf)

        self._axes = axes
        self._values = value_buf
        self._element_type = et
        self._element_size = element_itemsize(et, element_size)
        self._iso_valued = bool(iso_valued)
        self._metadata = metadata
        self._plan = plan
        self._ref_chain = RefChain()
        if _source is not None:
            self._ref_chain.add(_source)
        self._ownership = _ownership

    # =========================================================================
    # Structure
    # =========================================================================

    @property
    def rank(self) -> int:
        return len(self._axes)

    @property
    def axes(self) -> Tuple[AxisDescriptor, ...]:
        return self._axes

    @property
    def formats(self) -> Tuple[AxisFormat, ...]:
        return tuple(a.format for a in self._axes)

    @property
    def order(self) -> Tuple[int, ...]:
        return tuple(a.order for a in self._axes)

    @property
    def shape(self) -> Tuple[int, ...]:
        """Logical shape, indexed by logical axis."""
        shape = [0] * self.rank
        for axis in self._axes:
            shape[axis.order] = axis.dimension
        return tuple(shape)

    @property
    def storage_shape(self) -> Tuple[int, ...]:
        """Dimensions in storage order."""
        return tuple(a.dimension for a in self._axes)

    @property
    def size_plan(self) -> SizePlan:
        return self._plan

    @property
    def nvals(self) -> int:
        return self._plan.nvals

    @property
    def layout_string(self) -> str:
        """Compact layout, e.g. ``'SI'``."""
        return ''.join(f.symbol for f in self.formats)

    # =========================================================================
    # Values and Types
    # =========================================================================

    @property
    def values(self) -> Buffer:
        return self._values

    @property
    def element_type(self) -> ElementType:
        return self._element_type

    @property
    def element_size(self) -> int:
        return self._element_size

    @property
    def iso_valued(self) -> bool:
        return self._iso_valued

    @property
    def metadata(self) -> Optional[str]:
        return self._metadata

    @property
    def pointer_type(self) -> ElementType:
        """Integer type of the pointer buffers (configured default if none)."""
        for axis in self._axes:
            if axis.pointer is not None:
                return axis.pointer.element_type
        return get_config().index.pointer_type

    @property
    def index_type(self) -> ElementType:
        """Integer type of the index buffers (configured default if none)."""
        for axis in self._axes:
            if axis.index is not None:
                return axis.index.element_type
        return get_config().index.index_type

    # =========================================================================
    # Ownership
    # =========================================================================

    @property
    def ownership(self) -> Ownership:
        return self._ownership

    @property
    def ref_chain(self) -> RefChain:
        return self._ref_chain

    @property
    def is_view(self) -> bool:
        return self._ownership is Ownership.VIEW

    def view(self) -> 'TensorDescriptor':
        """Descriptor aliasing this one's buffers read-only (back-reference kept)."""
        axes = [
            axis.replace(
                pointer=None if axis.pointer is None else axis.pointer.view(),
                index=None if axis.index is None else axis.index.view(),
                nindex=axis.nindex,
            )
            for axis in self._axes
        ]
        return TensorDescriptor(
            axes, self._values.view(), self._element_type, self._iso_valued,
            self._metadata, self._element_size, check_contents=False,
            _ownership=Ownership.VIEW, _source=self,
        )

    def copy(self) -> 'TensorDescriptor':
        """Descriptor owning copies of every buffer."""
        axes = [
            axis.replace(
                pointer=None if axis.pointer is None else axis.pointer.copy(),
                index=None if axis.index is None else axis.index.copy(),
                nindex=axis.nindex,
            )
            for axis in self._axes
        ]
        return TensorDescriptor(
            axes, self._values.copy(), self._element_type, self._iso_valued,
            self._metadata, self._element_size, check_contents=False,
            _ownership=Ownership.OWNED,
        )

    def with_metadata(self, metadata: Optional[str]) -> 'TensorDescriptor':
        """Same tensor (aliased buffers) with different metadata."""
        result = self.view()
        result._metadata = metadata
        return result

    # =========================================================================
    # Convenience
    # =========================================================================

    @property
    def named_format(self):
        """Conventional name of this layout, or None if it has none."""
        from ._formats import from_generic
        return from_generic(self)

    def iso_value(self) -> Any:
        """The single value of an iso-valued tensor."""
        if not self._iso_valued:
            raise ValueError("tensor is not iso-valued")
        return self._values[0]

    def expanded_values(self) -> np.ndarray:
        """Values with iso storage expanded to one slot per entry."""
        vals = self._values.to_numpy()
        if self._iso_valued:
            return np.repeat(vals, self.nvals)
        return vals

    def __repr__(self) -> str:
        return (f"TensorDescriptor(shape={self.shape}, layout={self.layout_string or 'scalar'}, "
                f"order={self.order}, nvals={self.nvals}, "
                f"element_type={self._element_type.value}, iso={self._iso_valued})")
