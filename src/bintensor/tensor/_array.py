"""
Typed Buffer Container

A one-dimensional contiguous numpy array tagged with an ElementType. The
tag is the authority: a buffer is only ever reinterpreted under its own
tag, and changing the tag requires an explicit ``cast``.

Buffers handed to a TensorDescriptor are frozen (read-only), which is
what makes descriptors structurally immutable.
"""

from typing import Any, Iterator, List, Optional, Union

import numpy as np

from .._dtypes import ElementType, normalize_element_type, to_numpy_dtype
from ._ownership import Ownership, RefChain

__all__ = ['Buffer', 'as_buffer']


class Buffer:
    """
    Contiguous 1-D array with an element type tag.

    Attributes:
        element_type (ElementType): Tag describing the elements
        size (int): Number of elements
        itemsize (int): Bytes per element
        nbytes (int): Total bytes
        ownership (Ownership): OWNED, BORROWED or VIEW

    Example:
        >>> buf = Buffer.from_list([0, 2, 3], ElementType.INT64)
        >>> len(buf), buf.element_type
        (3, ElementType.INT64)
        >>> alias = buf.view()          # read-only alias, keeps buf alive
    """

    __slots__ = ('_data', '_element_type', '_ownership', '_ref_chain')

    def __init__(
        self,
        data: np.ndarray,
        element_type: ElementType,
        ownership: Ownership = Ownership.OWNED,
        _source: Optional[Any] = None,
    ):
        """Wrap an already-checked numpy array (use the from_* constructors)."""
        self._data = data
        self._element_type = element_type
        self._ownership = ownership
        self._ref_chain = RefChain()
        if _source is not None:
            self._ref_chain.add(_source)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_numpy(
        cls,
        array: Any,
        element_type: Optional[Union[str, ElementType]] = None,
        copy: bool = True,
        element_size: Optional[int] = None,
    ) -> 'Buffer':
        """
        Create a buffer from a numpy array (or anything np.asarray accepts).

        Args:
            array: One-dimensional data (a 0-d array becomes length 1)
            element_type: Tag; inferred from the dtype when omitted
            copy: Copy the data (OWNED). With copy=False the array is
                wrapped as-is (BORROWED) and its dtype must already match
                the tag exactly.
            element_size: Byte size, required for user-defined types

        Raises:
            ValueError: Data is not one-dimensional, or bit-type values
                do not fit their bit width
            TypeError: copy=False and the dtype does not match the tag
        """
        arr = np.asarray(array)
        if arr.ndim == 0:
            arr = arr.reshape(1)
        if arr.ndim != 1:
            raise ValueError(f"Buffer data must be one-dimensional, got shape {arr.shape}")

        if element_type is None:
            et = normalize_element_type(arr.dtype)
            if et is ElementType.USER and element_size is None:
                element_size = arr.dtype.itemsize
        else:
            et = normalize_element_type(element_type)
        target = to_numpy_dtype(et, element_size)

        if copy:
            if arr.dtype != target:
                arr = arr.astype(target)
            else:
                arr = arr.copy()
            ownership = Ownership.OWNED
        else:
            if arr.dtype != target:
                raise TypeError(
                    f"Cannot borrow {arr.dtype} data as {et.value} "
                    f"(storage dtype {target}); pass copy=True to convert"
                )
            arr = np.ascontiguousarray(arr)
            ownership = Ownership.BORROWED

        if et.is_bit and arr.size and int(arr.max()) >= (1 << et.bits):
            raise ValueError(f"{et.value} buffer holds values >= {1 << et.bits}")
        return cls(arr, et, ownership)

    @classmethod
    def from_list(cls, values: List[Any], element_type: Union[str, ElementType]) -> 'Buffer':
        """Create buffer from a Python list."""
        et = normalize_element_type(element_type)
        if et is ElementType.USER:
            raise TypeError("user-defined buffers must be built with from_numpy")
        return cls.from_numpy(np.array(values, dtype=et.numpy_dtype), et)

    @classmethod
    def zeros(cls, size: int, element_type: Union[str, ElementType], element_size: Optional[int] = None) -> 'Buffer':
        """Create zero-initialized buffer."""
        et = normalize_element_type(element_type)
        return cls(np.zeros(size, dtype=to_numpy_dtype(et, element_size)), et)

    @classmethod
    def empty(cls, size: int, element_type: Union[str, ElementType], element_size: Optional[int] = None) -> 'Buffer':
        """Create uninitialized buffer."""
        et = normalize_element_type(element_type)
        return cls(np.empty(size, dtype=to_numpy_dtype(et, element_size)), et)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def element_type(self) -> ElementType:
        return self._element_type

    @property
    def size(self) -> int:
        return int(self._data.shape[0])

    @property
    def itemsize(self) -> int:
        return int(self._data.dtype.itemsize)

    @property
    def nbytes(self) -> int:
        return int(self._data.nbytes)

    @property
    def ownership(self) -> Ownership:
        return self._ownership

    @property
    def ref_chain(self) -> RefChain:
        return self._ref_chain

    @property
    def readonly(self) -> bool:
        return not self._data.flags.writeable

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def to_numpy(self, copy: bool = False) -> np.ndarray:
        """Return the underlying array (read-only if frozen) or a copy."""
        return self._data.copy() if copy else self._data

    def tolist(self) -> List[Any]:
        return self._data.tolist()

    def freeze(self) -> 'Buffer':
        """Make the buffer read-only (the caller's array keeps its own flags)."""
        if self._data.flags.writeable:
            frozen = self._data.view()
            frozen.flags.writeable = False
            self._data = frozen
        return self

    def view(self) -> 'Buffer':
        """Read-only alias of this buffer that keeps it alive."""
        alias = self._data.view()
        alias.flags.writeable = False
        return Buffer(alias, self._element_type, Ownership.VIEW, _source=self)

    def copy(self) -> 'Buffer':
        """Writable owned copy."""
        return Buffer(self._data.copy(), self._element_type)

    def as_type(self, element_type: Union[str, ElementType]) -> 'Buffer':
        """
        Return this buffer under the requested tag.

        Raises:
            TypeError: Tag differs (use ``cast`` to convert)
        """
        et = normalize_element_type(element_type)
        if et is not self._element_type:
            raise TypeError(
                f"Buffer holds {self._element_type.value}, not {et.value}"
            )
        return self

    def cast(self, element_type: Union[str, ElementType]) -> 'Buffer':
        """Convert to a new owned buffer of another element type."""
        et = normalize_element_type(element_type)
        if et is self._element_type:
            return self.copy()
        return Buffer.from_numpy(self._data, et, copy=True)

    def equals(self, other: 'Buffer') -> bool:
        """Same tag, same length, same elements."""
        return (
            isinstance(other, Buffer)
            and other._element_type is self._element_type
            and np.array_equal(self._data, other._data)
        )

    # -------------------------------------------------------------------------
    # Python Protocols
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return self.size

    def __getitem__(self, key):
        item = self._data[key]
        if isinstance(item, np.generic):
            return item.item()
        return item

    def __iter__(self) -> Iterator[Any]:
        return iter(self._data.tolist())

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._data
        return self._data.astype(dtype)

    def __repr__(self) -> str:
        return (f"Buffer(size={self.size}, element_type={self._element_type.value}, "
                f"ownership={self._ownership.value})")


def as_buffer(
    value: Any,
    element_type: Optional[Union[str, ElementType]] = None,
    element_size: Optional[int] = None,
) -> Optional[Buffer]:
    """
    Coerce value to a Buffer.

    Buffers pass through (tag-checked when element_type is given); None
    stays None; anything else is copied via ``Buffer.from_numpy``.
    """
    if value is None:
        return None
    if isinstance(value, Buffer):
        if element_type is not None:
            return value.as_type(element_type)
        return value
    return Buffer.from_numpy(value, element_type, copy=True, element_size=element_size)
