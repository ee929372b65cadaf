"""In-memory store adapter."""

from typing import Any, Dict, List, Union

from .._dtypes import ElementType, normalize_element_type
from ..error import IOFailure, NotFound, TypeMismatch
from ..tensor._array import Buffer, as_buffer
from ._base import StoreAdapter

__all__ = ['MemoryStore']


class MemoryStore(StoreAdapter):
    """
    Store keeping private copies of every array in a dict.

    Example:
        >>> store = MemoryStore()
        >>> store.put_array('a', 'int64', [1, 2, 3])
        >>> store.get_array('a', 'int64').tolist()
        [1, 2, 3]
    """

    def __init__(self):
        self._arrays: Dict[str, Buffer] = {}
        self._closed = False

    def _check_open(self, name: str) -> None:
        if self._closed:
            raise IOFailure(name, "store is closed")

    def put_array(self, name: str, element_type: Union[str, ElementType], buffer: Any) -> None:
        self._check_open(name)
        et = normalize_element_type(element_type)
        if isinstance(buffer, Buffer):
            if buffer.element_type is not et:
                raise TypeMismatch(name, et, buffer.element_type)
            buf = buffer.copy()
        else:
            buf = as_buffer(buffer, et)
        self._arrays[name] = buf

    def get_array(self, name: str, element_type: Union[str, ElementType]) -> Buffer:
        self._check_open(name)
        et = normalize_element_type(element_type)
        try:
            stored = self._arrays[name]
        except KeyError:
            raise NotFound(name) from None
        if stored.element_type is not et:
            raise TypeMismatch(name, et, stored.element_type)
        return stored.copy()

    def has_array(self, name: str) -> bool:
        self._check_open(name)
        return name in self._arrays

    def names(self) -> List[str]:
        """Names of all stored arrays, sorted."""
        return sorted(self._arrays)

    def close(self) -> None:
        self._closed = True

    def __len__(self) -> int:
        return len(self._arrays)

    def __repr__(self) -> str:
        return f"MemoryStore(arrays={len(self._arrays)}, closed={self._closed})"
