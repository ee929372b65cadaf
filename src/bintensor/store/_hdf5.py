"""
HDF5 Store Adapter

Each array is a one-dimensional h5py dataset tagged with an
``element_type_code`` attribute (and ``element_size`` for user types).
Names containing ``/`` create intermediate groups, so a saved tensor
appears as a ``values`` group next to the ``header`` dataset.
"""

import logging
from typing import Any, Optional, Union

from .._dtypes import ElementType, normalize_element_type
from ..error import IOFailure, NotFound, TypeMismatch
from ..tensor._array import Buffer, as_buffer
from ._base import StoreAdapter

logger = logging.getLogger("bintensor.store")

__all__ = ['HDF5Store']


class HDF5Store(StoreAdapter):
    """
    Store backed by an HDF5 file.

    Args:
        path: File path
        mode: h5py file mode ('r', 'r+', 'w', 'w-', 'a')

    Example:
        >>> with HDF5Store("matrix.h5", "w") as store:
        ...     save_tensor(store, csr)
        >>> with HDF5Store("matrix.h5", "r") as store:
        ...     csr = load_tensor(store)
    """

    def __init__(self, path: str, mode: str = 'a'):
        try:
            import h5py
        except ImportError:
            raise ImportError("h5py required for HDF5Store")
        self.path = str(path)
        self.mode = mode
        try:
            self._handle = h5py.File(self.path, mode)
        except OSError as err:
            raise IOFailure(self.path, str(err)) from err

    @property
    def closed(self) -> bool:
        return self._handle is None

    def _file(self, name: str):
        if self._handle is None:
            raise IOFailure(name, "store is closed")
        return self._handle

    def put_array(self, name: str, element_type: Union[str, ElementType], buffer: Any) -> None:
        f = self._file(name)
        et = normalize_element_type(element_type)
        if isinstance(buffer, Buffer) and buffer.element_type is not et:
            raise TypeMismatch(name, et, buffer.element_type)
        buf = as_buffer(buffer, et)
        try:
            if name in f:
                del f[name]
            ds = f.create_dataset(name, data=buf.to_numpy())
            ds.attrs['element_type_code'] = et.code
            if et is ElementType.USER:
                ds.attrs['element_size'] = buf.itemsize
        except (OSError, ValueError, TypeError) as err:
            raise IOFailure(name, str(err)) from err
        logger.debug("wrote %s (%s, %d elements) to %s", name, et.value, len(buf), self.path)

    def get_array(self, name: str, element_type: Union[str, ElementType]) -> Buffer:
        f = self._file(name)
        et = normalize_element_type(element_type)
        if name not in f:
            raise NotFound(name)
        try:
            ds = f[name]
            data = ds[()]
            code = ds.attrs.get('element_type_code')
            element_size: Optional[int] = ds.attrs.get('element_size')
        except (OSError, KeyError) as err:
            raise IOFailure(name, str(err)) from err

        stored = ElementType.from_code(int(code)) if code is not None else normalize_element_type(data.dtype)
        if stored is not et:
            raise TypeMismatch(name, et, stored)
        if data.ndim != 1:
            raise IOFailure(name, f"dataset has shape {data.shape}, expected one dimension")
        size = int(element_size) if element_size is not None else None
        return Buffer.from_numpy(data, et, element_size=size)

    def has_array(self, name: str) -> bool:
        f = self._file(name)
        return name in f

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __repr__(self) -> str:
        state = "closed" if self.closed else self.mode
        return f"HDF5Store({self.path!r}, {state})"
