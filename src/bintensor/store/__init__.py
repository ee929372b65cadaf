"""bintensor Store Module.

Persistence of tensors through a minimal adapter interface for named,
typed, one-dimensional arrays.

Adapters:
    - StoreAdapter: Abstract interface (put_array / get_array / has_array)
    - MemoryStore: Dict of private copies
    - HDF5Store: h5py file, one dataset per array

Example:
    >>> from bintensor.store import HDF5Store, save_tensor, load_tensor
    >>> with HDF5Store("t.h5", "w") as store:
    ...     save_tensor(store, tensor)
"""

from ._base import (
    StoreAdapter,
    FORMAT_VERSION,
    HEADER_NAME,
    VALUES_NAME,
    pointer_name,
    index_name,
    join_name,
    encode_header,
    decode_header,
    header_of,
    storage_types,
)
from ._memory import MemoryStore
from ._hdf5 import HDF5Store
from ._io import save_tensor, load_tensor, read_header

__all__ = [
    'StoreAdapter',
    'MemoryStore',
    'HDF5Store',
    'save_tensor',
    'load_tensor',
    'read_header',
    'FORMAT_VERSION',
    'HEADER_NAME',
    'VALUES_NAME',
    'pointer_name',
    'index_name',
    'join_name',
    'encode_header',
    'decode_header',
    'header_of',
    'storage_types',
]
