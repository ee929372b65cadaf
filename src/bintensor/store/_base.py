"""
Store Adapter Interface

A store persists flat, named, one-dimensional typed arrays. The tensor
core only ever talks to this interface; where the bytes end up (memory,
an HDF5 file, ...) is the adapter's business.

Dataset names used for a tensor (relative to an optional prefix):

    header                  UTF-8 JSON header, stored as a uint8 array
    values/axis{k}/pointer  pointer of storage level k (Sparse, Hyper)
    values/axis{k}/index    index of storage level k (Hyper, Index)
    values/values           value buffer
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Tuple, Union

import numpy as np

from .._dtypes import ElementType
from ..error import IOFailure
from ..tensor._array import Buffer
from ..tensor._tensor import TensorDescriptor

__all__ = [
    'StoreAdapter',
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

FORMAT_VERSION = "0.1"
HEADER_NAME = "header"
VALUES_NAME = "values/values"

_HEADER_FIELDS = (
    'version', 'rank', 'axes', 'element_type_code', 'element_size',
    'iso_valued', 'nvals', 'pointer_type_code', 'index_type_code', 'metadata',
)
_AXIS_FIELDS = ('order', 'dimension', 'in_order', 'nindex', 'format')


def pointer_name(k: int) -> str:
    return f"values/axis{k}/pointer"


def index_name(k: int) -> str:
    return f"values/axis{k}/index"


def join_name(prefix: str, name: str) -> str:
    """Prefix a dataset name (``''`` leaves it unchanged)."""
    prefix = prefix.strip('/')
    return f"{prefix}/{name}" if prefix else name


# =============================================================================
# Adapter Interface
# =============================================================================

class StoreAdapter(ABC):
    """
    Abstract store of named 1-D typed arrays.

    Implementations must raise ``NotFound`` for missing names,
    ``TypeMismatch`` when an array is read under a different element type
    than it was written with, and ``IOFailure`` for anything the backing
    medium reports.

    Adapters are context managers:

        >>> with MemoryStore() as store:
        ...     save_tensor(store, tensor)
    """

    @abstractmethod
    def put_array(self, name: str, element_type: Union[str, ElementType], buffer: Any) -> None:
        """
        Write (or replace) the array ``name``.

        Raises:
            TypeMismatch: ``buffer`` is a Buffer tagged with another type
        """

    @abstractmethod
    def get_array(self, name: str, element_type: Union[str, ElementType]) -> Buffer:
        """Read the array ``name``, which must have been written as ``element_type``."""

    @abstractmethod
    def has_array(self, name: str) -> bool:
        """True if an array called ``name`` exists."""

    def close(self) -> None:
        """Release resources held by the store."""

    def __enter__(self) -> 'StoreAdapter':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


# =============================================================================
# Header Record
# =============================================================================

def storage_types(tensor: TensorDescriptor) -> Tuple[ElementType, ElementType]:
    """
    Pointer and index types recorded for a tensor.

    A tensor whose levels use different integer types is written with
    int64 for that kind of buffer.
    """
    result = []
    for kind, default in (('pointer', tensor.pointer_type), ('index', tensor.index_type)):
        types = {getattr(a, kind).element_type for a in tensor.axes if getattr(a, kind) is not None}
        if len(types) > 1:
            result.append(ElementType.INT64)
        else:
            result.append(types.pop() if types else default)
    return result[0], result[1]


def header_of(tensor: TensorDescriptor) -> Dict[str, Any]:
    """Header fields describing a tensor."""
    pointer_type, index_type = storage_types(tensor)
    return {
        'version': FORMAT_VERSION,
        'rank': tensor.rank,
        'axes': [
            {
                'order': axis.order,
                'dimension': axis.dimension,
                'in_order': axis.in_order,
                'nindex': axis.nindex,
                'format': axis.format.value,
            }
            for axis in tensor.axes
        ],
        'element_type_code': tensor.element_type.code,
        'element_size': tensor.element_size,
        'iso_valued': tensor.iso_valued,
        'nvals': tensor.nvals,
        'pointer_type_code': pointer_type.code,
        'index_type_code': index_type.code,
        'metadata': tensor.metadata,
    }


def encode_header(header: Dict[str, Any]) -> Buffer:
    """Serialize a header dict to a uint8 buffer of UTF-8 JSON."""
    raw = json.dumps(header, sort_keys=True).encode('utf-8')
    return Buffer.from_numpy(np.frombuffer(raw, dtype=np.uint8), ElementType.UINT8)


def decode_header(buffer: Buffer, name: str = HEADER_NAME) -> Dict[str, Any]:
    """
    Parse a header buffer.

    Raises:
        IOFailure: Not valid UTF-8 JSON, required fields are missing, or
            the axis list is malformed
    """
    try:
        header = json.loads(buffer.to_numpy().tobytes().decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as err:
        raise IOFailure(name, f"header is not valid JSON: {err}") from err
    if not isinstance(header, dict):
        raise IOFailure(name, "header is not a JSON object")

    missing = [f for f in _HEADER_FIELDS if f not in header]
    if missing:
        raise IOFailure(name, f"header is missing fields {missing}")
    if not isinstance(header['axes'], list):
        raise IOFailure(name, f"header axes must be a list, got {type(header['axes']).__name__}")
    if len(header['axes']) != header['rank']:
        raise IOFailure(name, f"header lists {len(header['axes'])} axes for rank {header['rank']}")
    for k, axis in enumerate(header['axes']):
        if not isinstance(axis, dict):
            raise IOFailure(name, f"header axis {k} is not a JSON object")
        missing = [f for f in _AXIS_FIELDS if f not in axis]
        if missing:
            raise IOFailure(name, f"header axis {k} is missing fields {missing}")
    return header
