"""
Tensor Save/Load

Writes a TensorDescriptor through a StoreAdapter as a header record plus
one array per pointer, index and value buffer, and reads it back.
"""

import logging
from typing import Optional

from .._dtypes import ElementType
from .._typing import TensorInput, ensure_tensor
from ..error import IOFailure
from ..tensor._array import Buffer
from ..tensor._axis import AxisDescriptor, AxisFormat
from ..tensor._tensor import TensorDescriptor
from ._base import (
    HEADER_NAME,
    VALUES_NAME,
    StoreAdapter,
    decode_header,
    encode_header,
    header_of,
    index_name,
    join_name,
    pointer_name,
    storage_types,
)

logger = logging.getLogger("bintensor.store")

__all__ = ['save_tensor', 'load_tensor', 'read_header']


def _as_stored(buffer: Buffer, element_type: ElementType) -> Buffer:
    return buffer if buffer.element_type is element_type else buffer.cast(element_type)


def save_tensor(store: StoreAdapter, tensor: TensorInput, prefix: str = "") -> None:
    """
    Write a tensor to a store.

    Args:
        store: Target adapter
        tensor: Tensor to write (scipy matrices and dense arrays are
            converted first)
        prefix: Group prefix for every dataset name (e.g. ``"layers/raw"``)

    Raises:
        StoreError: Reported by the adapter
    """
    tensor = ensure_tensor(tensor)
    pointer_type, index_type = storage_types(tensor)
    for k, axis in enumerate(tensor.axes):
        if axis.pointer is not None:
            store.put_array(join_name(prefix, pointer_name(k)), pointer_type, _as_stored(axis.pointer, pointer_type))
        if axis.index is not None:
            store.put_array(join_name(prefix, index_name(k)), index_type, _as_stored(axis.index, index_type))
    store.put_array(join_name(prefix, VALUES_NAME), tensor.element_type, tensor.values)
    # header last: a tensor without one is not considered written
    header = encode_header(header_of(tensor))
    store.put_array(join_name(prefix, HEADER_NAME), ElementType.UINT8, header)
    logger.debug(
        "saved %s tensor %s (nvals=%d) at %r",
        tensor.layout_string or 'scalar', tensor.shape, tensor.nvals, prefix or '/',
    )


def read_header(store: StoreAdapter, prefix: str = "") -> dict:
    """Read and parse the header record of a stored tensor."""
    name = join_name(prefix, HEADER_NAME)
    return decode_header(store.get_array(name, ElementType.UINT8), name)


def load_tensor(
    store: StoreAdapter,
    prefix: str = "",
    check_contents: Optional[bool] = None,
) -> TensorDescriptor:
    """
    Read a tensor from a store.

    Args:
        store: Source adapter
        prefix: Group prefix used when saving
        check_contents: Scan buffer contents (default from configuration)

    Raises:
        NotFound: Header or a required array is missing
        TypeMismatch: An array was stored with a different element type
        IOFailure: The header is malformed (bad JSON, wrong field types,
            unknown type codes)
        StructuralError: The stored buffers do not form a valid tensor
    """
    header = read_header(store, prefix)
    header_name = join_name(prefix, HEADER_NAME)
    try:
        element_type = ElementType.from_code(header['element_type_code'])
        pointer_type = ElementType.from_code(header['pointer_type_code'])
        index_type = ElementType.from_code(header['index_type_code'])
        formats = [AxisFormat(a['format']) for a in header['axes']]
        axis_fields = [
            (int(a['order']), int(a['dimension']), bool(a['in_order']), int(a['nindex']))
            for a in header['axes']
        ]
        element_size = None if header['element_size'] is None else int(header['element_size'])
        nvals = int(header['nvals'])
        iso_valued = bool(header['iso_valued'])
    except (TypeError, ValueError) as err:
        raise IOFailure(header_name, f"malformed header field: {err}") from err
    metadata = header['metadata']
    if metadata is not None and not isinstance(metadata, str):
        raise IOFailure(header_name, f"metadata must be a string, got {type(metadata).__name__}")

    axes = []
    for k, (fields, fmt) in enumerate(zip(axis_fields, formats)):
        order, dimension, in_order, nindex = fields
        pointer = index = None
        if fmt.has_pointer:
            pointer = store.get_array(join_name(prefix, pointer_name(k)), pointer_type)
        if fmt.has_index:
            index = store.get_array(join_name(prefix, index_name(k)), index_type)
        try:
            axis = AxisDescriptor(
                order=order, dimension=dimension, in_order=in_order,
                pointer=pointer, index=index, nindex=nindex,
            )
        except ValueError as err:
            raise IOFailure(header_name, f"axis {k}: {err}") from err
        if axis.format is not fmt:
            raise IOFailure(header_name, f"axis {k} is recorded as {fmt.value}, buffers describe {axis.format.value}")
        axes.append(axis)

    values = store.get_array(join_name(prefix, VALUES_NAME), element_type)
    tensor = TensorDescriptor(
        axes, values,
        element_type=element_type,
        iso_valued=iso_valued,
        metadata=metadata,
        element_size=element_size,
        nvals=nvals,
        check_contents=check_contents,
    )
    logger.debug(
        "loaded %s tensor %s (nvals=%d) from %r",
        tensor.layout_string or 'scalar', tensor.shape, tensor.nvals, prefix or '/',
    )
    return tensor
