"""
Interop Helpers

Conversions between TensorDescriptors and the rest of the numeric stack:
dense numpy arrays, coordinate lists and scipy.sparse matrices, plus a
value-for-coordinate equality check.

Example:
    >>> t = from_dense(np.eye(3), "SI")          # CSR
    >>> to_dense(t)
    array([[1., 0., 0.], ...])
    >>> csr = to_scipy(t)                       # scipy.sparse.csr_matrix
"""

from typing import Any, Optional, Sequence, Union

import numpy as np

from .._config import get_config
from .._dtypes import ElementType
from ..error import DimensionMismatch
from ._array import Buffer
from ._axis import AxisDescriptor, AxisFormat
from ._convert import convert, entries
from ._tensor import TensorDescriptor

__all__ = [
    'from_dense',
    'to_dense',
    'from_entries',
    'from_scipy',
    'to_scipy',
    'equivalent',
]


# =============================================================================
# Dense Arrays
# =============================================================================

def from_dense(
    array: Any,
    formats: Optional[Union[str, Sequence[Any]]] = None,
    order: Optional[Sequence[int]] = None,
    *,
    element_type: Optional[Union[str, ElementType]] = None,
    metadata: Optional[str] = None,
) -> TensorDescriptor:
    """
    Build a tensor from a dense array.

    Every element becomes an entry (zeros included). Without ``formats``
    the result is all-Full in ``order``; otherwise it is converted to the
    requested layout.

    Args:
        array: Array-like of any rank
        formats: Target formats (default all Full)
        order: Logical axis per storage level (default identity)
        element_type: Value type (inferred from the array if omitted)
        metadata: Optional free-form string
    """
    arr = np.asarray(array)
    rank = arr.ndim
    order = tuple(range(rank)) if order is None else tuple(int(o) for o in order)
    if sorted(order) != list(range(rank)):
        raise ValueError(f"order {order} is not a permutation of {rank} axes")

    axes = [AxisDescriptor(order=o, dimension=arr.shape[o]) for o in order]
    values = np.ascontiguousarray(np.transpose(arr, order)).reshape(-1)
    full = TensorDescriptor(axes, Buffer.from_numpy(values, element_type), metadata=metadata)
    if formats is None:
        return full
    return convert(full, formats, order)


def to_dense(tensor: TensorDescriptor, fill_value: Any = None) -> np.ndarray:
    """
    Materialise a tensor as a dense numpy array of its logical shape.

    Raises:
        DuplicateCoordinate: The tensor stores a coordinate twice
    """
    rank = tensor.rank
    identity = tuple(range(rank))
    full = convert(tensor, (AxisFormat.FULL,) * rank, identity, fill_value=fill_value)
    return full.expanded_values().reshape(tensor.shape).copy()


# =============================================================================
# Coordinate Lists
# =============================================================================

def from_entries(
    coords: Any,
    values: Any,
    shape: Sequence[int],
    formats: Optional[Union[str, Sequence[Any]]] = None,
    order: Optional[Sequence[int]] = None,
    *,
    iso_valued: bool = False,
    element_type: Optional[Union[str, ElementType]] = None,
    metadata: Optional[str] = None,
) -> TensorDescriptor:
    """
    Build a tensor from a coordinate list.

    Without ``formats`` the result is an unsorted COO tensor (every Index
    axis marked ``in_order=False``); otherwise the entries are sorted into
    the requested layout.

    Args:
        coords: Integer array of shape ``(n, rank)`` in logical numbering
        values: n values, or a single value with ``iso_valued=True``
        shape: Logical shape
        formats: Target formats (default COO)
        order: Logical axis per storage level (default identity)
    """
    shape = tuple(int(d) for d in shape)
    rank = len(shape)
    coords = np.asarray(coords, dtype=np.int64)
    if coords.ndim == 1 and rank == 1:
        coords = coords.reshape(-1, 1)
    if coords.ndim != 2 or coords.shape[1] != rank:
        raise ValueError(f"coords must have shape (n, {rank}), got {coords.shape}")

    index_type = get_config().index.index_type
    axes = [
        AxisDescriptor(
            order=k, dimension=shape[k], in_order=False,
            index=Buffer.from_numpy(coords[:, k], index_type),
        )
        for k in range(rank)
    ]
    coo = TensorDescriptor(
        axes, Buffer.from_numpy(values, element_type),
        iso_valued=iso_valued, metadata=metadata,
    )
    if formats is None and order is None:
        return coo
    if formats is None:
        formats = (AxisFormat.INDEX,) * rank
    return convert(coo, formats, order)


# =============================================================================
# scipy.sparse
# =============================================================================

def from_scipy(mat: Any, copy: bool = True) -> TensorDescriptor:
    """
    Create a tensor from a scipy.sparse matrix.

    CSR maps to (Sparse, Index) in row order, CSC to (Sparse, Index) in
    column order, COO to (Index, Index); any other format goes through CSR.

    Args:
        mat: scipy sparse matrix or array
        copy: Copy the buffers (False borrows them where dtypes allow)

    Example:
        >>> import scipy.sparse as sp
        >>> t = from_scipy(sp.random(100, 50, density=0.1, format='csr'))
        >>> t.named_format
        NamedFormat.CSR
    """
    try:
        import scipy.sparse as sp
    except ImportError:
        raise ImportError("scipy required for from_scipy()")

    if not sp.issparse(mat):
        raise TypeError(f"Expected scipy sparse matrix, got {type(mat).__name__}")
    m, n = mat.shape

    if mat.format == 'coo':
        axes = [
            AxisDescriptor(0, m, in_order=False, index=Buffer.from_numpy(mat.row, copy=copy)),
            AxisDescriptor(1, n, in_order=False, index=Buffer.from_numpy(mat.col, copy=copy)),
        ]
        return TensorDescriptor(axes, Buffer.from_numpy(mat.data, copy=copy))

    if mat.format not in ('csr', 'csc'):
        mat = mat.tocsr()
        copy = False
    outer, inner = (0, 1) if mat.format == 'csr' else (1, 0)
    in_order = bool(mat.has_sorted_indices)
    axes = [
        AxisDescriptor(outer, mat.shape[outer], pointer=Buffer.from_numpy(mat.indptr, copy=copy)),
        AxisDescriptor(inner, mat.shape[inner], in_order=in_order,
                       index=Buffer.from_numpy(mat.indices, copy=copy)),
    ]
    return TensorDescriptor(axes, Buffer.from_numpy(mat.data, copy=copy))


def to_scipy(tensor: TensorDescriptor, format: str = 'csr') -> Any:
    """
    Convert a rank-2 tensor to a scipy.sparse matrix.

    Args:
        tensor: Rank-2 descriptor in any layout
        format: 'csr', 'csc' or 'coo'

    Returns:
        scipy.sparse matrix holding every stored entry (explicit zeros of
        dense layouts included)
    """
    try:
        import scipy.sparse as sp
    except ImportError:
        raise ImportError("scipy required for to_scipy()")

    if tensor.rank != 2:
        raise ValueError(f"to_scipy() needs a rank-2 tensor, got rank {tensor.rank}")
    shape = tensor.shape

    if format == 'coo':
        coords, values = entries(tensor)
        return sp.coo_matrix((values, (coords[:, 0], coords[:, 1])), shape=shape)
    if format not in ('csr', 'csc'):
        raise ValueError(f"Unsupported scipy format: {format!r}")

    order = (0, 1) if format == 'csr' else (1, 0)
    target = convert(tensor, (AxisFormat.SPARSE, AxisFormat.INDEX), order)
    data = target.expanded_values()
    indices = target.axes[1].index.to_numpy()
    indptr = target.axes[0].pointer.to_numpy()
    cls = sp.csr_matrix if format == 'csr' else sp.csc_matrix
    return cls((data.copy(), indices.copy(), indptr.copy()), shape=shape)


# =============================================================================
# Comparison
# =============================================================================

def equivalent(a: TensorDescriptor, b: TensorDescriptor) -> bool:
    """
    True if two tensors hold the same values at the same coordinates,
    whatever their layouts.

    Both entry lists are brought to logical row-major order before being
    compared, so repeated coordinates count as a multiset.

    Raises:
        DimensionMismatch: The logical shapes differ
    """
    if a.shape != b.shape:
        raise DimensionMismatch(a.shape, b.shape)
    ca, va = _canonical_entries(a)
    cb, vb = _canonical_entries(b)
    return (
        ca.shape == cb.shape
        and np.array_equal(ca, cb)
        and np.array_equal(va, vb)
    )


def _canonical_entries(tensor: TensorDescriptor):
    coords, values = entries(tensor)
    if tensor.rank == 0 or len(coords) < 2:
        return coords, values
    keys = [values] if values.dtype.kind in 'biuf' else []
    perm = np.lexsort(tuple(keys) + tuple(coords[:, k] for k in reversed(range(tensor.rank))))
    return coords[perm], values[perm]
