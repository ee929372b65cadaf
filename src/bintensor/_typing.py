"""
bintensor Type Definitions and Protocols.

Type aliases and protocols for the inputs bintensor accepts where a
tensor is expected:

    - TensorDescriptor
    - scipy.sparse matrices and arrays (CSR, CSC, COO, ...)
    - numpy arrays and nested Python sequences (treated as dense)

Example:
    >>> from bintensor._typing import TensorInput, ensure_tensor
    >>>
    >>> def my_func(data: TensorInput):
    ...     tensor = ensure_tensor(data)
    ...     return tensor.nvals
"""

from __future__ import annotations

from typing import (
    TYPE_CHECKING,
    Any,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

if TYPE_CHECKING:
    import numpy as np
    from bintensor.tensor import TensorDescriptor


# =============================================================================
# Protocol Definitions
# =============================================================================

@runtime_checkable
class SparseLike(Protocol):
    """Protocol for scipy-style compressed matrices.

    Objects must provide:
    - data: Stored values
    - indices: Column (CSR) or row (CSC) indices
    - indptr: Row (CSR) or column (CSC) pointers
    - shape: (rows, cols)
    """

    @property
    def data(self) -> Any:
        ...

    @property
    def indices(self) -> Any:
        ...

    @property
    def indptr(self) -> Any:
        ...

    @property
    def shape(self) -> Tuple[int, int]:
        ...


@runtime_checkable
class TensorLike(Protocol):
    """Protocol for tensor descriptors (anything with axes and values)."""

    @property
    def axes(self) -> Tuple[Any, ...]:
        ...

    @property
    def values(self) -> Any:
        ...

    @property
    def shape(self) -> Tuple[int, ...]:
        ...


# =============================================================================
# Type Aliases
# =============================================================================

DenseInput = Union["np.ndarray", Sequence[Any]]
TensorInput = Union["TensorDescriptor", SparseLike, DenseInput]
FormatSpec = Union[str, Sequence[Any]]


# =============================================================================
# Type Checking Utilities
# =============================================================================

def is_tensor_like(obj: Any) -> bool:
    """Check if object is a tensor descriptor."""
    from bintensor.tensor import TensorDescriptor
    return isinstance(obj, TensorDescriptor)


def is_scipy_sparse(obj: Any) -> bool:
    """Check if object is a scipy sparse matrix or array."""
    try:
        import scipy.sparse as sp
    except ImportError:
        return False
    return sp.issparse(obj)


def ensure_tensor(obj: TensorInput, copy: bool = False) -> "TensorDescriptor":
    """
    Coerce supported inputs to a TensorDescriptor.

    Args:
        obj: TensorDescriptor, scipy sparse matrix, or dense array-like
        copy: Copy a TensorDescriptor input (other inputs are always
            converted into new buffers)

    Raises:
        TypeError: Unsupported input type
    """
    from bintensor.tensor import TensorDescriptor, from_dense, from_scipy

    if isinstance(obj, TensorDescriptor):
        return obj.copy() if copy else obj
    if is_scipy_sparse(obj):
        return from_scipy(obj, copy=True)
    if isinstance(obj, (str, bytes, dict)) or obj is None:
        raise TypeError(f"Cannot interpret {type(obj).__name__} as a tensor")
    return from_dense(obj)


__all__ = [
    'SparseLike',
    'TensorLike',
    'DenseInput',
    'TensorInput',
    'FormatSpec',
    'is_tensor_like',
    'is_scipy_sparse',
    'ensure_tensor',
]
