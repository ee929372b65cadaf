"""
bintensor - Axis-Format Sparse Tensor Interchange

A self-describing representation for sparse and dense tensors of any
rank, built from one storage descriptor per axis:

- Four axis formats (Full, Sparse, Hyper, Index) composed by a layout
  grammar, so every common layout (COO, CSR, CSC, DCSR, DCSC, dense,
  ...) is one point in a single design space
- Size derivation and validation of every pointer/index buffer
- Lossless conversion between any two legal layouts
- Persistence through a minimal named-array store (memory, HDF5)

Modules:
- tensor: Descriptors, grammar, named layouts, conversion, interop
- store: Store adapters and save/load
- error: Error taxonomy and codes

Architecture:
    ┌──────────────────────────────────────────────┐
    │  Named layouts (CSR, COO, ...)  ⇄  Layout    │
    ├──────────────────────────────────────────────┤
    │  TensorDescriptor: axes + values + type      │
    │  Grammar: F/S/H/I automaton, size plan       │
    ├──────────────────────────────────────────────┤
    │  Converter  │  StoreAdapter (Memory, HDF5)   │
    └──────────────────────────────────────────────┘

Example:
    >>> import bintensor as bt
    >>> coo = bt.to_generic('coo', (3, 3), {
    ...     'rowind': [0, 2, 2], 'colind': [1, 0, 2], 'values': [5, 7, 9]})
    >>> csr = bt.convert_to(coo, 'csr')
    >>> csr.axes[0].pointer.tolist()
    [0, 1, 1, 3]
    >>>
    >>> with bt.HDF5Store("m.h5", "w") as store:
    ...     bt.save_tensor(store, csr)
"""

__version__ = '0.1.0'

# Import main modules
from . import error
from . import tensor
from . import store

# Configuration
from ._config import config, get_config, set_index_types, set_check_contents

# Re-export common types
from ._dtypes import ElementType
from .error import (
    BinTensorError,
    StructuralError,
    IllegalFormatSequence,
    SizeMismatch,
    OrderingViolation,
    ResolutionError,
    UnsupportedLayout,
    ConversionError,
    RankMismatch,
    DimensionMismatch,
    IllegalTargetFormat,
    ConversionOrderingViolation,
    DuplicateCoordinate,
    StoreError,
    NotFound,
    TypeMismatch,
    IOFailure,
)
from .tensor import (
    # Core classes
    Buffer,
    Ownership,
    AxisFormat,
    AxisDescriptor,
    TensorDescriptor,
    NamedFormat,
    Layout,
    BitmapPair,

    # Grammar
    check_format_sequence,
    is_legal_sequence,
    derive_sizes,

    # Named layouts
    layout_of,
    to_generic,
    from_generic,

    # Conversion
    convert,
    convert_to,
    convert_like,
    entries,
    to_bitmap,
    from_bitmap,

    # Interop
    from_dense,
    to_dense,
    from_entries,
    from_scipy,
    to_scipy,
    equivalent,
)
from .store import (
    StoreAdapter,
    MemoryStore,
    HDF5Store,
    save_tensor,
    load_tensor,
)

__all__ = [
    # Version
    '__version__',

    # Modules
    'error',
    'tensor',
    'store',

    # Configuration
    'config',
    'get_config',
    'set_index_types',
    'set_check_contents',

    # Core classes
    'ElementType',
    'Buffer',
    'Ownership',
    'AxisFormat',
    'AxisDescriptor',
    'TensorDescriptor',
    'NamedFormat',
    'Layout',
    'BitmapPair',

    # Errors
    'BinTensorError',
    'StructuralError',
    'IllegalFormatSequence',
    'SizeMismatch',
    'OrderingViolation',
    'ResolutionError',
    'UnsupportedLayout',
    'ConversionError',
    'RankMismatch',
    'DimensionMismatch',
    'IllegalTargetFormat',
    'ConversionOrderingViolation',
    'DuplicateCoordinate',
    'StoreError',
    'NotFound',
    'TypeMismatch',
    'IOFailure',

    # Grammar
    'check_format_sequence',
    'is_legal_sequence',
    'derive_sizes',

    # Named layouts
    'layout_of',
    'to_generic',
    'from_generic',

    # Conversion
    'convert',
    'convert_to',
    'convert_like',
    'entries',
    'to_bitmap',
    'from_bitmap',

    # Interop
    'from_dense',
    'to_dense',
    'from_entries',
    'from_scipy',
    'to_scipy',
    'equivalent',

    # Store
    'StoreAdapter',
    'MemoryStore',
    'HDF5Store',
    'save_tensor',
    'load_tensor',
]
