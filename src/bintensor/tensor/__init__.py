"""bintensor Tensor Module.

The axis-format tensor model: per-axis storage descriptors, the layout
grammar, named layouts and format conversion.

Model:

    TensorDescriptor
    ├── axes: AxisDescriptor per storage level (outermost first)
    │   ├── order, dimension, in_order
    │   ├── pointer: Buffer | None      # Sparse, Hyper
    │   └── index:   Buffer | None      # Hyper, Index
    ├── values: Buffer (length nvals, or 1 when iso-valued)
    └── element_type, metadata

    Format of an axis:   pointer  index
        FULL    (F)         -       -
        SPARSE  (S)         x       -
        HYPER   (H)         x       x
        INDEX   (I)         -       x

Quick Start:
    >>> from bintensor.tensor import from_dense, convert_to, NamedFormat
    >>> t = from_dense([[0, 5, 0], [0, 0, 0], [7, 0, 9]])
    >>> coo = convert_to(t, NamedFormat.COO)
    >>> csr = convert_to(coo, NamedFormat.CSR)
    >>> csr.axes[0].pointer.tolist()
    [0, 1, 1, 3]

Key Functions:
    - check_format_sequence / is_legal_sequence: Layout grammar
    - derive_sizes / validate_axes: Buffer size derivation and checks
    - layout_of / to_generic / from_generic: Named layouts
    - convert / convert_to / entries / to_bitmap / from_bitmap: Conversion
    - from_dense / to_dense / from_entries / from_scipy / to_scipy: Interop
"""

# Element types
from .._dtypes import (
    ElementType,
    normalize_element_type,
    element_itemsize,
    bit1, bit2, bit4, bool_,
    uint8, uint16, uint32, uint64,
    int8, int16, int32, int64,
    float32, float64, complex64, complex128,
    user,
)

# Buffers and ownership
from ._ownership import Ownership, RefChain
from ._array import Buffer, as_buffer

# Axes and grammar
from ._axis import (
    AxisFormat,
    AxisDescriptor,
    classify,
    parse_formats,
    required_pointer_length,
    required_index_length,
)
from ._grammar import (
    GrammarState,
    LevelSizes,
    SizePlan,
    check_format_sequence,
    is_legal_sequence,
    derive_sizes,
    validate_axes,
    validate_values,
)

# Descriptor
from ._tensor import TensorDescriptor

# Named layouts
from ._formats import (
    NamedFormat,
    Layout,
    BitmapPair,
    RANK3_REFERENCE_LAYOUTS,
    layout_of,
    to_generic,
    from_generic,
    buffer_keys,
)

# Conversion
from ._convert import (
    convert,
    convert_to,
    convert_like,
    entries,
    to_bitmap,
    from_bitmap,
)

# Interop
from ._ops import (
    from_dense,
    to_dense,
    from_entries,
    from_scipy,
    to_scipy,
    equivalent,
)

__all__ = [
    # Element types
    'ElementType', 'normalize_element_type', 'element_itemsize',
    'bit1', 'bit2', 'bit4', 'bool_',
    'uint8', 'uint16', 'uint32', 'uint64',
    'int8', 'int16', 'int32', 'int64',
    'float32', 'float64', 'complex64', 'complex128',
    'user',

    # Buffers
    'Ownership', 'RefChain', 'Buffer', 'as_buffer',

    # Axes
    'AxisFormat', 'AxisDescriptor', 'classify', 'parse_formats',
    'required_pointer_length', 'required_index_length',

    # Grammar
    'GrammarState', 'LevelSizes', 'SizePlan',
    'check_format_sequence', 'is_legal_sequence',
    'derive_sizes', 'validate_axes', 'validate_values',

    # Descriptor
    'TensorDescriptor',

    # Named layouts
    'NamedFormat', 'Layout', 'BitmapPair', 'RANK3_REFERENCE_LAYOUTS',
    'layout_of', 'to_generic', 'from_generic', 'buffer_keys',

    # Conversion
    'convert', 'convert_to', 'convert_like', 'entries',
    'to_bitmap', 'from_bitmap',

    # Interop
    'from_dense', 'to_dense', 'from_entries',
    'from_scipy', 'to_scipy', 'equivalent',
]
