"""
Named Formats

Maps the conventional layout names onto explicit (formats, order)
layouts and back.

    Name             formats          order (logical axis per level)
    ---------------  ---------------  ------------------------------
    SCALAR           ()               ()
    SPARSE_VECTOR    (Index,)         (0,)
    FULL_VECTOR      (Full,)          (0,)
    COO              (Index, Index)   (0, 1) or (1, 0)
    CSR              (Sparse, Index)  (0, 1)
    CSC              (Sparse, Index)  (1, 0)
    DCSR             (Hyper, Index)   (0, 1)
    DCSC             (Hyper, Index)   (1, 0)
    FULL_ROW         (Full, Full)     (0, 1)
    FULL_COL         (Full, Full)     (1, 0)
    INDEX_FULL_ROW   (Index, Full)    (0, 1)
    INDEX_FULL_COL   (Index, Full)    (1, 0)
    BITMAP           a bool (Full, Full) pattern plus a (Full, Full)
                     value tensor with the same shape and order

Raw buffers for named matrix formats use the conventional names, tied to
the logical axis they describe: ``row_ptr``/``col_ptr`` (pointer of the
row/column axis), ``rowind``/``colind`` (index of the row/column axis)
and ``values``. Vectors use ``index`` and ``values``. An explicit Layout
uses the storage-level names ``axis{k}/pointer``, ``axis{k}/index`` and
``values``, so any grammar-legal layout can be built, named or not.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from .._dtypes import ElementType
from ..error import IllegalFormatSequence, UnsupportedLayout
from ._array import Buffer, as_buffer
from ._axis import AxisDescriptor, AxisFormat, parse_formats
from ._grammar import check_format_sequence
from ._tensor import TensorDescriptor

__all__ = [
    'NamedFormat',
    'Layout',
    'BitmapPair',
    'RANK3_REFERENCE_LAYOUTS',
    'layout_of',
    'to_generic',
    'from_generic',
    'buffer_keys',
]

F, S, H, I = AxisFormat.FULL, AxisFormat.SPARSE, AxisFormat.HYPER, AxisFormat.INDEX


class NamedFormat(Enum):
    """Well-known layouts."""
    SCALAR = 'scalar'
    SPARSE_VECTOR = 'sparse_vector'
    FULL_VECTOR = 'full_vector'
    COO = 'coo'
    CSR = 'csr'
    CSC = 'csc'
    DCSR = 'dcsr'
    DCSC = 'dcsc'
    FULL_ROW = 'full_row'
    FULL_COL = 'full_col'
    INDEX_FULL_ROW = 'index_full_row'
    INDEX_FULL_COL = 'index_full_col'
    BITMAP = 'bitmap'

    def __repr__(self) -> str:
        return f"NamedFormat.{self.name}"


@dataclass(frozen=True)
class Layout:
    """
    Explicit layout: a format per storage level plus the logical axis
    stored at each level.

    Example:
        >>> Layout("SI", (1, 0))          # CSC
        Layout(formats='SI', order=(1, 0))
    """
    formats: Tuple[AxisFormat, ...]
    order: Tuple[int, ...]

    def __init__(self, formats: Union[str, Sequence[Any]], order: Optional[Sequence[int]] = None):
        fmts = parse_formats(formats)
        order = tuple(range(len(fmts))) if order is None else tuple(int(o) for o in order)
        if len(order) != len(fmts):
            raise ValueError(f"order {order} does not match {len(fmts)} formats")
        object.__setattr__(self, 'formats', fmts)
        object.__setattr__(self, 'order', order)

    @property
    def rank(self) -> int:
        return len(self.formats)

    @property
    def symbols(self) -> str:
        return ''.join(f.symbol for f in self.formats)

    def __repr__(self) -> str:
        return f"Layout(formats={self.symbols!r}, order={self.order})"


_NAMED_LAYOUTS: Dict[NamedFormat, Layout] = {
    NamedFormat.SCALAR: Layout((), ()),
    NamedFormat.SPARSE_VECTOR: Layout((I,), (0,)),
    NamedFormat.FULL_VECTOR: Layout((F,), (0,)),
    NamedFormat.COO: Layout((I, I), (0, 1)),
    NamedFormat.CSR: Layout((S, I), (0, 1)),
    NamedFormat.CSC: Layout((S, I), (1, 0)),
    NamedFormat.DCSR: Layout((H, I), (0, 1)),
    NamedFormat.DCSC: Layout((H, I), (1, 0)),
    NamedFormat.FULL_ROW: Layout((F, F), (0, 1)),
    NamedFormat.FULL_COL: Layout((F, F), (1, 0)),
    NamedFormat.INDEX_FULL_ROW: Layout((I, F), (0, 1)),
    NamedFormat.INDEX_FULL_COL: Layout((I, F), (1, 0)),
    NamedFormat.BITMAP: Layout((F, F), (0, 1)),
}

# Names whose storage order is free (any permutation of 0..rank-1).
_ANY_ORDER = frozenset({NamedFormat.COO, NamedFormat.BITMAP})

# Reverse lookup order: specific names before order-free ones.
_LOOKUP_ORDER = [
    n for n in NamedFormat if n not in _ANY_ORDER
] + [NamedFormat.COO]

# The twelve rank-3 reference combinations. Not named, but each is a
# legal layout and any of them can be built through an explicit Layout.
RANK3_REFERENCE_LAYOUTS = tuple(
    parse_formats(s) for s in (
        "III", "HII", "HHI", "HSI", "SII", "SHI", "SSI",
        "IIF", "IFF", "HIF", "SIF", "FFF",
    )
)

_MATRIX_KEYS = {
    'row_ptr': (0, 'pointer'),
    'col_ptr': (1, 'pointer'),
    'rowind': (0, 'index'),
    'colind': (1, 'index'),
}
_VECTOR_KEYS = {'index': (0, 'index')}


@dataclass(frozen=True)
class BitmapPair:
    """
    Bitmap layout: a bool pattern tensor marking which entries exist and
    a value tensor of the same shape and order. Both are (Full, ...) only.
    """
    pattern: TensorDescriptor
    values: TensorDescriptor

    def __post_init__(self):
        for name, t in (('pattern', self.pattern), ('values', self.values)):
            if any(f is not F for f in t.formats):
                raise UnsupportedLayout(NamedFormat.BITMAP, f"{name} tensor must be all-Full, got {t.layout_string}")
        if self.pattern.element_type is not ElementType.BOOL:
            raise UnsupportedLayout(NamedFormat.BITMAP, "pattern tensor must hold bool")
        if self.pattern.shape != self.values.shape or self.pattern.order != self.values.order:
            raise UnsupportedLayout(NamedFormat.BITMAP, "pattern and values must share shape and order")

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.values.shape

    @property
    def order(self) -> Tuple[int, ...]:
        return self.values.order

    @property
    def nvals(self) -> int:
        """Number of entries marked present."""
        if self.pattern.iso_valued:
            return self.pattern.nvals if self.pattern.iso_value() else 0
        return int(self.pattern.values.to_numpy().sum())


# =============================================================================
# Layout Resolution
# =============================================================================

def _as_named(name: Any) -> Optional[NamedFormat]:
    if isinstance(name, NamedFormat):
        return name
    if isinstance(name, str):
        try:
            return NamedFormat(name.lower())
        except ValueError:
            raise UnsupportedLayout(name, "unknown format name") from None
    return None


def layout_of(name: Union[str, NamedFormat, Layout], order: Optional[Sequence[int]] = None) -> Layout:
    """
    Resolve a name (or explicit Layout) to a checked Layout.

    Args:
        name: NamedFormat, its string value, or a Layout
        order: Storage order; only free for COO and BITMAP (and ignored
            for a Layout, which carries its own)

    Raises:
        UnsupportedLayout: Unknown name, wrong order, or a grammar-illegal
            sequence (the IllegalFormatSequence is chained as cause)
    """
    named = _as_named(name)
    if named is not None:
        layout = _NAMED_LAYOUTS[named]
        if order is not None:
            order = tuple(int(o) for o in order)
            if named in _ANY_ORDER:
                layout = Layout(layout.formats, order)
            elif order != layout.order:
                raise UnsupportedLayout(named, f"{named.name} is stored with order {layout.order}, not {order}")
    elif isinstance(name, Layout):
        layout = name
    else:
        raise UnsupportedLayout(name, "expected a NamedFormat, a format name or a Layout")

    if sorted(layout.order) != list(range(layout.rank)):
        raise UnsupportedLayout(name, f"order {layout.order} is not a permutation of 0..{layout.rank - 1}")
    try:
        check_format_sequence(layout.formats)
    except IllegalFormatSequence as err:
        raise UnsupportedLayout(name, err.message, cause=err) from err
    return layout


def buffer_keys(name: Union[str, NamedFormat, Layout], order: Optional[Sequence[int]] = None) -> Tuple[str, ...]:
    """Raw buffer names ``to_generic`` expects for a layout."""
    named = _as_named(name)
    if named is NamedFormat.BITMAP:
        return ('pattern', 'values')
    layout = layout_of(name, order)
    return tuple(sorted(_key_map(named, layout))) + ('values',)


def _key_map(named: Optional[NamedFormat], layout: Layout) -> Dict[str, Tuple[int, str]]:
    """Buffer key -> (storage level, 'pointer' | 'index') for the buffers the layout has."""
    keys: Dict[str, Tuple[int, str]] = {}
    if named is None:
        for k, fmt in enumerate(layout.formats):
            if fmt.has_pointer:
                keys[f'axis{k}/pointer'] = (k, 'pointer')
            if fmt.has_index:
                keys[f'axis{k}/index'] = (k, 'index')
        return keys

    conventional = _VECTOR_KEYS if layout.rank == 1 else _MATRIX_KEYS
    for key, (logical, kind) in conventional.items():
        if logical >= layout.rank:
            continue
        level = layout.order.index(logical)
        fmt = layout.formats[level]
        if (kind == 'pointer' and fmt.has_pointer) or (kind == 'index' and fmt.has_index):
            keys[key] = (level, kind)
    return keys


def to_generic(
    name: Union[str, NamedFormat, Layout],
    shape: Sequence[int],
    buffers: Mapping[str, Any],
    *,
    order: Optional[Sequence[int]] = None,
    iso: bool = False,
    in_order: Union[bool, Sequence[bool]] = False,
    element_type: Optional[Union[str, ElementType]] = None,
    metadata: Optional[str] = None,
    check_contents: Optional[bool] = None,
) -> Union[TensorDescriptor, BitmapPair]:
    """
    Build a TensorDescriptor from a named (or explicit) layout and raw buffers.

    Args:
        name: NamedFormat, its string value, or an explicit Layout
        shape: Logical shape
        buffers: Raw buffers keyed as described in the module docstring
            (Buffer objects are aliased read-only, not frozen in place)
        order: Storage order for COO/BITMAP (default row-major)
        iso: ``values`` holds a single value for every entry
        in_order: Whether Index-level indices are known to ascend, for all
            Index levels (bool) or per storage level (sequence)
        element_type: Value type (inferred from ``values`` when omitted)
        metadata: Optional free-form string
        check_contents: Scan buffer contents (default from configuration)

    Returns:
        TensorDescriptor, or BitmapPair for ``NamedFormat.BITMAP``

    Raises:
        UnsupportedLayout: Unknown/illegal layout, wrong rank, missing or
            unexpected buffer keys
        StructuralError: The buffers do not form a valid tensor

    Example:
        >>> csr = to_generic('csr', (3, 3), {
        ...     'row_ptr': [0, 1, 1, 3], 'colind': [1, 0, 2], 'values': [5, 7, 9]})
        >>> csr.formats
        (AxisFormat.SPARSE, AxisFormat.INDEX)
    """
    named = _as_named(name)
    layout = layout_of(name, order)
    shape = tuple(int(d) for d in shape)
    if len(shape) != layout.rank:
        raise UnsupportedLayout(name, f"shape {shape} has rank {len(shape)}, layout has rank {layout.rank}")

    if named is NamedFormat.BITMAP:
        return _bitmap_to_generic(layout, shape, buffers, iso, element_type, metadata, check_contents)

    keys = _key_map(named, layout)
    expected = set(keys) | {'values'}
    missing = expected - set(buffers)
    if missing:
        raise UnsupportedLayout(name, f"missing buffers {sorted(missing)}")
    unexpected = set(buffers) - expected
    if unexpected:
        raise UnsupportedLayout(name, f"unexpected buffers {sorted(unexpected)} (expected {sorted(expected)})")

    if isinstance(in_order, bool):
        flags = [in_order] * layout.rank
    else:
        flags = [bool(f) for f in in_order]
        if len(flags) != layout.rank:
            raise UnsupportedLayout(name, f"in_order has {len(flags)} flags for rank {layout.rank}")

    level_buffers: Dict[Tuple[int, str], Buffer] = {
        slot: as_buffer(buffers[key]) for key, slot in keys.items()
    }
    axes = []
    for k, fmt in enumerate(layout.formats):
        axes.append(AxisDescriptor(
            order=layout.order[k],
            dimension=shape[layout.order[k]],
            in_order=flags[k] if fmt is I else True,
            pointer=level_buffers.get((k, 'pointer')),
            index=level_buffers.get((k, 'index')),
        ))
    return TensorDescriptor(
        axes, buffers['values'], element_type=element_type, iso_valued=iso,
        metadata=metadata, check_contents=check_contents,
    )


def _bitmap_to_generic(layout, shape, buffers, iso, element_type, metadata, check_contents) -> BitmapPair:
    missing = {'pattern', 'values'} - set(buffers)
    if missing:
        raise UnsupportedLayout(NamedFormat.BITMAP, f"missing buffers {sorted(missing)}")
    full = Layout((F,) * len(shape), layout.order)
    pattern_values = as_buffer(buffers['pattern'], ElementType.BOOL)
    pattern = to_generic(
        full, shape, {'values': pattern_values},
        iso=len(pattern_values) == 1 and _full_count(shape) != 1,
        check_contents=check_contents,
    )
    values = to_generic(
        full, shape, {'values': buffers['values']},
        iso=iso, element_type=element_type, metadata=metadata, check_contents=check_contents,
    )
    return BitmapPair(pattern, values)


def _full_count(shape: Sequence[int]) -> int:
    count = 1
    for d in shape:
        count *= d
    return count


def from_generic(obj: Union[TensorDescriptor, BitmapPair]) -> Optional[NamedFormat]:
    """
    Conventional name of a descriptor's layout.

    Returns:
        The NamedFormat, or None when the (legal) layout has no common name
    """
    if isinstance(obj, BitmapPair):
        return NamedFormat.BITMAP
    if not isinstance(obj, TensorDescriptor):
        raise TypeError(f"expected TensorDescriptor or BitmapPair, got {type(obj).__name__}")
    formats, order = obj.formats, obj.order
    for named in _LOOKUP_ORDER:
        layout = _NAMED_LAYOUTS[named]
        if layout.formats != formats:
            continue
        if named in _ANY_ORDER or layout.order == order:
            return named
    return None
