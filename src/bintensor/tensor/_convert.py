"""
Format Conversion

Rewrites a tensor from one legal layout to another without losing
entries or their values. The source is never modified.

Algorithm:
    1. Enumerate the source into one coordinate column per storage level
       (Full/Sparse levels expand into ranges, Hyper/Index levels read
       their index buffers, pointers fan parents out to children). The
       enumeration order is the value-slot order, so entry ``i`` owns
       ``values[i]``.
    2. Re-map the columns into the target storage order and sort them
       lexicographically (stable). The sort is skipped when the source is
       already ordered in the target order; that reliance on the source's
       ``in_order`` claims is verified and a false claim raises
       ConversionOrderingViolation.
    3. Rebuild the target level by level. Full/Sparse levels number their
       objects ``parent * dimension + coordinate``; Hyper levels and runs
       of Index levels that precede a Full level group equal prefixes
       into one object; a trailing Index run keeps one object per entry.
       Pointers come from a counting pass over each level's parents.
    4. Scatter values into the target slots. Slots no entry reaches
       (densifying into Full levels) receive ``fill_value``; an iso
       source stays iso unless such slots exist.

Identity conversions (same formats, same order) return a read-only view
of the source.
"""

import logging
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np

from .._config import get_config
from .._dtypes import ElementType
from ..error import (
    ConversionOrderingViolation,
    DimensionMismatch,
    DuplicateCoordinate,
    IllegalFormatSequence,
    IllegalTargetFormat,
    RankMismatch,
)
from ._array import Buffer
from ._axis import AxisDescriptor, AxisFormat, parse_formats
from ._formats import BitmapPair, Layout, NamedFormat, layout_of
from ._grammar import check_format_sequence
from ._tensor import TensorDescriptor

logger = logging.getLogger("bintensor.convert")

__all__ = [
    'convert',
    'convert_to',
    'convert_like',
    'entries',
    'to_bitmap',
    'from_bitmap',
]

F, S, H, I = AxisFormat.FULL, AxisFormat.SPARSE, AxisFormat.HYPER, AxisFormat.INDEX


# =============================================================================
# Public API
# =============================================================================

def convert(
    tensor: TensorDescriptor,
    target_formats: Union[str, Sequence[Any]],
    target_order: Optional[Sequence[int]] = None,
    *,
    shape: Optional[Sequence[int]] = None,
    fill_value: Any = None,
) -> TensorDescriptor:
    """
    Convert a tensor to another layout.

    Args:
        tensor: Source descriptor
        target_formats: AxisFormat per target storage level (or symbols,
            e.g. ``"SI"``)
        target_order: Logical axis per target storage level (default:
            the source order)
        shape: Expected logical shape of the tensor, if the caller wants
            it checked
        fill_value: Value for slots created by densifying into Full
            levels (default from configuration)

    Returns:
        New TensorDescriptor (a read-only view for identity conversions)

    Raises:
        RankMismatch: Target rank differs from the source rank
        DimensionMismatch: ``shape`` differs from the source shape
        IllegalTargetFormat: Target layout rejected by the grammar, or the
            order is not a permutation
        ConversionOrderingViolation: The source claims ascending indices
            that are not ascending, and the conversion relied on it
        DuplicateCoordinate: Two entries land in one Full slot

    Example:
        >>> csr = convert(coo, "SI", (0, 1))
        >>> csr.named_format
        NamedFormat.CSR
    """
    formats, order = _check_target(tensor, target_formats, target_order)
    if shape is not None and tuple(int(d) for d in shape) != tensor.shape:
        raise DimensionMismatch(tuple(shape), tensor.shape)

    if formats == tensor.formats and order == tensor.order:
        logger.debug("identity conversion of %s, returning view", tensor.layout_string or 'scalar')
        return tensor.view()

    storage_cols, n = _expand(tensor)
    logical = [None] * tensor.rank
    for k, axis in enumerate(tensor.axes):
        logical[axis.order] = storage_cols[k]
    target_cols = [logical[o] for o in order]

    presorted = False
    if order == tensor.order and _claims_ordered(tensor):
        if get_config().convert.verify_order:
            bad = _first_unordered_level(target_cols)
            if bad is not None:
                raise ConversionOrderingViolation(
                    bad, "source claims in_order but entries are not ascending"
                )
        presorted = True

    logger.debug(
        "converting %s%s -> %s%s (%d entries, presorted=%s)",
        tensor.layout_string or 'scalar', tensor.order,
        ''.join(f.symbol for f in formats) or 'scalar', order, n, presorted,
    )
    return _rebuild(
        target_cols, n, tensor.values.to_numpy(), tensor.iso_valued, tensor,
        formats, order, presorted, fill_value,
    )


def convert_to(
    tensor: TensorDescriptor,
    name: Union[str, NamedFormat, Layout],
    order: Optional[Sequence[int]] = None,
    *,
    fill_value: Any = None,
) -> TensorDescriptor:
    """
    Convert a tensor to a named (or explicit) layout.

    BITMAP is not a single-tensor layout; use ``to_bitmap`` for it.

    Raises:
        UnsupportedLayout: Unknown or illegal layout name
        ConversionError: See ``convert``
    """
    layout = layout_of(name, order)
    if name in (NamedFormat.BITMAP, NamedFormat.BITMAP.value):
        raise IllegalTargetFormat(name, reason="BITMAP is a tensor pair, use to_bitmap()")
    return convert(tensor, layout.formats, layout.order, fill_value=fill_value)


def convert_like(
    tensor: TensorDescriptor,
    reference: TensorDescriptor,
    *,
    fill_value: Any = None,
) -> TensorDescriptor:
    """
    Convert a tensor to the layout of another tensor of the same shape.

    Raises:
        DimensionMismatch: The two tensors have different logical shapes
    """
    if reference.rank != tensor.rank:
        raise RankMismatch(tensor.rank, reference.rank)
    return convert(
        tensor, reference.formats, reference.order,
        shape=reference.shape, fill_value=fill_value,
    )


def entries(tensor: TensorDescriptor) -> Tuple[np.ndarray, np.ndarray]:
    """
    Enumerate stored entries in storage order.

    Returns:
        (coords, values): ``coords`` has shape ``(nvals, rank)`` with one
        column per logical axis; ``values`` has one value per entry (iso
        values are expanded)
    """
    storage_cols, n = _expand(tensor)
    coords = np.empty((n, tensor.rank), dtype=np.int64)
    for k, axis in enumerate(tensor.axes):
        coords[:, axis.order] = storage_cols[k]
    return coords, tensor.expanded_values()


def to_bitmap(
    tensor: TensorDescriptor,
    order: Optional[Sequence[int]] = None,
    *,
    fill_value: Any = None,
) -> BitmapPair:
    """
    Split a tensor into a bitmap pair: a bool pattern marking stored
    entries plus an all-Full value tensor.

    Raises:
        DuplicateCoordinate: The tensor stores a coordinate twice
    """
    full = (F,) * tensor.rank
    order = tensor.order if order is None else tuple(order)
    pattern_source = TensorDescriptor(
        [axis.replace(
            pointer=None if axis.pointer is None else axis.pointer.view(),
            index=None if axis.index is None else axis.index.view(),
            nindex=axis.nindex,
        ) for axis in tensor.axes],
        Buffer.from_list([True], ElementType.BOOL),
        iso_valued=True,
        check_contents=False,
    )
    pattern = convert(pattern_source, full, order, fill_value=False)
    values = convert(tensor, full, order, fill_value=fill_value)
    return BitmapPair(pattern, values)


def from_bitmap(
    pair: BitmapPair,
    target_formats: Union[str, Sequence[Any]],
    target_order: Optional[Sequence[int]] = None,
    *,
    fill_value: Any = None,
) -> TensorDescriptor:
    """Convert a bitmap pair to a single tensor holding only the marked entries."""
    source = pair.values
    formats, order = _check_target(source, target_formats, target_order)

    storage_cols, _ = _expand(source)
    mask = pair.pattern.expanded_values().astype(bool)
    logical = [None] * source.rank
    for k, axis in enumerate(source.axes):
        logical[axis.order] = storage_cols[k][mask]
    target_cols = [logical[o] for o in order]
    n = int(mask.sum())

    if source.iso_valued:
        vals, iso = source.values.to_numpy(), True
    else:
        vals, iso = source.values.to_numpy()[mask], False
    return _rebuild(
        target_cols, n, vals, iso, source, formats, order,
        order == source.order, fill_value,
    )


# =============================================================================
# Target Checking
# =============================================================================

def _check_target(
    tensor: TensorDescriptor,
    target_formats: Union[str, Sequence[Any]],
    target_order: Optional[Sequence[int]],
) -> Tuple[Tuple[AxisFormat, ...], Tuple[int, ...]]:
    formats = parse_formats(target_formats)
    if len(formats) != tensor.rank:
        raise RankMismatch(tensor.rank, len(formats))
    order = tensor.order if target_order is None else tuple(int(o) for o in target_order)
    if len(order) != tensor.rank:
        raise RankMismatch(tensor.rank, len(order))
    if sorted(order) != list(range(tensor.rank)):
        raise IllegalTargetFormat(formats, reason=f"order {order} is not a permutation")
    try:
        check_format_sequence(formats)
    except IllegalFormatSequence as err:
        raise IllegalTargetFormat(formats, cause=err) from err
    return formats, order


# =============================================================================
# Source Enumeration
# =============================================================================

def _expand(tensor: TensorDescriptor) -> Tuple[List[np.ndarray], int]:
    """One int64 coordinate column per storage level, in value-slot order."""
    axes = tensor.axes
    cols: List[np.ndarray] = []
    n = 1
    for k, axis in enumerate(axes):
        if axis.format in (F, S):
            d = axis.dimension
            cols = [np.repeat(c, d) for c in cols]
            cols.append(np.tile(np.arange(d, dtype=np.int64), n))
            n *= d
            continue
        idx = axis.index.to_numpy().astype(np.int64, copy=False)
        if k > 0 and axes[k - 1].format.has_pointer:
            ptr = axes[k - 1].pointer.to_numpy().astype(np.int64, copy=False)
            parent = np.repeat(np.arange(n, dtype=np.int64), np.diff(ptr))
            cols = [c[parent] for c in cols]
        # otherwise the first level, or parallel to the Index level on its left
        cols.append(idx)
        n = len(idx)
    return cols, n


def _claims_ordered(tensor: TensorDescriptor) -> bool:
    return all(axis.in_order for axis in tensor.axes)


def _first_unordered_level(cols: Sequence[np.ndarray]) -> Optional[int]:
    """Storage level at which consecutive entries first descend, or None."""
    if not cols or len(cols[0]) < 2:
        return None
    undecided = np.ones(len(cols[0]) - 1, dtype=bool)
    for k, col in enumerate(cols):
        step = np.diff(col)
        if np.any(undecided & (step < 0)):
            return k
        undecided &= step == 0
    return None


# =============================================================================
# Target Construction
# =============================================================================

def _run_starts(parent: np.ndarray, keys: Sequence[np.ndarray]) -> np.ndarray:
    """True where (parent, *keys) differs from the previous (sorted) entry."""
    n = len(parent)
    starts = np.ones(n, dtype=bool)
    if n > 1:
        changed = parent[1:] != parent[:-1]
        for key in keys:
            changed |= key[1:] != key[:-1]
        starts[1:] = changed
    return starts


def _fit_integer_type(preferred: ElementType, max_value: int) -> ElementType:
    if max_value > np.iinfo(preferred.numpy_dtype).max:
        return ElementType.INT64
    return preferred


def _rebuild(
    cols: List[np.ndarray],
    n: int,
    source_values: np.ndarray,
    iso: bool,
    source: TensorDescriptor,
    formats: Tuple[AxisFormat, ...],
    order: Tuple[int, ...],
    presorted: bool,
    fill_value: Any,
) -> TensorDescriptor:
    rank = len(formats)
    shape = source.shape
    dims = [shape[o] for o in order]

    if not presorted and rank > 0 and n > 1:
        perm = np.lexsort(tuple(reversed(cols)))
        cols = [c[perm] for c in cols]
    else:
        perm = None

    pointers: List[Optional[np.ndarray]] = [None] * rank
    indices: List[Optional[np.ndarray]] = [None] * rank

    parent = np.zeros(n, dtype=np.int64)
    nparent = 1
    k = 0
    while k < rank:
        fmt = formats[k]
        first = k
        if fmt in (F, S):
            d = dims[k]
            obj = parent * d + cols[k]
            nobj = nparent * d
            if k > 0 and formats[k - 1].has_pointer:
                pointers[k - 1] = np.arange(nparent + 1, dtype=np.int64) * d
            parent, nparent = obj, nobj
            k += 1
            continue

        if fmt is H:
            starts = _run_starts(parent, [cols[k]])
            indices[k] = cols[k][starts]
            last = k
        else:
            last = k
            while last + 1 < rank and formats[last + 1] is I:
                last += 1
            run = cols[first:last + 1]
            if last == rank - 1:
                starts = None
                for j, col in enumerate(run):
                    indices[first + j] = col
            else:
                starts = _run_starts(parent, run)
                for j, col in enumerate(run):
                    indices[first + j] = col[starts]

        if starts is None:
            obj, obj_parent = np.arange(n, dtype=np.int64), parent
        else:
            obj = np.cumsum(starts, dtype=np.int64) - 1
            obj_parent = parent[starts]
        nobj = len(obj_parent)
        if first > 0 and formats[first - 1].has_pointer:
            counts = np.bincount(obj_parent, minlength=nparent)
            pointers[first - 1] = np.concatenate(([0], np.cumsum(counts))).astype(np.int64)
        parent, nparent = obj, nobj
        k = last + 1

    nslots = nparent
    values, out_iso = _place_values(
        parent, nslots, n, cols, order, source_values, iso, perm, source, fill_value,
    )

    top = max((int(p[-1]) for p in pointers if p is not None and len(p)), default=0)
    pointer_type = _fit_integer_type(source.pointer_type, top)
    index_type = _fit_integer_type(source.index_type, max(dims, default=0))
    axes = []
    for k, fmt in enumerate(formats):
        ptr = idx = None
        if pointers[k] is not None:
            ptr = Buffer.from_numpy(pointers[k], pointer_type)
        if indices[k] is not None:
            idx = Buffer.from_numpy(indices[k], index_type)
        axes.append(AxisDescriptor(
            order=order[k], dimension=dims[k], in_order=True,
            pointer=ptr, index=idx,
            nindex=None if idx is not None else dims[k],
        ))
    return TensorDescriptor(
        axes, values, element_type=source.element_type, iso_valued=out_iso,
        metadata=source.metadata, element_size=source.element_size,
    )


def _place_values(
    slots: np.ndarray,
    nslots: int,
    n: int,
    cols: List[np.ndarray],
    order: Tuple[int, ...],
    source_values: np.ndarray,
    iso: bool,
    perm: Optional[np.ndarray],
    source: TensorDescriptor,
    fill_value: Any,
) -> Tuple[Buffer, bool]:
    """Scatter entry values into target slots; returns (values, iso)."""
    et = source.element_type
    if nslots != n or n > 1:
        counts = np.bincount(slots, minlength=nslots) if n else np.zeros(nslots, dtype=np.int64)
        dup = np.flatnonzero(counts > 1)
        if dup.size:
            entry = int(np.flatnonzero(slots == dup[0])[0])
            coordinate = [0] * len(order)
            for k, col in enumerate(cols):
                coordinate[order[k]] = col[entry]
            raise DuplicateCoordinate(tuple(coordinate))

    if nslots == n:
        if iso:
            return Buffer.from_numpy(source_values[:1], et, element_size=source.element_size), True
        vals = source_values if perm is None else source_values[perm]
        return Buffer.from_numpy(vals, et, element_size=source.element_size), False

    if fill_value is None:
        fill_value = get_config().convert.fill_value
    dtype = source_values.dtype
    if et is ElementType.USER:
        out = np.zeros(nslots, dtype=dtype)
    else:
        out = np.full(nslots, fill_value, dtype=dtype)
    if iso:
        out[slots] = source_values[0]
    else:
        out[slots] = source_values if perm is None else source_values[perm]
    logger.debug("densified %d entries into %d slots", n, nslots)
    return Buffer.from_numpy(out, et, element_size=source.element_size), False
