"""
Format Grammar and Size Derivation

Treat the formats of a tensor's storage levels (outermost first) as a
string over {F, S, H, I}. A string is a legal layout iff:

    (1) after a Full axis, every axis is Full
    (2) the last axis is Index or Full
    (3) Sparse never sits immediately left of Full
    (4) Hyper never sits immediately left of Full
    (5) after an Index axis, every axis is Index or Full

These rules collapse into a four-state automaton:

      START ──S,H──> POINTER ──I──> INDEX ──F──> FULL
        │  \\          ↺ S,H          ↺ I          ↺ F
        │   \\──────────────I──────────^            ^
        └──────────────────────F────────────────────┘

    accepting: START (rank 0), INDEX, FULL

Pointer axes (Sparse, Hyper) let the objects to their right vary in size;
once a pointer-free axis (Index, Full) appears every object to the right
has a fixed size, which is why nothing with a pointer may follow.

Sizes are derived left to right from the number of objects each level
receives from its left neighbour (1 for the outermost level):

    Full, Sparse   out = in * dimension      (Sparse pointer: out + 1)
    Hyper          out = nindex              (pointer: nindex + 1)
    Index          out = nindex              (after Index: nindex == in)

The object count leaving the last level is ``nvals``.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .._config import get_config
from ..error import IllegalFormatSequence, OrderingViolation, SizeMismatch
from ._axis import AxisDescriptor, AxisFormat, parse_formats

logger = logging.getLogger("bintensor.grammar")

__all__ = [
    'GrammarState',
    'LevelSizes',
    'SizePlan',
    'check_format_sequence',
    'is_legal_sequence',
    'derive_sizes',
    'validate_axes',
    'validate_values',
]

F, S, H, I = AxisFormat.FULL, AxisFormat.SPARSE, AxisFormat.HYPER, AxisFormat.INDEX


class GrammarState(Enum):
    START = 'start'
    AFTER_POINTER = 'after_pointer'
    AFTER_INDEX = 'after_index'
    AFTER_FULL = 'after_full'


_TRANSITIONS: Dict[Tuple[GrammarState, AxisFormat], GrammarState] = {
    (GrammarState.START, F): GrammarState.AFTER_FULL,
    (GrammarState.START, S): GrammarState.AFTER_POINTER,
    (GrammarState.START, H): GrammarState.AFTER_POINTER,
    (GrammarState.START, I): GrammarState.AFTER_INDEX,
    (GrammarState.AFTER_POINTER, S): GrammarState.AFTER_POINTER,
    (GrammarState.AFTER_POINTER, H): GrammarState.AFTER_POINTER,
    (GrammarState.AFTER_POINTER, I): GrammarState.AFTER_INDEX,
    (GrammarState.AFTER_INDEX, I): GrammarState.AFTER_INDEX,
    (GrammarState.AFTER_INDEX, F): GrammarState.AFTER_FULL,
    (GrammarState.AFTER_FULL, F): GrammarState.AFTER_FULL,
}

_ACCEPTING = frozenset({GrammarState.START, GrammarState.AFTER_INDEX, GrammarState.AFTER_FULL})


def _rejection_rule(state: GrammarState, left: Optional[AxisFormat]) -> int:
    if state is GrammarState.AFTER_FULL:
        return 1
    if state is GrammarState.AFTER_INDEX:
        return 5
    # AFTER_POINTER followed by Full
    return 3 if left is S else 4


def check_format_sequence(formats: Sequence) -> None:
    """
    Run the grammar automaton over a format sequence.

    Args:
        formats: AxisFormats (or symbols/names), outermost first

    Raises:
        IllegalFormatSequence: At the first violating axis, with the rule id
    """
    fmts = parse_formats(formats)
    state = GrammarState.START
    left = None
    for k, fmt in enumerate(fmts):
        nxt = _TRANSITIONS.get((state, fmt))
        if nxt is None:
            raise IllegalFormatSequence(k, _rejection_rule(state, left), left, fmt)
        state = nxt
        left = fmt
    if state not in _ACCEPTING:
        raise IllegalFormatSequence(len(fmts) - 1, 2, left, None)


def is_legal_sequence(formats: Sequence) -> bool:
    """True if the format sequence is accepted by the grammar."""
    try:
        check_format_sequence(formats)
    except IllegalFormatSequence:
        return False
    return True


# =============================================================================
# Size Derivation
# =============================================================================

@dataclass(frozen=True)
class LevelSizes:
    """Derived sizes of one storage level."""
    axis_index: int
    format: AxisFormat
    nobjects_in: int
    nobjects_out: int
    nindex: int
    pointer_length: Optional[int]
    index_length: Optional[int]


@dataclass(frozen=True)
class SizePlan:
    """Per-level sizes plus the resulting value count."""
    levels: Tuple[LevelSizes, ...]
    nvals: int

    def __getitem__(self, k: int) -> LevelSizes:
        return self.levels[k]

    def __len__(self) -> int:
        return len(self.levels)


def derive_sizes(axes: Sequence[AxisDescriptor]) -> SizePlan:
    """
    Derive the required buffer sizes of every level.

    Checks the grammar first, then the nindex conventions: Full and
    Sparse levels must have ``nindex == dimension`` and an Index level
    right of another Index level must list as many coordinates as its
    neighbour.

    Raises:
        IllegalFormatSequence: Grammar violation
        SizeMismatch: nindex inconsistent with the layout
    """
    check_format_sequence([a.format for a in axes])

    levels: List[LevelSizes] = []
    count = 1
    prev = None
    for k, axis in enumerate(axes):
        fmt = axis.format
        pointer_length = index_length = None
        if fmt in (F, S):
            if axis.nindex != axis.dimension:
                raise SizeMismatch(k, axis.dimension, axis.nindex, 'nindex')
            out = count * axis.dimension
            if fmt is S:
                pointer_length = out + 1
        elif fmt is H:
            out = axis.nindex
            pointer_length = axis.nindex + 1
            index_length = axis.nindex
        else:
            if prev is I and axis.nindex != count:
                raise SizeMismatch(k, count, axis.nindex, 'nindex')
            out = axis.nindex
            index_length = axis.nindex
        levels.append(LevelSizes(k, fmt, count, out, axis.nindex, pointer_length, index_length))
        count = out
        prev = fmt
    return SizePlan(tuple(levels), count)


# =============================================================================
# Full Validation
# =============================================================================

def validate_axes(
    axes: Sequence[AxisDescriptor],
    check_contents: Optional[bool] = None,
) -> SizePlan:
    """
    Validate an axis sequence and return its size plan.

    Checks, in order: the ``order`` fields form a permutation, the
    grammar, the in_order flags of Full/Sparse/Hyper axes, nindex
    conventions, buffer lengths and (when ``check_contents``) buffer
    contents: pointers start at 0, never decrease and end at the entry
    count of the level to their right; indices lie in ``[0, dimension)``;
    Hyper indices strictly ascend within each parent group.

    Args:
        axes: Storage levels, outermost first
        check_contents: Scan buffer contents (default from configuration)

    Raises:
        StructuralError: IllegalFormatSequence, SizeMismatch or
            OrderingViolation describing the first problem found
    """
    if check_contents is None:
        check_contents = get_config().validation.check_contents

    orders = tuple(a.order for a in axes)
    if sorted(orders) != list(range(len(axes))):
        bad = next(
            (k for k, o in enumerate(orders) if o < 0 or o >= len(axes) or orders.index(o) != k),
            0,
        )
        raise SizeMismatch(bad, tuple(range(len(axes))), orders, 'order')

    plan = derive_sizes(axes)

    for k, axis in enumerate(axes):
        if axis.format is not I and not axis.in_order:
            raise OrderingViolation(k, f"{axis.format.value} axes must be in order")

    for k, (axis, sizes) in enumerate(zip(axes, plan.levels)):
        for name, buf, expected in (
            ('pointer', axis.pointer, sizes.pointer_length),
            ('index', axis.index, sizes.index_length),
        ):
            if buf is None:
                continue
            if not buf.element_type.is_integer:
                raise TypeError(
                    f"axis {k} {name} must have an integer element type, "
                    f"got {buf.element_type.value}"
                )
            if len(buf) != expected:
                raise SizeMismatch(k, expected, len(buf), name)

    if check_contents:
        _check_contents(axes, plan)

    logger.debug(
        "validated layout %s (nvals=%d, contents=%s)",
        ''.join(a.format.symbol for a in axes) or '<scalar>', plan.nvals, check_contents,
    )
    return plan


def _check_contents(axes: Sequence[AxisDescriptor], plan: SizePlan) -> None:
    for k, axis in enumerate(axes):
        if axis.pointer is not None:
            ptr = axis.pointer.to_numpy().astype(np.int64, copy=False)
            if ptr[0] != 0:
                raise SizeMismatch(k, 0, int(ptr[0]), 'pointer[0]')
            drops = np.flatnonzero(np.diff(ptr) < 0)
            if drops.size:
                raise OrderingViolation(k, f"pointer decreases at position {int(drops[0]) + 1}")
            nxt = axes[k + 1]
            if nxt.format is S:
                expected = np.arange(len(ptr), dtype=np.int64) * nxt.dimension
                if not np.array_equal(ptr, expected):
                    raise SizeMismatch(k, expected.tolist(), ptr.tolist(), 'pointer')
            elif int(ptr[-1]) != plan[k + 1].nindex:
                raise SizeMismatch(k, plan[k + 1].nindex, int(ptr[-1]), 'pointer[-1]')

        if axis.index is not None and len(axis.index):
            idx = axis.index.to_numpy()
            lo, hi = int(idx.min()), int(idx.max())
            if lo < 0 or hi >= axis.dimension:
                bad = lo if lo < 0 else hi
                raise SizeMismatch(k, f"index in [0, {axis.dimension})", bad, 'index value')

        if axis.format is H and len(axis.index) > 1:
            idx = axis.index.to_numpy().astype(np.int64, copy=False)
            ascending = np.diff(idx) > 0
            if k > 0:
                # group boundaries come from the parent's pointer
                parent_ptr = axes[k - 1].pointer.to_numpy().astype(np.int64, copy=False)
                starts = parent_ptr[1:-1]
                starts = starts[(starts > 0) & (starts < len(idx))]
                ascending[starts - 1] = True
            bad = np.flatnonzero(~ascending)
            if bad.size:
                raise OrderingViolation(k, f"hyper index not strictly ascending at position {int(bad[0]) + 1}")


def validate_values(plan: SizePlan, nvalues: int, iso_valued: bool) -> None:
    """
    Check the length of the value buffer.

    Raises:
        SizeMismatch: Length is not 1 (iso) or nvals
    """
    expected = 1 if iso_valued else plan.nvals
    if nvalues != expected:
        raise SizeMismatch(None, expected, nvalues, 'values')
