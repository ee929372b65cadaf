"""
Tests for the layout grammar, size derivation and validation.
"""

import itertools

import pytest
import numpy as np
from bintensor.error import IllegalFormatSequence, OrderingViolation, SizeMismatch
from bintensor.tensor import (
    AxisDescriptor,
    AxisFormat,
    Buffer,
    ElementType,
    TensorDescriptor,
    RANK3_REFERENCE_LAYOUTS,
    check_format_sequence,
    derive_sizes,
    is_legal_sequence,
    validate_axes,
)

F, S, H, I = AxisFormat.FULL, AxisFormat.SPARSE, AxisFormat.HYPER, AxisFormat.INDEX


def ib(values):
    return Buffer.from_list(values, ElementType.INT64)


def satisfies_rules(seq):
    """The five layout rules, checked one by one."""
    n = len(seq)
    for i in range(n):
        for j in range(i + 1, n):
            if seq[i] is F and seq[j] is not F:
                return False
            if seq[i] is I and seq[j] not in (I, F):
                return False
    if n and seq[-1] not in (I, F):
        return False
    for a, b in zip(seq, seq[1:]):
        if a in (S, H) and b is F:
            return False
    return True


class TestGrammar:
    """The automaton agrees with the rules."""

    @pytest.mark.parametrize("length", [0, 1, 2, 3, 4])
    def test_exhaustive_agreement(self, length):
        for seq in itertools.product((F, S, H, I), repeat=length):
            assert is_legal_sequence(seq) == satisfies_rules(seq), seq

    def test_common_layouts_legal(self):
        for layout in ("", "I", "F", "II", "SI", "HI", "FF", "IF", "SSI", "HSI", "IFF"):
            check_format_sequence(layout)

    def test_rank3_reference_layouts_legal(self):
        assert len(RANK3_REFERENCE_LAYOUTS) == 12
        for layout in RANK3_REFERENCE_LAYOUTS:
            assert is_legal_sequence(layout)

    @pytest.mark.parametrize("layout,rule,axis", [
        ("SF", 3, 1),
        ("HF", 4, 1),
        ("IS", 5, 1),
        ("IH", 5, 1),
        ("FS", 1, 1),
        ("FI", 1, 1),
        ("S", 2, 0),
        ("SS", 2, 1),
        ("ISI", 5, 1),
    ])
    def test_rejection_rule(self, layout, rule, axis):
        with pytest.raises(IllegalFormatSequence) as info:
            check_format_sequence(layout)
        assert info.value.rule == rule
        assert info.value.axis_index == axis


class TestSizeDerivation:
    """Required buffer sizes per level."""

    def test_csr_sizes(self, csr_4x5):
        plan = derive_sizes(csr_4x5.axes)
        assert plan[0].pointer_length == 5
        assert plan[0].index_length is None
        assert plan[1].index_length == 6
        assert plan[1].pointer_length is None
        assert plan.nvals == 6

    def test_dense_sizes(self):
        plan = derive_sizes([AxisDescriptor(0, 3), AxisDescriptor(1, 4)])
        assert plan.nvals == 12
        assert plan[1].nobjects_in == 3

    def test_scalar(self):
        plan = derive_sizes([])
        assert plan.nvals == 1
        assert len(plan) == 0

    def test_hyper_sizes(self):
        axes = [
            AxisDescriptor(0, 10, pointer=ib([0, 2, 3]), index=ib([1, 7])),
            AxisDescriptor(1, 4, index=ib([0, 3, 2])),
        ]
        plan = derive_sizes(axes)
        assert plan[0].pointer_length == 3
        assert plan[0].nobjects_out == 2
        assert plan.nvals == 3

    def test_index_full(self):
        axes = [AxisDescriptor(0, 5, index=ib([1, 4])), AxisDescriptor(1, 3)]
        plan = derive_sizes(axes)
        assert plan.nvals == 6

    def test_sparse_below_sparse(self):
        # (S, S, I): the inner pointer covers every (i, j) pair
        axes = [
            AxisDescriptor(0, 2, pointer=ib([0, 3, 6])),
            AxisDescriptor(1, 3, pointer=ib([0, 1, 1, 2, 2, 2, 3])),
            AxisDescriptor(2, 4, index=ib([0, 1, 3])),
        ]
        plan = derive_sizes(axes)
        assert plan[1].pointer_length == 7
        assert plan.nvals == 3

    def test_parallel_index_mismatch(self):
        axes = [AxisDescriptor(0, 3, index=ib([0, 1])), AxisDescriptor(1, 3, index=ib([0, 1, 2]))]
        with pytest.raises(SizeMismatch) as info:
            derive_sizes(axes)
        assert info.value.field == 'nindex'


class TestValidation:
    """Buffer checks performed when a descriptor is built."""

    def test_pointer_length(self):
        axes = [AxisDescriptor(0, 3, pointer=ib([0, 1, 3])), AxisDescriptor(1, 3, index=ib([1, 0, 2]))]
        with pytest.raises(SizeMismatch) as info:
            validate_axes(axes)
        assert info.value.field == 'pointer'
        assert info.value.axis_index == 0

    def test_pointer_must_start_at_zero(self):
        axes = [AxisDescriptor(0, 2, pointer=ib([1, 2, 3])), AxisDescriptor(1, 3, index=ib([1, 0, 2]))]
        with pytest.raises(SizeMismatch):
            validate_axes(axes)

    def test_pointer_must_not_decrease(self):
        axes = [AxisDescriptor(0, 3, pointer=ib([0, 2, 1, 3])), AxisDescriptor(1, 3, index=ib([1, 0, 2]))]
        with pytest.raises(OrderingViolation) as info:
            validate_axes(axes)
        assert info.value.axis_index == 0

    def test_pointer_must_end_at_entry_count(self):
        axes = [AxisDescriptor(0, 3, pointer=ib([0, 1, 1, 2])), AxisDescriptor(1, 3, index=ib([1, 0, 2]))]
        with pytest.raises(SizeMismatch):
            validate_axes(axes)

    def test_index_out_of_range(self):
        axes = [AxisDescriptor(0, 3, pointer=ib([0, 1, 1, 3])), AxisDescriptor(1, 3, index=ib([1, 0, 3]))]
        with pytest.raises(SizeMismatch):
            validate_axes(axes)

    def test_content_check_can_be_disabled(self):
        axes = [AxisDescriptor(0, 3, pointer=ib([0, 1, 1, 3])), AxisDescriptor(1, 3, index=ib([1, 0, 3]))]
        plan = validate_axes(axes, check_contents=False)
        assert plan.nvals == 3

    def test_hyper_must_ascend(self):
        axes = [
            AxisDescriptor(0, 10, pointer=ib([0, 2, 3]), index=ib([7, 1])),
            AxisDescriptor(1, 4, index=ib([0, 3, 2])),
        ]
        with pytest.raises(OrderingViolation):
            validate_axes(axes)

    def test_hyper_groups_restart(self):
        # (S, H, I): hyper indices only ascend within each parent group
        axes = [
            AxisDescriptor(0, 2, pointer=ib([0, 2, 4])),
            AxisDescriptor(1, 5, pointer=ib([0, 1, 2, 3, 4]), index=ib([1, 3, 0, 4])),
            AxisDescriptor(2, 2, index=ib([0, 1, 1, 0])),
        ]
        assert validate_axes(axes).nvals == 4

    def test_sparse_must_be_in_order(self):
        axes = [AxisDescriptor(0, 3, in_order=False, pointer=ib([0, 1, 1, 3])),
                AxisDescriptor(1, 3, index=ib([1, 0, 2]))]
        with pytest.raises(OrderingViolation):
            validate_axes(axes)

    def test_order_must_be_permutation(self):
        axes = [AxisDescriptor(0, 3), AxisDescriptor(0, 3)]
        with pytest.raises(SizeMismatch) as info:
            validate_axes(axes)
        assert info.value.field == 'order'

    def test_buffers_must_be_integer(self):
        ptr = Buffer.from_numpy(np.array([0.0, 1.0, 1.0, 3.0]))
        axes = [AxisDescriptor(0, 3, pointer=ptr), AxisDescriptor(1, 3, index=ib([1, 0, 2]))]
        with pytest.raises(TypeError):
            validate_axes(axes)

    def test_illegal_sequence_in_descriptor(self):
        axes = [AxisDescriptor(0, 3, pointer=ib([0, 1, 2, 3])), AxisDescriptor(1, 3)]
        with pytest.raises(IllegalFormatSequence) as info:
            TensorDescriptor(axes, np.zeros(9))
        assert info.value.rule == 3
