"""
Tests for TensorDescriptor construction, properties and ownership.
"""

import pytest
import numpy as np
from bintensor.error import SizeMismatch
from bintensor.tensor import (
    AxisDescriptor,
    AxisFormat,
    Buffer,
    ElementType,
    Ownership,
    TensorDescriptor,
    to_generic,
)


def ib(values):
    return Buffer.from_list(values, ElementType.INT64)


def csr_axes():
    return [
        AxisDescriptor(0, 3, pointer=ib([0, 1, 1, 3])),
        AxisDescriptor(1, 3, index=ib([1, 0, 2])),
    ]


class TestConstruction:
    """Test descriptor construction."""

    def test_basic(self):
        t = TensorDescriptor(csr_axes(), [5.0, 7.0, 9.0])
        assert t.rank == 2
        assert t.formats == (AxisFormat.SPARSE, AxisFormat.INDEX)
        assert t.layout_string == "SI"
        assert t.nvals == 3
        assert t.element_type is ElementType.FLOAT64
        assert t.element_size == 8

    def test_explicit_element_type(self):
        t = TensorDescriptor(csr_axes(), [5, 7, 9], element_type='int32')
        assert t.element_type is ElementType.INT32
        assert t.values.to_numpy().dtype == np.int32

    def test_values_length_checked(self):
        with pytest.raises(SizeMismatch) as info:
            TensorDescriptor(csr_axes(), [5.0, 7.0])
        assert info.value.axis_index is None
        assert info.value.field == 'values'

    def test_nvals_checked(self):
        with pytest.raises(SizeMismatch) as info:
            TensorDescriptor(csr_axes(), [5.0, 7.0, 9.0], nvals=4)
        assert info.value.field == 'nvals'

    def test_iso_valued(self):
        t = TensorDescriptor(csr_axes(), [2.0], iso_valued=True)
        assert t.iso_valued
        assert t.iso_value() == 2.0
        assert t.expanded_values().tolist() == [2.0, 2.0, 2.0]

    def test_iso_needs_single_value(self):
        with pytest.raises(SizeMismatch):
            TensorDescriptor(csr_axes(), [2.0, 2.0, 2.0], iso_valued=True)

    def test_iso_with_zero_entries(self):
        axes = [AxisDescriptor(0, 3, pointer=ib([0, 0, 0, 0])), AxisDescriptor(1, 3, index=ib([]))]
        t = TensorDescriptor(axes, [1.0], iso_valued=True)
        assert t.nvals == 0

    def test_scalar(self):
        t = TensorDescriptor([], [4.0])
        assert t.rank == 0
        assert t.shape == ()
        assert t.nvals == 1

    def test_metadata_must_be_string(self):
        with pytest.raises(TypeError):
            TensorDescriptor(csr_axes(), [5.0, 7.0, 9.0], metadata={'a': 1})

    def test_user_type(self):
        values = np.zeros(3, dtype='V12')
        t = TensorDescriptor(csr_axes(), Buffer.from_numpy(values, 'user', element_size=12))
        assert t.element_type is ElementType.USER
        assert t.element_size == 12


class TestShape:
    def test_shape_follows_order(self):
        axes = [
            AxisDescriptor(1, 4, pointer=ib([0, 1, 1, 2, 2])),
            AxisDescriptor(0, 2, index=ib([1, 0])),
        ]
        t = TensorDescriptor(axes, [3.0, 4.0])
        assert t.shape == (2, 4)
        assert t.storage_shape == (4, 2)
        assert t.order == (1, 0)

    def test_index_types(self):
        axes = [
            AxisDescriptor(0, 3, pointer=Buffer.from_list([0, 1, 1, 3], 'int32')),
            AxisDescriptor(1, 3, index=Buffer.from_list([1, 0, 2], 'uint16')),
        ]
        t = TensorDescriptor(axes, [5.0, 7.0, 9.0])
        assert t.pointer_type is ElementType.INT32
        assert t.index_type is ElementType.UINT16

    def test_index_types_default_from_config(self):
        t = TensorDescriptor([AxisDescriptor(0, 2)], [1.0, 2.0])
        assert t.pointer_type is ElementType.INT64
        assert t.index_type is ElementType.INT64


class TestImmutability:
    def test_buffers_frozen(self):
        t = TensorDescriptor(csr_axes(), [5.0, 7.0, 9.0])
        with pytest.raises(ValueError):
            t.values.to_numpy()[0] = 1.0
        with pytest.raises(ValueError):
            t.axes[0].pointer.to_numpy()[0] = 1

    def test_borrowed_source_stays_writable(self):
        data = np.array([5.0, 7.0, 9.0])
        t = TensorDescriptor(csr_axes(), Buffer.from_numpy(data, copy=False))
        assert t.ownership is Ownership.BORROWED
        assert data.flags.writeable

    def test_caller_buffers_stay_writable(self):
        row_ptr = ib([0, 1, 1, 3])
        colind = ib([1, 0, 2])
        values = Buffer.from_list([5.0, 7.0, 9.0], 'float64')
        t = to_generic('csr', (3, 3), {'row_ptr': row_ptr, 'colind': colind, 'values': values})
        assert not row_ptr.readonly
        assert not colind.readonly
        assert not values.readonly
        assert t.axes[0].pointer.readonly
        assert t.values.readonly
        assert t.axes[0].pointer is not row_ptr

    def test_aliases_share_memory(self):
        values = Buffer.from_list([5.0, 7.0, 9.0], 'float64')
        t = TensorDescriptor(csr_axes(), values)
        values.to_numpy()[0] = 1.0
        assert t.values.tolist() == [1.0, 7.0, 9.0]
        assert t.ownership is Ownership.OWNED


class TestOwnership:
    def test_view(self):
        t = TensorDescriptor(csr_axes(), [5.0, 7.0, 9.0])
        v = t.view()
        assert v.is_view
        assert t in v.ref_chain
        assert v.values.to_numpy().base is not None
        assert v.formats == t.formats

    def test_copy(self):
        t = TensorDescriptor(csr_axes(), [5.0, 7.0, 9.0])
        c = t.copy()
        assert c.ownership is Ownership.OWNED
        assert c.values.equals(t.values)
        assert c.values is not t.values

    def test_with_metadata(self):
        t = TensorDescriptor(csr_axes(), [5.0, 7.0, 9.0], metadata='{"a": 1}')
        m = t.with_metadata('{"b": 2}')
        assert m.metadata == '{"b": 2}'
        assert t.metadata == '{"a": 1}'

    def test_repr(self):
        t = TensorDescriptor(csr_axes(), [5.0, 7.0, 9.0])
        assert "SI" in repr(t)
