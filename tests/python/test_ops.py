"""
Tests for interop helpers.

Tests the functions in bintensor.tensor._ops:
- Dense: from_dense, to_dense
- Coordinates: from_entries
- scipy.sparse: from_scipy, to_scipy
- Comparison: equivalent
"""

import pytest
import numpy as np
from bintensor.error import DimensionMismatch
from bintensor.tensor import (
    AxisFormat,
    ElementType,
    NamedFormat,
    convert_to,
    equivalent,
    from_dense,
    from_entries,
    from_scipy,
    to_dense,
    to_scipy,
)

from conftest import HAS_SCIPY

if HAS_SCIPY:
    import scipy.sparse as sp


# =============================================================================
# Dense
# =============================================================================

class TestDense:
    """Test dense array round trips."""

    def test_default_is_all_full(self, dense_3x3):
        t = from_dense(dense_3x3)
        assert t.formats == (AxisFormat.FULL, AxisFormat.FULL)
        assert t.nvals == 9
        np.testing.assert_array_equal(to_dense(t), dense_3x3)

    def test_column_major(self, dense_3x3):
        t = from_dense(dense_3x3, order=(1, 0))
        assert t.order == (1, 0)
        assert t.values.tolist() == dense_3x3.T.reshape(-1).tolist()
        np.testing.assert_array_equal(to_dense(t), dense_3x3)

    def test_with_formats_keeps_zeros(self, dense_3x3):
        t = from_dense(dense_3x3, "SI")
        assert t.named_format is NamedFormat.CSR
        assert t.nvals == 9

    def test_element_type(self, dense_3x3):
        t = from_dense(dense_3x3, element_type='float32')
        assert t.element_type is ElementType.FLOAT32
        assert to_dense(t).dtype == np.float32

    def test_rank3(self):
        arr = np.arange(24.0).reshape(2, 3, 4)
        t = from_dense(arr, order=(2, 0, 1))
        assert t.shape == (2, 3, 4)
        np.testing.assert_array_equal(to_dense(t), arr)

    def test_scalar(self):
        t = from_dense(np.float64(3.0))
        assert t.rank == 0
        assert to_dense(t) == 3.0

    def test_order_must_be_permutation(self, dense_3x3):
        with pytest.raises(ValueError):
            from_dense(dense_3x3, order=(0, 0))

    def test_to_dense_fill_value(self, csr_3x3):
        dense = to_dense(csr_3x3, fill_value=-1.0)
        assert dense[1].tolist() == [-1.0, -1.0, -1.0]
        assert dense[0, 1] == 5.0

    def test_to_dense_returns_writable_copy(self, csr_3x3):
        dense = to_dense(csr_3x3)
        dense[0, 0] = 1.0
        assert to_dense(csr_3x3)[0, 0] == 0.0


# =============================================================================
# Coordinates
# =============================================================================

class TestEntries:
    """Test building from coordinate lists."""

    def test_unsorted_coo(self):
        t = from_entries([[2, 0], [0, 1]], [7.0, 5.0], (3, 3))
        assert t.named_format is NamedFormat.COO
        assert not any(axis.in_order for axis in t.axes)
        assert t.axes[0].index.tolist() == [2, 0]

    def test_with_formats(self):
        t = from_entries([[2, 0], [0, 1], [2, 2]], [7.0, 5.0, 9.0], (3, 3), "SI")
        assert t.axes[0].pointer.tolist() == [0, 1, 1, 3]
        assert t.values.tolist() == [5.0, 7.0, 9.0]

    def test_order_only_sorts_coo(self):
        t = from_entries([[2, 0], [0, 1]], [7.0, 5.0], (3, 3), order=(1, 0))
        assert t.order == (1, 0)
        assert t.axes[0].index.tolist() == [0, 1]
        assert all(axis.in_order for axis in t.axes)

    def test_vector_coords(self):
        t = from_entries([3, 1], [1.0, 2.0], (5,))
        assert t.rank == 1
        assert to_dense(t).tolist() == [0.0, 2.0, 0.0, 1.0, 0.0]

    def test_bad_coords_shape(self):
        with pytest.raises(ValueError):
            from_entries([[0, 1, 2]], [1.0], (3, 3))

    def test_iso(self):
        t = from_entries([[0, 0], [1, 1]], [4.0], (2, 2), iso_valued=True)
        assert t.iso_valued
        assert to_dense(t).tolist() == [[4.0, 0.0], [0.0, 4.0]]


# =============================================================================
# scipy.sparse
# =============================================================================

class TestScipy:
    """Test scipy.sparse interop."""

    def test_from_csr(self, requires_scipy, dense_3x3):
        t = from_scipy(sp.csr_matrix(dense_3x3))
        assert t.named_format is NamedFormat.CSR
        assert t.axes[0].pointer.tolist() == [0, 1, 1, 3]
        assert t.axes[1].in_order
        np.testing.assert_array_equal(to_dense(t), dense_3x3)

    def test_from_csc(self, requires_scipy, dense_3x3):
        t = from_scipy(sp.csc_matrix(dense_3x3))
        assert t.named_format is NamedFormat.CSC
        np.testing.assert_array_equal(to_dense(t), dense_3x3)

    def test_from_coo(self, requires_scipy, dense_3x3):
        t = from_scipy(sp.coo_matrix(dense_3x3))
        assert t.named_format is NamedFormat.COO
        assert not t.axes[0].in_order
        np.testing.assert_array_equal(to_dense(t), dense_3x3)

    def test_other_formats_go_through_csr(self, requires_scipy, dense_3x3):
        t = from_scipy(sp.lil_matrix(dense_3x3))
        assert t.named_format is NamedFormat.CSR

    def test_unsorted_indices(self, requires_scipy):
        mat = sp.csr_matrix(
            (np.array([1.0, 2.0]), np.array([2, 0]), np.array([0, 2])), shape=(1, 3)
        )
        mat.has_sorted_indices = False
        t = from_scipy(mat)
        assert not t.axes[1].in_order
        coo = convert_to(t, 'coo')
        assert coo.axes[1].index.tolist() == [0, 2]

    def test_rejects_dense(self, requires_scipy, dense_3x3):
        with pytest.raises(TypeError):
            from_scipy(dense_3x3)

    @pytest.mark.parametrize("fmt", ['csr', 'csc', 'coo'])
    def test_to_scipy(self, requires_scipy, csr_3x3, dense_3x3, fmt):
        mat = to_scipy(csr_3x3, fmt)
        assert mat.format == fmt
        assert mat.shape == (3, 3)
        np.testing.assert_array_equal(mat.toarray(), dense_3x3)

    def test_to_scipy_from_dcsc(self, requires_scipy, csr_4x5):
        dcsc = convert_to(csr_4x5, 'dcsc')
        mat = to_scipy(dcsc, 'csr')
        np.testing.assert_array_equal(mat.toarray(), to_dense(csr_4x5))

    def test_to_scipy_rank_check(self, requires_scipy):
        with pytest.raises(ValueError):
            to_scipy(from_dense(np.zeros(3)))

    def test_to_scipy_unknown_format(self, requires_scipy, csr_3x3):
        with pytest.raises(ValueError):
            to_scipy(csr_3x3, 'bsr')

    def test_round_trip(self, requires_scipy):
        mat = sp.random(20, 15, density=0.2, format='csr', random_state=0)
        back = to_scipy(from_scipy(mat), 'csr')
        assert (back != mat).nnz == 0


# =============================================================================
# Comparison
# =============================================================================

class TestEquivalent:
    """Test layout-independent equality."""

    def test_same_entries_different_layouts(self, csr_3x3, coo_3x3):
        assert equivalent(csr_3x3, coo_3x3)
        assert equivalent(convert_to(csr_3x3, 'dcsc'), coo_3x3)

    def test_unsorted_entries(self, coo_3x3):
        shuffled = from_entries([[2, 2], [0, 1], [2, 0]], [9.0, 5.0, 7.0], (3, 3))
        assert equivalent(shuffled, coo_3x3)

    def test_different_values(self, coo_3x3):
        other = from_entries([[0, 1], [2, 0], [2, 2]], [5.0, 7.0, 8.0], (3, 3))
        assert not equivalent(other, coo_3x3)

    def test_explicit_zeros_count(self, csr_3x3, dense_3x3):
        assert not equivalent(from_dense(dense_3x3), csr_3x3)

    def test_iso_against_materialised(self):
        iso = from_entries([[0, 0], [1, 1]], [2.0], (2, 2), iso_valued=True)
        plain = from_entries([[1, 1], [0, 0]], [2.0, 2.0], (2, 2))
        assert equivalent(iso, plain)

    def test_shape_mismatch(self, csr_3x3, csr_4x5):
        with pytest.raises(DimensionMismatch):
            equivalent(csr_3x3, csr_4x5)
