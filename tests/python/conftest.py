"""
Pytest configuration and shared fixtures for bintensor tests.
"""

import pytest
import numpy as np
from pathlib import Path
import sys

# Add src to path for imports
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root / "src"))

from bintensor import config
from bintensor.tensor import to_generic


# Try to import scipy
try:
    import scipy.sparse as sp
    HAS_SCIPY = True
except ImportError:
    HAS_SCIPY = False


# Try to import h5py
try:
    import h5py
    HAS_H5PY = True
except ImportError:
    HAS_H5PY = False


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def requires_scipy():
    """Skip test if scipy is not available."""
    if not HAS_SCIPY:
        pytest.skip("scipy not available")


@pytest.fixture(scope="session")
def requires_h5py():
    """Skip test if h5py is not available."""
    if not HAS_H5PY:
        pytest.skip("h5py not available")


@pytest.fixture(autouse=True)
def reset_config():
    """Restore global configuration after every test."""
    yield
    config.reset()


@pytest.fixture
def dense_3x3():
    """Dense 3x3 matrix with three entries.

    Matrix:
    [[0, 5, 0],
     [0, 0, 0],
     [7, 0, 9]]
    """
    return np.array([
        [0, 5, 0],
        [0, 0, 0],
        [7, 0, 9],
    ], dtype=np.float64)


@pytest.fixture
def coo_3x3():
    """COO form of dense_3x3, row-major and sorted."""
    return to_generic('coo', (3, 3), {
        'rowind': np.array([0, 2, 2], dtype=np.int64),
        'colind': np.array([1, 0, 2], dtype=np.int64),
        'values': np.array([5.0, 7.0, 9.0]),
    }, in_order=True)


@pytest.fixture
def csr_3x3():
    """CSR form of dense_3x3."""
    return to_generic('csr', (3, 3), {
        'row_ptr': np.array([0, 1, 1, 3], dtype=np.int64),
        'colind': np.array([1, 0, 2], dtype=np.int64),
        'values': np.array([5.0, 7.0, 9.0]),
    }, in_order=True)


@pytest.fixture
def csr_4x5():
    """CSR matrix with m=4, n=5 and six entries.

    Matrix:
    [[1, 0, 2, 0, 0],
     [0, 0, 0, 3, 0],
     [0, 0, 0, 0, 0],
     [4, 5, 0, 0, 6]]
    """
    return to_generic('csr', (4, 5), {
        'row_ptr': np.array([0, 2, 3, 3, 6], dtype=np.int64),
        'colind': np.array([0, 2, 3, 0, 1, 4], dtype=np.int64),
        'values': np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0]),
    }, in_order=True)


@pytest.fixture
def random_coords():
    """Random unique coordinates of a 6x7x5 tensor with values."""
    rng = np.random.default_rng(42)
    shape = (6, 7, 5)
    flat = rng.choice(int(np.prod(shape)), size=40, replace=False)
    coords = np.stack(np.unravel_index(flat, shape), axis=1).astype(np.int64)
    values = rng.standard_normal(40)
    return coords, values, shape


# =============================================================================
# Helper Functions
# =============================================================================

def dense_from_entries(coords, values, shape, fill=0):
    """Build a dense numpy array from a coordinate list."""
    dense = np.full(shape, fill, dtype=np.asarray(values).dtype)
    for c, v in zip(coords, values):
        dense[tuple(c)] = v
    return dense
