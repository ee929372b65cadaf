"""
Tests for the global configuration system.
"""

import threading

import pytest
import numpy as np
from bintensor import config, get_config, set_check_contents, set_index_types
from bintensor._config import ConvertConfig, IndexConfig, ValidationConfig
from bintensor.error import SizeMismatch
from bintensor.tensor import (
    AxisDescriptor,
    Buffer,
    ElementType,
    TensorDescriptor,
    from_entries,
)


def bad_csr_axes():
    # colind holds 3 in a dimension of 3
    return [
        AxisDescriptor(0, 3, pointer=Buffer.from_list([0, 1, 1, 3], 'int64')),
        AxisDescriptor(1, 3, index=Buffer.from_list([1, 0, 3], 'int64')),
    ]


class TestDefaults:
    def test_defaults(self):
        cfg = get_config()
        assert cfg is config
        assert cfg.validation.check_contents
        assert cfg.index.pointer_type is ElementType.INT64
        assert cfg.convert.fill_value == 0
        assert cfg.convert.verify_order

    def test_to_dict(self):
        d = config.to_dict()
        assert d['index'] == {'pointer_type': 'int64', 'index_type': 'int64'}
        assert d['validation'] == {'check_contents': True}
        assert d['convert']['fill_value'] == 0

    def test_reset(self):
        set_index_types(index_type='int32')
        config.reset()
        assert config.index.index_type is ElementType.INT64


class TestSetters:
    def test_set_index_types(self):
        set_index_types(pointer_type='int32', index_type=ElementType.UINT16)
        assert config.index == IndexConfig(ElementType.INT32, ElementType.UINT16)
        t = from_entries([[1, 2]], [1.0], (3, 3))
        assert t.index_type is ElementType.UINT16

    def test_set_index_types_partial(self):
        set_index_types(index_type='int32')
        assert config.index.pointer_type is ElementType.INT64

    def test_set_index_types_rejects_floats(self):
        with pytest.raises(ValueError):
            set_index_types(pointer_type='float64')
        assert config.index.pointer_type is ElementType.INT64

    def test_set_check_contents(self):
        set_check_contents(False)
        t = TensorDescriptor(bad_csr_axes(), [1.0, 2.0, 3.0])
        assert t.nvals == 3
        set_check_contents(True)
        with pytest.raises(SizeMismatch):
            TensorDescriptor(bad_csr_axes(), [1.0, 2.0, 3.0])


class TestLocal:
    def test_local_override(self):
        with config.local(validation=ValidationConfig(check_contents=False)):
            assert not config.validation.check_contents
            TensorDescriptor(bad_csr_axes(), [1.0, 2.0, 3.0])
        assert config.validation.check_contents

    def test_nested(self):
        with config.local(convert=ConvertConfig(fill_value=1)):
            with config.local(convert=ConvertConfig(fill_value=2)):
                assert config.convert.fill_value == 2
            assert config.convert.fill_value == 1
        assert config.convert.fill_value == 0

    def test_unknown_section(self):
        with pytest.raises(ValueError):
            config.local(logging=None)

    def test_thread_isolation(self):
        seen = []

        def worker():
            seen.append(config.convert.fill_value)

        with config.local(convert=ConvertConfig(fill_value=np.nan)):
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()
        assert seen == [0]

    def test_restored_after_error(self):
        with pytest.raises(RuntimeError):
            with config.local(index=IndexConfig(index_type=ElementType.INT8)):
                raise RuntimeError("boom")
        assert config.index.index_type is ElementType.INT64
