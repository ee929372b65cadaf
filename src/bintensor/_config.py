"""
bintensor Config - Global Configuration System

Provides dataclass-based configuration for validation, index types and
conversion defaults. Settings can be changed globally or overridden
locally (thread-local) within a context.

Example:
    >>> from bintensor import get_config
    >>> cfg = get_config()
    >>> cfg.validation.check_contents
    True
    >>> with cfg.local(validation=ValidationConfig(check_contents=False)):
    ...     tensor = TensorDescriptor(...)   # skips O(nnz) buffer scans
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Union

from ._dtypes import ElementType, normalize_element_type


def _env_skip_content_check() -> bool:
    return os.environ.get("BINTENSOR_SKIP_CONTENT_CHECK", "").lower() in ("1", "true", "yes")


# =============================================================================
# Configuration Sections
# =============================================================================

@dataclass
class ValidationConfig:
    """Configuration for descriptor validation."""
    check_contents: bool = True     # Scan pointer/index buffers, not only sizes


@dataclass
class IndexConfig:
    """Default integer types for pointer and index buffers."""
    pointer_type: ElementType = ElementType.INT64
    index_type: ElementType = ElementType.INT64


@dataclass
class ConvertConfig:
    """Configuration for format conversion."""
    fill_value: Any = 0             # Value for slots created by densifying
    verify_order: bool = True       # Verify in_order claims before trusting them


# =============================================================================
# Global Configuration Manager
# =============================================================================

class BinTensorConfig:
    """
    Global configuration manager.

    Each section can be overridden per thread with ``local()``; the
    global values are used everywhere else.
    """

    _SECTIONS = ("validation", "index", "convert")

    def __init__(self):
        self._global_validation = ValidationConfig(check_contents=not _env_skip_content_check())
        self._global_index = IndexConfig()
        self._global_convert = ConvertConfig()

        self._local = threading.local()

    # -------------------------------------------------------------------------
    # Property Accessors (with thread-local override support)
    # -------------------------------------------------------------------------

    @property
    def validation(self) -> ValidationConfig:
        local = getattr(self._local, "validation", None)
        return local if local is not None else self._global_validation

    @validation.setter
    def validation(self, value: ValidationConfig):
        self._global_validation = value

    @property
    def index(self) -> IndexConfig:
        local = getattr(self._local, "index", None)
        return local if local is not None else self._global_index

    @index.setter
    def index(self, value: IndexConfig):
        self._global_index = value

    @property
    def convert(self) -> ConvertConfig:
        local = getattr(self._local, "convert", None)
        return local if local is not None else self._global_convert

    @convert.setter
    def convert(self, value: ConvertConfig):
        self._global_convert = value

    # -------------------------------------------------------------------------
    # Context Manager Support
    # -------------------------------------------------------------------------

    def local(self, **kwargs) -> "_LocalConfigContext":
        """
        Create a local configuration context.

        Args:
            **kwargs: Section overrides (validation, index, convert)

        Returns:
            Context manager
        """
        unknown = set(kwargs) - set(self._SECTIONS)
        if unknown:
            raise ValueError(f"Unknown config sections: {sorted(unknown)}")
        return _LocalConfigContext(self, **kwargs)

    def _set_local(self, **kwargs) -> Dict[str, Any]:
        previous = {}
        for key, value in kwargs.items():
            previous[key] = getattr(self._local, key, None)
            setattr(self._local, key, value)
        return previous

    def _restore_local(self, previous: Dict[str, Any]):
        for key, value in previous.items():
            setattr(self._local, key, value)

    def reset(self):
        """Reset all configurations to defaults."""
        self._global_validation = ValidationConfig(check_contents=not _env_skip_content_check())
        self._global_index = IndexConfig()
        self._global_convert = ConvertConfig()

    def to_dict(self) -> Dict[str, Any]:
        """Export configuration as dictionary."""
        index = self.index
        return {
            "validation": asdict(self.validation),
            "index": {
                "pointer_type": index.pointer_type.value,
                "index_type": index.index_type.value,
            },
            "convert": asdict(self.convert),
        }

    def __repr__(self) -> str:
        return f"BinTensorConfig({self.to_dict()})"


class _LocalConfigContext:
    """Context manager for local configuration override."""

    def __init__(self, config: BinTensorConfig, **kwargs):
        self._config = config
        self._kwargs = kwargs
        self._previous: List[Dict[str, Any]] = []

    def __enter__(self):
        self._previous.append(self._config._set_local(**self._kwargs))
        return self._config

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._config._restore_local(self._previous.pop())
        return False


# =============================================================================
# Global Instance
# =============================================================================

config = BinTensorConfig()


def get_config() -> BinTensorConfig:
    """Get the global configuration instance."""
    return config


def set_index_types(
    pointer_type: Optional[Union[ElementType, str]] = None,
    index_type: Optional[Union[ElementType, str]] = None,
) -> None:
    """
    Set the default integer types used for new pointer/index buffers.

    Args:
        pointer_type: Integer element type for pointer buffers
        index_type: Integer element type for index buffers
    """
    current = config.index
    new_pointer = current.pointer_type if pointer_type is None else normalize_element_type(pointer_type)
    new_index = current.index_type if index_type is None else normalize_element_type(index_type)
    for et in (new_pointer, new_index):
        if not et.is_integer:
            raise ValueError(f"pointer/index types must be integer types, got {et.value}")
    config.index = IndexConfig(pointer_type=new_pointer, index_type=new_index)


def set_check_contents(enabled: bool = True) -> None:
    """Enable or disable buffer content scans during validation."""
    config.validation = ValidationConfig(check_contents=enabled)


__all__ = [
    "ValidationConfig",
    "IndexConfig",
    "ConvertConfig",
    "BinTensorConfig",
    "config",
    "get_config",
    "set_index_types",
    "set_check_contents",
]
