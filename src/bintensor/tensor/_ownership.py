"""Ownership and Reference Management.

Tracks who owns the buffers of a tensor and keeps the sources of aliased
buffers alive.

Key Concepts:
    - OWNED: buffers were allocated or copied for this object.
    - BORROWED: buffers wrap caller-provided numpy arrays without a copy;
      the caller keeps responsibility for not mutating them.
    - VIEW: buffers are read-only aliases of another object's buffers
      (identity conversion). The source is held in a RefChain so it can
      never be collected while the view exists.

Reference chains are flattened: a view of a view references the
original owner directly.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List

__all__ = [
    'Ownership',
    'RefChain',
]


class Ownership(Enum):
    """Buffer ownership model.

    Attributes:
        OWNED: Object owns its buffers.
        BORROWED: Object wraps external arrays without copying.
        VIEW: Object aliases another object's buffers read-only.
    """
    OWNED = 'owned'
    BORROWED = 'borrowed'
    VIEW = 'view'


# =============================================================================
# Reference Chain
# =============================================================================

@dataclass
class RefChain:
    """Back-references from a view to the objects whose buffers it aliases.

    Attributes:
        _refs: Strong references to ancestors, identity-deduplicated.

    Example:
        >>> csr = to_generic(NamedFormat.CSR, ...)
        >>> same = convert(csr, csr.formats)   # identity: view of csr
        >>> same.ref_chain.sources[0] is csr
        True
    """
    _refs: List[Any] = field(default_factory=list)

    def add(self, source: Any) -> None:
        """Add source to the chain, flattening its own chain into ours."""
        if source is None:
            return
        self._append(source)
        chain = getattr(source, '_ref_chain', None)
        if chain is not None:
            for ancestor in chain._refs:
                self._append(ancestor)

    def _append(self, obj: Any) -> None:
        for held in self._refs:
            if held is obj:
                return
        self._refs.append(obj)

    @property
    def sources(self) -> List[Any]:
        """Referenced objects, direct source first."""
        return list(self._refs)

    @property
    def count(self) -> int:
        return len(self._refs)

    @property
    def is_empty(self) -> bool:
        return len(self._refs) == 0

    def __contains__(self, obj: Any) -> bool:
        return any(held is obj for held in self._refs)

    def __repr__(self) -> str:
        return f"RefChain(count={self.count})"
