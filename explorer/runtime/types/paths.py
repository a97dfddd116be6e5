"""Path types for addressing nodes in the explored state graph.

A path is the ordered sequence of action indices taken from the initial
state. The root is the empty sequence.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple


@dataclass(frozen=True)
class StatePath:
    """Immutable action-index path from the root state.

    Two paths are equal iff their index sequences are equal, so StatePath is
    safe to use as a cache key.

    Attributes:
        indices: Action indices from the root, in order.
    """

    indices: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        # Accept any iterable of ints but always store a tuple
        if not isinstance(self.indices, tuple):
            object.__setattr__(self, "indices", tuple(self.indices))
        for index in self.indices:
            if not isinstance(index, int) or isinstance(index, bool) or index < 0:
                raise ValueError(f"path indices must be non-negative ints, got {index!r}")

    @classmethod
    def root(cls) -> "StatePath":
        return cls(())

    @classmethod
    def of(cls, *indices: int) -> "StatePath":
        """Build a path from positional indices: ``StatePath.of(0, 2, 1)``."""
        return cls(tuple(indices))

    @property
    def is_root(self) -> bool:
        return not self.indices

    @property
    def parent(self) -> Optional["StatePath"]:
        """The path one action shorter, or None for the root."""
        if self.is_root:
            return None
        return StatePath(self.indices[:-1])

    @property
    def last_index(self) -> Optional[int]:
        return self.indices[-1] if self.indices else None

    def child(self, index: int) -> "StatePath":
        return StatePath(self.indices + (index,))

    def prefixes(self) -> List["StatePath"]:
        """All prefixes of this path, root first and self last."""
        return [StatePath(self.indices[:n]) for n in range(len(self.indices) + 1)]

    def __len__(self) -> int:
        return len(self.indices)

    def __iter__(self) -> Iterator[int]:
        return iter(self.indices)

    def __repr__(self) -> str:
        return f"StatePath({'/'.join(str(i) for i in self.indices)!r})"
