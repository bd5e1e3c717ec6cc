"""Handle-indexed arenas for type and constant tables.

Types reference other types (and constants) only by handle. An arena is
append-only, so a handle stays valid for the lifetime of the arena that
produced it and iteration order always equals handle order.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, Generic, Iterator, List, Tuple, TypeVar

from gpu_layout.internals.errors import raise_internal_error

T = TypeVar("T")


@dataclass(frozen=True, order=True)
class Handle(Generic[T]):
    """Dense, zero-based reference into an Arena."""
    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"handle index must be non-negative, got {self.index}")

    def __str__(self) -> str:
        return f"[{self.index}]"


@dataclass
class Arena(Generic[T]):
    """Append-only, insertion-ordered collection addressed by Handle."""
    data: List[T] = field(default_factory=list)
    _lookup: Dict[T, Handle[T]] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for index, value in enumerate(self.data):
            self._lookup.setdefault(value, Handle(index))

    def append(self, value: T) -> Handle[T]:
        handle: Handle[T] = Handle(len(self.data))
        self.data.append(value)
        self._lookup.setdefault(value, handle)
        return handle

    def fetch_or_append(self, value: T) -> Handle[T]:
        """Return the handle of an equal value, appending it if absent."""
        handle = self._lookup.get(value)
        if handle is None:
            handle = self.append(value)
        return handle

    def fetch_if(self, value: T) -> Handle[T] | None:
        return self._lookup.get(value)

    def contains(self, handle: Handle[T]) -> bool:
        return 0 <= handle.index < len(self.data)

    def items(self) -> Iterator[Tuple[Handle[T], T]]:
        for index, value in enumerate(self.data):
            yield Handle(index), value

    def __getitem__(self, handle: Handle[T]) -> T:
        if not self.contains(handle):
            raise_internal_error("CE0005", handle=handle, count=len(self.data))
        return self.data[handle.index]

    def __iter__(self) -> Iterator[T]:
        return iter(self.data)

    def __len__(self) -> int:
        return len(self.data)
