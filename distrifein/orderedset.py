"""A set that remembers insertion order."""

from __future__ import annotations

from typing import Generic, Hashable, Iterable, Iterator, TypeVar

T = TypeVar("T", bound=Hashable)


class OrderedSet(Generic[T]):
    """Unique elements iterated in the order they were first added."""

    def __init__(self, items: Iterable[T] = ()) -> None:
        self._items: dict[T, None] = {}
        for item in items:
            self.add(item)

    def add(self, value: T) -> None:
        """Add value unless an equal element is already present."""
        if value not in self._items:
            self._items[value] = None

    def clear(self) -> None:
        self._items.clear()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._items))

    def __contains__(self, value: object) -> bool:
        return value in self._items

    def __repr__(self) -> str:
        return f"OrderedSet({list(self._items)!r})"