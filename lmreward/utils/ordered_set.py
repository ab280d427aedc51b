"""
Ordered address set used by every owner-gated registry.

A list keeps insertion order for enumeration and a dict maps each member
to its slot, so membership is O(1) and removal swaps the last member into
the vacated slot.
"""

from typing import Dict, Iterable, Iterator, List


class AddressSet:
    """Ordered set of addresses with swap-and-pop removal."""

    def __init__(self, items: Iterable[str] = ()) -> None:
        self._items: List[str] = []
        self._positions: Dict[str, int] = {}
        for item in items:
            self.add(item)

    def add(self, item: str) -> bool:
        """Add *item*. Returns False if it was already present."""
        if item in self._positions:
            return False
        self._positions[item] = len(self._items)
        self._items.append(item)
        return True

    def remove(self, item: str) -> bool:
        """Remove *item*. Returns False if it was not present."""
        position = self._positions.pop(item, None)
        if position is None:
            return False
        last = self._items.pop()
        if position < len(self._items):
            self._items[position] = last
            self._positions[last] = position
        return True

    def values(self) -> List[str]:
        return list(self._items)

    def __contains__(self, item: object) -> bool:
        return item in self._positions

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._items))

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AddressSet):
            return self._items == other._items
        return NotImplemented

    def __repr__(self) -> str:
        return f"AddressSet({self._items!r})"
