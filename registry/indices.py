"""Position-id sets backed by a dense arena and an id -> slot map.

Removal swaps the target with the last element and truncates, so add,
remove and membership are O(1).  Enumeration order is therefore NOT
preserved across removals; only membership and count are meaningful.
"""

from __future__ import annotations

from typing import Generic, Hashable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)


class PositionSet:
    """Unordered set of position ids with O(1) swap-and-truncate removal."""

    __slots__ = ("_items", "_slots")

    def __init__(self) -> None:
        self._items: list[int] = []
        # position id -> index into _items
        self._slots: dict[int, int] = {}

    def add(self, position_id: int) -> bool:
        """Insert *position_id*; returns False if it was already present."""
        if position_id in self._slots:
            return False
        self._slots[position_id] = len(self._items)
        self._items.append(position_id)
        return True

    def remove(self, position_id: int) -> int | None:
        """Remove *position_id*; returns the slot it occupied, or None if absent."""
        slot = self._slots.pop(position_id, None)
        if slot is None:
            return None
        last = self._items.pop()
        if last != position_id:
            self._items[slot] = last
            self._slots[last] = slot
        return slot

    def restore(self, position_id: int, slot: int) -> None:
        """Exact inverse of the ``remove`` that returned *slot*.

        Only valid when no other mutation happened in between.
        """
        if slot == len(self._items):
            self._slots[position_id] = slot
            self._items.append(position_id)
            return
        displaced = self._items[slot]
        self._slots[displaced] = len(self._items)
        self._items.append(displaced)
        self._items[slot] = position_id
        self._slots[position_id] = slot

    def slice(self, offset: int, limit: int) -> list[int]:
        """Return up to *limit* ids starting at *offset*; empty past the end."""
        if offset >= len(self._items):
            return []
        return self._items[offset : offset + limit]

    def to_list(self) -> list[int]:
        return list(self._items)

    def __contains__(self, position_id: object) -> bool:
        return position_id in self._slots

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._items))


class PositionIndex(Generic[K]):
    """Maps a key (owner address, pool id) to the :class:`PositionSet` it holds.

    Keys whose set becomes empty are dropped.
    """

    def __init__(self) -> None:
        self._sets: dict[K, PositionSet] = {}

    def add(self, key: K, position_id: int) -> bool:
        return self._sets.setdefault(key, PositionSet()).add(position_id)

    def remove(self, key: K, position_id: int) -> int | None:
        ids = self._sets.get(key)
        if ids is None:
            return None
        slot = ids.remove(position_id)
        if not ids:
            del self._sets[key]
        return slot

    def restore(self, key: K, position_id: int, slot: int) -> None:
        self._sets.setdefault(key, PositionSet()).restore(position_id, slot)

    def get(self, key: K) -> list[int]:
        ids = self._sets.get(key)
        return ids.to_list() if ids is not None else []

    def slice(self, key: K, offset: int, limit: int) -> list[int]:
        ids = self._sets.get(key)
        return ids.slice(offset, limit) if ids is not None else []

    def count(self, key: K) -> int:
        ids = self._sets.get(key)
        return len(ids) if ids is not None else 0

    def contains(self, key: K, position_id: int) -> bool:
        ids = self._sets.get(key)
        return ids is not None and position_id in ids

    def keys(self) -> list[K]:
        return list(self._sets.keys())
