"""A FIFO queue of process ids with a cursor that can remove while iterating."""

from __future__ import annotations

from typing import Iterator


class PidQueue:
    """First-in first-out queue with an embedded iteration cursor."""

    def __init__(self):
        self._items: list[int] = []
        self._cursor = 0
        self._last: int | None = None

    def _removed_at(self, index: int) -> None:
        if index < self._cursor:
            self._cursor -= 1
        if self._last is not None:
            if index == self._last:
                self._last = None
            elif index < self._last:
                self._last -= 1

    def add(self, value: int) -> None:
        self._items.append(value)

    def poll(self) -> int:
        """Remove and return the first value."""
        if not self._items:
            raise IndexError("poll from an empty queue")
        value = self._items.pop(0)
        self._removed_at(0)
        return value

    def remove(self, value: int) -> bool:
        """Remove the first occurrence of value; returns whether it was present."""
        try:
            index = self._items.index(value)
        except ValueError:
            return False
        del self._items[index]
        self._removed_at(index)
        return True

    def is_empty(self) -> bool:
        return not self._items

    def to_begin(self) -> None:
        """Reset the cursor to the front of the queue."""
        self._cursor = 0
        self._last = None

    def has_next(self) -> bool:
        return self._cursor < len(self._items)

    def next(self) -> int:
        """Return the value under the cursor and advance it."""
        if not self.has_next():
            raise IndexError("no more values in the queue")
        value = self._items[self._cursor]
        self._last = self._cursor
        self._cursor += 1
        return value

    def remove_current(self) -> bool:
        """Remove the value last returned by next(); False if there is none."""
        if self._last is None:
            return False
        index = self._last
        del self._items[index]
        self._removed_at(index)
        return True

    def __contains__(self, value) -> bool:
        return value in self._items

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._items))

    def __len__(self) -> int:
        return len(self._items)