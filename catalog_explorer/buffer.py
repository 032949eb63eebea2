"""
Growable Buffer

Amortized-doubling dynamic array.  Used for everything built incrementally
during an index build: facet value tables, the record list, the per-record
overflow scratch list and the arena's block list.

Capacity grows to ``max(2 * capacity, max(requested_length, 16))``; ``clear()``
drops the contents but keeps the capacity so scratch buffers can be reused
record after record.
"""

from typing import Any, Callable, Generic, Iterator, List, Optional, Tuple, TypeVar


T = TypeVar("T")

MIN_CAPACITY = 16


class GrowBuffer(Generic[T]):
    """Dynamic array with explicit length/capacity bookkeeping."""

    __slots__ = ("_items", "_len")

    def __init__(self) -> None:
        self._items: List[Optional[T]] = []
        self._len = 0

    # ------------------------------------------------------------------
    # Capacity
    # ------------------------------------------------------------------

    @property
    def capacity(self) -> int:
        return len(self._items)

    def fit(self, n: int) -> None:
        """Make sure at least ``n`` slots are available."""
        if n <= len(self._items):
            return
        new_cap = max(2 * len(self._items), max(n, MIN_CAPACITY))
        self._items.extend([None] * (new_cap - len(self._items)))

    def resize(self, n: int) -> None:
        self.fit(n)
        for i in range(n, self._len):
            self._items[i] = None
        self._len = n

    def clear(self) -> None:
        """Reset the length to zero, keeping the capacity."""
        for i in range(self._len):
            self._items[i] = None
        self._len = 0

    def free(self) -> None:
        """Release the contents and the capacity."""
        self._items = []
        self._len = 0

    # ------------------------------------------------------------------
    # Element access
    # ------------------------------------------------------------------

    def append(self, value: T) -> None:
        self.fit(self._len + 1)
        self._items[self._len] = value
        self._len += 1

    def pop(self) -> T:
        if not self._len:
            raise IndexError("pop from empty buffer")
        self._len -= 1
        value = self._items[self._len]
        self._items[self._len] = None
        return value  # type: ignore[return-value]

    def __getitem__(self, index: int) -> T:
        if index < 0:
            index += self._len
        if not 0 <= index < self._len:
            raise IndexError(f"buffer index {index} out of range")
        return self._items[index]  # type: ignore[return-value]

    def __setitem__(self, index: int, value: T) -> None:
        if index < 0:
            index += self._len
        if not 0 <= index < self._len:
            raise IndexError(f"buffer index {index} out of range")
        self._items[index] = value

    def __len__(self) -> int:
        return self._len

    def __iter__(self) -> Iterator[T]:
        for i in range(self._len):
            yield self._items[i]  # type: ignore[misc]

    def sort(self, key: Callable[[T], Any]) -> None:
        """Sort the live items in place (stable)."""
        live = self._items[:self._len]
        live.sort(key=key)  # type: ignore[arg-type]
        self._items[:self._len] = live

    def snapshot(self) -> Tuple[T, ...]:
        """Immutable copy of the live items."""
        return tuple(self._items[:self._len])  # type: ignore[arg-type]

    def __repr__(self) -> str:
        return f"GrowBuffer(len={self._len}, capacity={self.capacity})"
