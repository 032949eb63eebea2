"""
Open-Addressing Hash Map (32-bit keys)

Linear-probing table keyed by non-zero 32-bit hashes.  Key 0 marks an empty
slot, so ``fnv1a_32`` and friends remap a zero hash to 1 and ``set()``
ignores key 0 altogether.

The map is generic over its value type so each use keeps its meaning
explicit: ``HashMap32[FacetValue]`` for string interning, playlist entry refs for
crc lookups, ``HashMap32[CoreInfo]`` for the core registry and
``HashMap32[int]`` for database slots and rank dedup.

Lookups of absent keys return the default (``None`` unless given), which is
why callers that need to store "nothing" use a sentinel number instead.
"""

from typing import Generic, Iterator, List, Optional, Tuple, TypeVar

V = TypeVar("V")

FNV_OFFSET_BASIS = 0x811C9DC5
FNV_PRIME = 0x01000193
_MASK32 = 0xFFFFFFFF

MIN_CAPACITY = 16


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------

def fnv1a_32(data: bytes) -> int:
    """FNV-1a over ``data``; never returns 0."""
    h = FNV_OFFSET_BASIS
    for c in data:
        h = ((h ^ c) * FNV_PRIME) & _MASK32
    return h or 1


def hash_str(text: str) -> int:
    """Hash the UTF-8 encoding of ``text``."""
    return fnv1a_32(text.encode("utf-8"))


def hash_nocase_filtered(data: bytes, first: int, last: int) -> int:
    """
    Case-insensitive FNV-1a over the bytes of ``data`` within ``[first, last]``.

    ASCII ``A``-``Z`` are folded to lowercase; bytes outside the range are
    skipped entirely (they do not contribute to the hash, but the caller
    still stores them as part of the string).
    """
    h = FNV_OFFSET_BASIS
    for c in data:
        if first <= c <= last:
            if 0x41 <= c <= 0x5A:
                c |= 0x20
            h = ((h ^ c) * FNV_PRIME) & _MASK32
    return h or 1


# ---------------------------------------------------------------------------
# Map
# ---------------------------------------------------------------------------

class HashMap32(Generic[V]):
    """Linear-probing map from non-zero 32-bit ints to ``V``."""

    __slots__ = ("_keys", "_vals", "_len")

    def __init__(self) -> None:
        self._keys: List[int] = []
        self._vals: List[Optional[V]] = []
        self._len = 0

    @property
    def capacity(self) -> int:
        return len(self._keys)

    def __len__(self) -> int:
        return self._len

    def _grow(self, new_cap: int) -> None:
        old_keys, old_vals = self._keys, self._vals
        cap = max(new_cap, MIN_CAPACITY)
        self._keys = [0] * cap
        self._vals = [None] * cap
        mask = cap - 1
        for key, val in zip(old_keys, old_vals):
            if not key:
                continue
            j = key & mask
            while self._keys[j]:
                j = (j + 1) & mask
            self._keys[j] = key
            self._vals[j] = val

    def get(self, key: int, default: Optional[V] = None) -> Optional[V]:
        if not self._len or not key:
            return default
        mask = len(self._keys) - 1
        i = key & mask
        while True:
            k = self._keys[i]
            if k == key:
                return self._vals[i]
            if not k:
                return default
            i = (i + 1) & mask

    def set(self, key: int, value: V) -> None:
        if not key:
            return
        if 2 * self._len >= len(self._keys):
            self._grow(2 * len(self._keys))

        mask = len(self._keys) - 1
        i = key & mask
        while True:
            k = self._keys[i]
            if not k:
                self._len += 1
                self._keys[i] = key
                self._vals[i] = value
                return
            if k == key:
                self._vals[i] = value
                return
            i = (i + 1) & mask

    def __contains__(self, key: int) -> bool:
        if not self._len or not key:
            return False
        mask = len(self._keys) - 1
        i = key & mask
        while self._keys[i]:
            if self._keys[i] == key:
                return True
            i = (i + 1) & mask
        return False

    # Convenience: string keys hashed with FNV-1a.

    def str_get(self, text: str, default: Optional[V] = None) -> Optional[V]:
        return self.get(hash_str(text), default)

    def str_set(self, text: str, value: V) -> None:
        self.set(hash_str(text), value)

    def items(self) -> Iterator[Tuple[int, V]]:
        for key, val in zip(self._keys, self._vals):
            if key:
                yield key, val  # type: ignore[misc]

    def free(self) -> None:
        self._keys = []
        self._vals = []
        self._len = 0

    def __repr__(self) -> str:
        return f"HashMap32(len={self._len}, capacity={self.capacity})"
