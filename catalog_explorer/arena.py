"""
Arena Allocator

Bump allocator over a list of ``bytearray`` blocks.  Every interned facet
string and override title of one index lives here and is released in one go
by ``free_all()`` when the index is torn down.

Allocation never frees or reuses space; a request that does not fit in the
current block opens a new block large enough for it.
"""

from typing import List, NamedTuple

from .buffer import GrowBuffer
from .errors import ArenaError


ARENA_ALIGNMENT = 8
ARENA_BLOCK_SIZE = 64 * 1024


def align_up(n: int, alignment: int = ARENA_ALIGNMENT) -> int:
    return (n + alignment - 1) & ~(alignment - 1)


class ArenaRef(NamedTuple):
    """Handle to an allocation: block number, byte offset and length."""

    block: int
    offset: int
    size: int


class Arena:
    """Bump allocator; all memory is released together by ``free_all()``."""

    def __init__(self, block_size: int = ARENA_BLOCK_SIZE) -> None:
        self.block_size = block_size
        self._blocks: GrowBuffer[bytearray] = GrowBuffer()
        self._ptr = 0
        self._end = 0
        self.bytes_allocated = 0

    # ------------------------------------------------------------------
    # Allocation
    # ------------------------------------------------------------------

    def _grow(self, min_size: int) -> None:
        size = align_up(max(min_size, self.block_size))
        self._blocks.append(bytearray(size))
        self._ptr = 0
        self._end = size

    def alloc(self, size: int) -> ArenaRef:
        """Reserve ``size`` bytes; the handle stays valid until ``free_all()``."""
        if size < 0:
            raise ValueError(f"negative allocation size: {size}")
        if not len(self._blocks) or size > self._end - self._ptr:
            self._grow(size)

        ref = ArenaRef(len(self._blocks) - 1, self._ptr, size)
        self._ptr = min(align_up(self._ptr + size), self._end)
        self.bytes_allocated += size
        return ref

    def store(self, data: bytes) -> ArenaRef:
        """Allocate room for ``data`` and copy it in."""
        ref = self.alloc(len(data))
        self._blocks[ref.block][ref.offset:ref.offset + ref.size] = data
        return ref

    def read(self, ref: ArenaRef) -> bytes:
        if not self.owns(ref):
            raise ArenaError(f"handle {ref} does not belong to this arena")
        return bytes(self._blocks[ref.block][ref.offset:ref.offset + ref.size])

    def owns(self, ref: ArenaRef) -> bool:
        if not 0 <= ref.block < len(self._blocks):
            return False
        return ref.offset + ref.size <= len(self._blocks[ref.block])

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def free_all(self) -> None:
        """Release every block. Handles issued before this call become invalid."""
        self._blocks.free()
        self._ptr = 0
        self._end = 0
        self.bytes_allocated = 0

    @property
    def block_count(self) -> int:
        return len(self._blocks)

    @property
    def block_sizes(self) -> List[int]:
        return [len(b) for b in self._blocks]

    def __repr__(self) -> str:
        return (
            f"Arena(blocks={self.block_count}, "
            f"allocated={self.bytes_allocated} bytes)"
        )
