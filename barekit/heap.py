"""A first-fit heap allocator over a fixed-size region, with block splitting and coalescing."""

from __future__ import annotations

from dataclasses import dataclass

MIN_BLOCK_SIZE = 32
ALIGN_SIZE = 8
HEADER_SIZE = 32
MANAGER_SIZE = 40


def _align(size: int) -> int:
    return (size + ALIGN_SIZE - 1) & ~(ALIGN_SIZE - 1)


@dataclass
class _Block:
    offset: int
    size: int
    free: bool = True

    @property
    def address(self) -> int:
        return self.offset + HEADER_SIZE


@dataclass(frozen=True)
class MemInfo:
    """A snapshot of the heap's usage."""

    total_memory: int
    used_memory: int
    free_memory: int
    allocated_blocks: int


class MemoryManager:
    """Manages a region of ``size`` bytes; addresses are offsets from its start.

    The manager's own bookkeeping occupies the first ``MANAGER_SIZE`` bytes and
    every block is preceded by a ``HEADER_SIZE``-byte header.
    """

    def __init__(self, size):
        if size < MANAGER_SIZE + HEADER_SIZE + MIN_BLOCK_SIZE:
            raise ValueError(
                f"a heap needs at least {MANAGER_SIZE + HEADER_SIZE + MIN_BLOCK_SIZE} bytes, "
                f"got {size}"
            )
        self.total_size = size
        self._blocks = [_Block(MANAGER_SIZE, size - MANAGER_SIZE - HEADER_SIZE)]
        self._allocated_blocks = 0
        self._total_allocated = 0

    def _split(self, index: int, size: int) -> None:
        block = self._blocks[index]
        if block.size >= size + HEADER_SIZE + MIN_BLOCK_SIZE:
            remainder = _Block(block.offset + HEADER_SIZE + size, block.size - size - HEADER_SIZE)
            self._blocks.insert(index + 1, remainder)
            block.size = size

    def _coalesce(self, index: int) -> None:
        block = self._blocks[index]
        if index + 1 < len(self._blocks) and self._blocks[index + 1].free:
            block.size += HEADER_SIZE + self._blocks[index + 1].size
            del self._blocks[index + 1]
        if index > 0 and self._blocks[index - 1].free:
            self._blocks[index - 1].size += HEADER_SIZE + block.size
            del self._blocks[index]

    def alloc(self, size: int) -> int:
        """Reserve at least ``size`` bytes and return the address of the payload."""
        if size <= 0:
            raise ValueError(f"allocation size must be positive, got {size}")
        size = _align(size)
        for index, block in enumerate(self._blocks):
            if block.free and block.size >= size:
                break
        else:
            raise MemoryError(f"no free block of {size} bytes")
        self._split(index, size)
        block.free = False
        self._allocated_blocks += 1
        self._total_allocated += block.size
        return block.address

    def free(self, address: int) -> bool:
        """Release a block; returns False for unknown addresses and double frees."""
        index = next(
            (i for i, block in enumerate(self._blocks) if block.address == address), None
        )
        if index is None:
            return False
        block = self._blocks[index]
        if block.free:
            return False
        block.free = True
        self._allocated_blocks -= 1
        self._total_allocated -= block.size
        self._coalesce(index)
        return True

    def status(self) -> MemInfo:
        used = self._total_allocated
        free = self.total_size - used - MANAGER_SIZE - self._allocated_blocks * HEADER_SIZE
        return MemInfo(self.total_size, used, free, self._allocated_blocks)

    def blocks(self) -> list[tuple[int, int, bool]]:
        """Every block as (address, size, free), in address order."""
        return [(block.address, block.size, block.free) for block in self._blocks]