from __future__ import annotations
import time
import logging
from typing import Any, Optional, Dict, List, Iterator, NamedTuple, Hashable
from sortedcontainers import SortedDict
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TraceInfo:
    """Represents trace information for allocator operations"""

    timestamp_ns: int
    operation: str  # "alloc", "split", "free", "coalesce", "evict"
    additional_info: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def capture(
        cls, operation: str, additional_info: Optional[Dict[str, Any]] = None
    ) -> "TraceInfo":
        """Record an operation at the current time"""
        return cls(
            timestamp_ns=time.time_ns(),
            operation=operation,
            additional_info=additional_info or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Export trace data in dictionary form"""
        return {
            "timestamp_ns": self.timestamp_ns,
            "operation": self.operation,
            "additional_info": self.additional_info,
        }


class BlockView(NamedTuple):
    """Read-only snapshot of a block, as handed to renderers"""

    start: int
    end: int  # inclusive last address
    size: int
    free: bool
    owner: Optional[Hashable]


@dataclass(slots=True)
class Block:
    """A contiguous address range with an occupancy state"""

    start: int
    size: int
    free: bool = field(default=True)
    owner: Optional[Hashable] = field(default=None)

    @property
    def end_addr(self) -> int:
        """Get the exclusive end address of the block"""
        return self.start + self.size

    def is_allocated(self) -> bool:
        return not self.free

    def request_alloc(self, owner: Hashable):
        self.free = False
        self.owner = owner

    def free_block(self):
        """Release the block, clearing its owner"""
        self.free = True
        self.owner = None

    def view(self) -> BlockView:
        return BlockView(
            start=self.start,
            end=self.end_addr - 1,
            size=self.size,
            free=self.free,
            owner=self.owner,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Export block data in dictionary form"""
        return {
            "start": self.start,
            "end_addr": self.end_addr,
            "size": self.size,
            "free": self.free,
            "owner": self.owner,
        }


class BlockMap:
    """Ordered block list covering a linear address space.

    Blocks are stored in a ``SortedDict`` keyed by start address, so a block
    is addressed by its start key (stable while the block lives) or by its
    position in address order. Structural changes (split, merge) happen only
    through this class; callers that scan by position must re-read the
    length after any of them.

    Args:
            total_size (int): Size of the address space. A fresh map holds a
                    single free block spanning it.
    """

    def __init__(self, total_size: int):
        self.total_size = total_size
        self.blocks: SortedDict = SortedDict()
        self.blocks[0] = Block(start=0, size=total_size)

    def __len__(self) -> int:
        return len(self.blocks)

    def __iter__(self) -> Iterator[Block]:
        # walk a snapshot of the keys; blocks merged away meanwhile are skipped
        for start in list(self.blocks.keys()):
            block = self.blocks.get(start)
            if block is not None:
                yield block

    def __getitem__(self, index: int) -> Block:
        return self.blocks.peekitem(index)[1]

    def get(self, start: int) -> Optional[Block]:
        """Get the block starting at the given address"""
        return self.blocks.get(start)

    def index_of(self, block: Block) -> int:
        return self.blocks.index(block.start)

    def free_blocks(self) -> List[Block]:
        return [block for block in self if block.free]

    def owned_by(self, owner: Hashable) -> List[Block]:
        """Get all allocated blocks of an owner in address order"""
        return [
            block
            for block in self
            if not block.free and block.owner == owner
        ]

    def splice(self, start: int, memory_size: int) -> Block:
        """Split the block at ``start`` into a prefix of ``memory_size``.

        The remainder becomes a new free block inserted right after the prefix.
        If the sizes match exactly no split happens.

        Args:
                start (int): Start address of the block to split.
                memory_size (int): Size of the prefix.

        Returns:
                Block: The prefix block (same start address).
        """
        block = self.blocks[start]
        if block.is_allocated():
            raise MemoryError(f"Cannot split an allocated block at {start}")
        if memory_size > block.size:
            raise ValueError(
                f"Cannot split a block of size {block.size} into a block of size {memory_size}"
            )
        if memory_size == block.size:
            return block

        remainder = Block(start=block.start + memory_size, size=block.size - memory_size)
        block.size = memory_size
        self.blocks[remainder.start] = remainder
        logger.debug(
            f"Split block at {block.start}: {memory_size} + {remainder.size} (remainder at {remainder.start})"
        )
        return block

    def coalesce(self) -> List[Dict[str, int]]:
        """Merge adjacent free blocks, left to right, until none remain.

        Returns:
                List[Dict[str, int]]: One entry per merge performed, naming the
                surviving block and the absorbed one.
        """
        merges = []
        index = 0
        while index < len(self.blocks) - 1:
            left = self.blocks.peekitem(index)[1]
            right = self.blocks.peekitem(index + 1)[1]
            if left.free and right.free:
                merges.append(
                    {"start": left.start, "absorbed": right.start, "size": right.size}
                )
                left.size += right.size
                del self.blocks[right.start]
                logger.debug(f"Merged free block at {right.start} into {left.start}")
            else:
                index += 1
        return merges

    def snapshot(self) -> List[BlockView]:
        return [block.view() for block in self.blocks.values()]

    def verify_integrity(self) -> List[str]:
        """Check the block list invariants.

        Returns:
                List[str]: Human readable violations, empty when the list is sound.
        """
        problems = []
        expected_start = 0
        previous: Optional[Block] = None
        for key, block in self.blocks.items():
            if key != block.start:
                problems.append(f"Block keyed at {key} reports start {block.start}")
            if block.size <= 0:
                problems.append(f"Block at {block.start} has non-positive size {block.size}")
            if block.start != expected_start:
                problems.append(
                    f"Block at {block.start} expected at {expected_start} (gap or overlap)"
                )
            if block.free and block.owner is not None:
                problems.append(f"Free block at {block.start} still has owner {block.owner}")
            if previous is not None and previous.free and block.free:
                problems.append(
                    f"Adjacent free blocks at {previous.start} and {block.start}"
                )
            expected_start = block.end_addr
            previous = block
        if expected_start != self.total_size:
            problems.append(
                f"Blocks end at {expected_start}, address space ends at {self.total_size}"
            )
        return problems
