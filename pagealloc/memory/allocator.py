import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple, Union, Hashable

from pagealloc.memory.blocks import Block, BlockMap, BlockView, TraceInfo
from pagealloc.memory.errors import AllocError, InvalidConfiguration

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


def _is_positive_size(size) -> bool:
    # bool is an int subclass but never a size
    return isinstance(size, int) and not isinstance(size, bool) and size > 0


class PlacementStrategy(Enum):
    """Enumeration of placement strategies"""

    FIRST_FIT = "first"
    BEST_FIT = "best"
    NEXT_FIT = "next"

    @classmethod
    def resolve(
        cls, strategy: Union["PlacementStrategy", str, None]
    ) -> Optional["PlacementStrategy"]:
        """Look up a strategy by member or by its exact value ("first", "best", "next").

        Returns None for anything else, including names and other spellings.
        """
        if isinstance(strategy, cls):
            return strategy
        if not isinstance(strategy, str):
            return None
        for member in cls:
            if strategy == member.value:
                return member
        return None


@dataclass
class AllocationResult:
    """Represents the result of an allocation attempt"""

    success: bool
    owner: Optional[Hashable] = None
    address: Optional[int] = None
    requested_size: Optional[int] = None
    actual_size: Optional[int] = None
    pages: Optional[int] = None
    evictions: int = 0
    allocation_time_ns: Optional[int] = None
    error: Optional[AllocError] = None
    error_message: Optional[str] = None
    strategy_info: Optional[Dict[str, Any]] = None


@dataclass
class FreeResult:
    """Represents the result of a deallocation attempt"""

    success: bool
    owner: Optional[Hashable] = None
    freed_count: int = 0
    freed_size: int = 0
    addresses: List[int] = field(default_factory=list)
    coalesced: bool = False
    free_time_ns: Optional[int] = None
    error: Optional[AllocError] = None
    error_message: Optional[str] = None


class PlacementPolicy(ABC):
    """Abstract base class for placement (fit) algorithms"""

    strategy: PlacementStrategy

    def __init__(self, name: str):
        self.name = name
        self.search_steps = 0

    @abstractmethod
    def find_block(self, blocks: BlockMap, size: int) -> Optional[Block]:
        """Choose a free block of at least ``size`` units, or None"""
        pass

    def can_allocate(self, blocks: BlockMap, size: int) -> bool:
        """Check if some free block could hold ``size`` units"""
        return any(block.free and block.size >= size for block in blocks)


class FirstFitPolicy(PlacementPolicy):
    """First-fit: the lowest-address free block that is large enough"""

    strategy = PlacementStrategy.FIRST_FIT

    def __init__(self):
        super().__init__("First Fit")

    def find_block(self, blocks: BlockMap, size: int) -> Optional[Block]:
        self.search_steps = 0
        for block in blocks:
            self.search_steps += 1
            if block.free and block.size >= size:
                return block
        return None


class BestFitPolicy(PlacementPolicy):
    """Best-fit: the smallest free block that is large enough, lowest address on ties"""

    strategy = PlacementStrategy.BEST_FIT

    def __init__(self):
        super().__init__("Best Fit")

    def find_block(self, blocks: BlockMap, size: int) -> Optional[Block]:
        self.search_steps = 0
        best_block = None
        best_size = float("inf")

        # Search all free blocks for the best fit
        for block in blocks:
            self.search_steps += 1
            if block.free and block.size >= size and block.size < best_size:
                best_block = block
                best_size = block.size
        return best_block


class NextFitPolicy(PlacementPolicy):
    """Next-fit: a circular first-fit scan resuming where the last one stopped"""

    strategy = PlacementStrategy.NEXT_FIT

    def __init__(self):
        super().__init__("Next Fit")
        self.cursor = 0  # block position the next scan starts from

    def find_block(self, blocks: BlockMap, size: int) -> Optional[Block]:
        self.search_steps = 0
        count = len(blocks)
        for offset in range(count):
            index = (self.cursor + offset) % count
            block = blocks[index]
            self.search_steps += 1
            if block.free and block.size >= size:
                self.cursor = (index + 1) % count
                return block
        return None


class PagedMemoryAllocator:
    """Paged allocator over a fixed-size linear address space.

    Requests are rounded up to whole pages, placed with one of the fit
    policies, and when nothing fits the oldest surviving allocation is
    swapped out (FIFO) until the request fits or no victim is left.

    Args:
            total_size (int): Size of the address space in units.
            page_size (int): Allocation granularity in units.
            capture_trace (bool): Whether to record operations in ``history``.

    Raises:
            InvalidConfiguration: If ``total_size`` or ``page_size`` is not positive.

    Example:
            >>> allocator = PagedMemoryAllocator(1000, page_size=100)
            >>> allocator.allocate(1, 150, "first").address
            0
            >>> allocator.list_blocks()[0].size
            200
    """

    def __init__(
        self,
        total_size: int,
        page_size: int = DEFAULT_PAGE_SIZE,
        capture_trace: bool = True,
    ):
        if not isinstance(total_size, int) or total_size <= 0:
            raise InvalidConfiguration(
                f"Address space size must be a positive integer, got {total_size!r}"
            )
        if not isinstance(page_size, int) or page_size <= 0:
            raise InvalidConfiguration(
                f"Page size must be a positive integer, got {page_size!r}"
            )
        self._total_size = total_size
        self._page_size = page_size
        self.capture_trace = capture_trace

        self.blocks = BlockMap(total_size)
        self.eviction_queue: deque = deque()
        self.policies: Dict[PlacementStrategy, PlacementPolicy] = {}
        for policy in (FirstFitPolicy(), BestFitPolicy(), NextFitPolicy()):
            self.policies[policy.strategy] = policy

        self.history: List[TraceInfo] = []
        self.allocation_count = 0
        self.failed_allocation_count = 0
        self.free_count = 0
        self.eviction_count = 0
        self.total_allocated = 0
        self.total_freed = 0

    @property
    def total_size(self) -> int:
        return self._total_size

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def next_fit_cursor(self) -> int:
        return self.policies[PlacementStrategy.NEXT_FIT].cursor

    def quantize(self, size: int) -> Tuple[int, int]:
        """Round a request up to whole pages.

        Returns:
                Tuple[int, int]: ``(pages, alloc_size)``.
        """
        pages = (size + self._page_size - 1) // self._page_size
        return pages, pages * self._page_size

    def _trace(self, operation: str, **info):
        if self.capture_trace:
            self.history.append(TraceInfo.capture(operation, info))

    def _fail(
        self,
        start_time: int,
        error: AllocError,
        message: str,
        **fields,
    ) -> AllocationResult:
        self.failed_allocation_count += 1
        logger.warning(message)
        return AllocationResult(
            success=False,
            allocation_time_ns=time.time_ns() - start_time,
            error=error,
            error_message=message,
            **fields,
        )

    def allocate(
        self,
        owner: Hashable,
        requested_size: int,
        strategy: Union[PlacementStrategy, str] = PlacementStrategy.FIRST_FIT,
    ) -> AllocationResult:
        """Allocate ``requested_size`` units (rounded up to pages) to ``owner``.

        When no free block fits, victims are evicted in allocation order and
        the search is re-run once per eviction.

        Args:
                owner (Hashable): Allocation identifier, e.g. a process id.
                requested_size (int): Units requested, must be positive.
                strategy (Union[PlacementStrategy, str]): ``first``, ``best`` or ``next``.

        Returns:
                AllocationResult: The start address on success, otherwise an
                error kind of INVALID_REQUEST, UNKNOWN_STRATEGY or OUT_OF_MEMORY.
        """
        start_time = time.time_ns()

        if not _is_positive_size(requested_size):
            return self._fail(
                start_time,
                AllocError.INVALID_REQUEST,
                f"Invalid request size {requested_size!r} for PID {owner}",
                owner=owner,
                requested_size=requested_size,
            )

        pages, alloc_size = self.quantize(requested_size)

        resolved = PlacementStrategy.resolve(strategy)
        if resolved is None:
            return self._fail(
                start_time,
                AllocError.UNKNOWN_STRATEGY,
                f"Unknown strategy {strategy!r}",
                owner=owner,
                requested_size=requested_size,
            )
        policy = self.policies[resolved]

        evictions = 0
        block = policy.find_block(self.blocks, alloc_size)
        while block is None:
            if evictions == 0:
                logger.info(f"No space for {alloc_size} units, attempting swap...")
            if not self.evict_one():
                return self._fail(
                    start_time,
                    AllocError.OUT_OF_MEMORY,
                    f"Swap failed. No memory available for {alloc_size} units (PID {owner})",
                    owner=owner,
                    requested_size=requested_size,
                    pages=pages,
                    evictions=evictions,
                    strategy_info={"algorithm": resolved.value},
                )
            evictions += 1
            block = policy.find_block(self.blocks, alloc_size)

        remainder = block.size - alloc_size
        block = self.blocks.splice(block.start, alloc_size)
        if remainder:
            self._trace("split", start=block.start, size=alloc_size, remainder=remainder)
        block.request_alloc(owner)
        self.eviction_queue.append(owner)

        self.allocation_count += 1
        self.total_allocated += alloc_size
        self._trace("alloc", owner=owner, start=block.start, size=alloc_size, pages=pages)
        logger.info(
            f"Allocated {alloc_size} units (in {pages} pages) to PID {owner} at address {block.start}"
        )

        return AllocationResult(
            success=True,
            owner=owner,
            address=block.start,
            requested_size=requested_size,
            actual_size=alloc_size,
            pages=pages,
            evictions=evictions,
            allocation_time_ns=time.time_ns() - start_time,
            strategy_info={
                "algorithm": resolved.value,
                "search_steps": policy.search_steps,
                "waste": alloc_size - requested_size,
            },
        )

    def deallocate(self, owner: Hashable) -> FreeResult:
        """Free every block held by ``owner`` and coalesce.

        Returns:
                FreeResult: The number of blocks freed, or OWNER_NOT_FOUND when
                the owner holds nothing.
        """
        start_time = time.time_ns()

        owned = self.blocks.owned_by(owner)
        addresses = []
        freed_size = 0
        for block in owned:
            block.free_block()
            addresses.append(block.start)
            freed_size += block.size
            self._trace("free", owner=owner, start=block.start, size=block.size)
            logger.info(f"Freed memory of PID {owner} at address {block.start}")

        coalesced = self.coalesce() > 0

        if not owned:
            message = f"PID {owner} not found"
            logger.warning(message)
            return FreeResult(
                success=False,
                owner=owner,
                free_time_ns=time.time_ns() - start_time,
                error=AllocError.OWNER_NOT_FOUND,
                error_message=message,
            )

        self.free_count += len(owned)
        self.total_freed += freed_size
        return FreeResult(
            success=True,
            owner=owner,
            freed_count=len(owned),
            freed_size=freed_size,
            addresses=addresses,
            coalesced=coalesced,
            free_time_ns=time.time_ns() - start_time,
        )

    def evict_one(self) -> bool:
        """Swap out the oldest allocation that is still resident.

        Stale queue entries (owners already freed directly) are dropped on the
        way. Only the owner's lowest-address block is released.

        Returns:
                bool: True if a block was evicted, False once the queue is exhausted.
        """
        while self.eviction_queue:
            victim = self.eviction_queue.popleft()
            owned = self.blocks.owned_by(victim)
            if not owned:
                logger.debug(f"Skipping stale eviction entry for PID {victim}")
                continue

            block = owned[0]
            size = block.size
            block.free_block()
            self.eviction_count += 1
            self.total_freed += size
            self._trace("evict", owner=victim, start=block.start, size=size)
            logger.info(f"Swapped out PID {victim}")
            self.coalesce()
            return True
        return False

    def coalesce(self) -> int:
        """Merge adjacent free blocks.

        Returns:
                int: The number of merges performed.
        """
        merges = self.blocks.coalesce()
        for merge in merges:
            self._trace("coalesce", **merge)
        return len(merges)

    def can_allocate(
        self,
        requested_size: int,
        strategy: Union[PlacementStrategy, str] = PlacementStrategy.FIRST_FIT,
    ) -> bool:
        """Check if a request would fit right now, without evicting anything"""
        resolved = PlacementStrategy.resolve(strategy)
        if resolved is None or not _is_positive_size(requested_size):
            return False
        _, alloc_size = self.quantize(requested_size)
        return self.policies[resolved].can_allocate(self.blocks, alloc_size)

    def list_blocks(self) -> List[BlockView]:
        """Snapshot of the block list in address order"""
        return self.blocks.snapshot()

    def summary(self) -> Dict[str, Any]:
        """Get overall memory usage of the address space"""
        free_blocks = self.blocks.free_blocks()
        free_bytes = sum(block.size for block in free_blocks)
        largest_free = max((block.size for block in free_blocks), default=0)
        allocated_bytes = self._total_size - free_bytes

        return {
            "total_size": self._total_size,
            "page_size": self._page_size,
            "allocated_bytes": allocated_bytes,
            "free_bytes": free_bytes,
            "block_count": len(self.blocks),
            "free_block_count": len(free_blocks),
            "allocated_block_count": len(self.blocks) - len(free_blocks),
            "largest_free_block": largest_free,
            "utilization": allocated_bytes / self._total_size,
            "fragmentation": (1.0 - largest_free / free_bytes) if free_bytes else 0.0,
            "eviction_queue_length": len(self.eviction_queue),
            "next_fit_cursor": self.next_fit_cursor,
        }

    def get_statistics(self) -> Dict[str, Any]:
        """Get allocator statistics"""
        return {
            "allocation_count": self.allocation_count,
            "failed_allocation_count": self.failed_allocation_count,
            "free_count": self.free_count,
            "eviction_count": self.eviction_count,
            "total_allocated": self.total_allocated,
            "total_freed": self.total_freed,
            "currently_allocated": self.total_allocated - self.total_freed,
        }
