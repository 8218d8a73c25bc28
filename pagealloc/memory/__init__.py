from .blocks import Block, BlockMap, BlockView, TraceInfo
from .errors import AllocError, InvalidConfiguration
from .allocator import (
    DEFAULT_PAGE_SIZE,
    PlacementStrategy,
    AllocationResult,
    FreeResult,
    PlacementPolicy,
    FirstFitPolicy,
    BestFitPolicy,
    NextFitPolicy,
    PagedMemoryAllocator,
)
from .render import render_table, render_map, occupancy

__all__ = [
    "Block",
    "BlockMap",
    "BlockView",
    "TraceInfo",
    "AllocError",
    "InvalidConfiguration",
    "DEFAULT_PAGE_SIZE",
    "PlacementStrategy",
    "AllocationResult",
    "FreeResult",
    "PlacementPolicy",
    "FirstFitPolicy",
    "BestFitPolicy",
    "NextFitPolicy",
    "PagedMemoryAllocator",
    "render_table",
    "render_map",
    "occupancy",
]
