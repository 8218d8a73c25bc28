from typing import Iterable, List

from pagealloc.memory.blocks import BlockView

ALLOCATED_MARK = "#"
FREE_MARK = "."


def render_table(blocks: Iterable[BlockView]) -> str:
    """Render the block list as one ``[start - end] : state`` line per block."""
    lines = ["--- Memory Blocks ---"]
    for block in blocks:
        state = "Free" if block.free else f"Allocated (PID {block.owner})"
        lines.append(f"[{block.start} - {block.end}] : {state}")
    return "\n".join(lines)


def occupancy(blocks: Iterable[BlockView], total_size: int, buckets: int = 50) -> List[bool]:
    """Divide the address space into buckets and flag those an allocated block overlaps.

    The bucket size is ``total_size // buckets``. When the address space is
    smaller than the bucket count each unit gets its own bucket.
    """
    if buckets <= 0:
        raise ValueError(f"Bucket count must be positive, got {buckets}")
    bucket_size = total_size // buckets
    if bucket_size == 0:
        bucket_size = 1
        buckets = total_size
    grid = [False] * buckets
    for block in blocks:
        if block.free:
            continue
        # units past buckets * bucket_size fold into the last bucket
        first = min(block.start // bucket_size, buckets - 1)
        last = min(block.end // bucket_size, buckets - 1)
        for index in range(first, last + 1):
            grid[index] = True
    return grid


def render_map(blocks: Iterable[BlockView], total_size: int, buckets: int = 50) -> str:
    """Render a fixed-width ASCII occupancy map with a legend line."""
    cells = "".join(
        ALLOCATED_MARK if used else FREE_MARK
        for used in occupancy(blocks, total_size, buckets)
    )
    return "\n".join(
        [
            "--- Memory Map ---",
            cells,
            f"Legend: {ALLOCATED_MARK} = Allocated, {FREE_MARK} = Free",
        ]
    )
