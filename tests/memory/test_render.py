import pytest

from pagealloc.memory import PagedMemoryAllocator, BlockView, occupancy, render_map, render_table


class TestRenderTable:
    """Test cases for the block table"""

    def test_fresh_allocator(self, allocator):
        assert render_table(allocator.list_blocks()) == (
            "--- Memory Blocks ---\n[0 - 999] : Free"
        )

    def test_allocated_and_free_rows(self, allocator):
        allocator.allocate(1, 150, "first")
        allocator.allocate(7, 100, "first")

        lines = render_table(allocator.list_blocks()).splitlines()

        assert lines == [
            "--- Memory Blocks ---",
            "[0 - 199] : Allocated (PID 1)",
            "[200 - 299] : Allocated (PID 7)",
            "[300 - 999] : Free",
        ]


class TestOccupancy:
    """Test cases for the bucket grid"""

    def test_allocated_prefix(self, allocator):
        allocator.allocate(1, 150, "first")  # 200 units, bucket size 20

        grid = occupancy(allocator.list_blocks(), allocator.total_size, 50)

        assert grid == [True] * 10 + [False] * 40

    def test_partial_overlap_marks_bucket(self):
        blocks = [
            BlockView(start=0, end=24, size=25, free=True, owner=None),
            BlockView(start=25, end=34, size=10, free=False, owner=1),
            BlockView(start=35, end=99, size=65, free=True, owner=None),
        ]

        assert occupancy(blocks, 100, 10) == [False, False, True, True] + [False] * 6

    def test_space_smaller_than_bucket_count(self):
        allocator = PagedMemoryAllocator(10, page_size=1)
        allocator.allocate(1, 3, "first")

        grid = occupancy(allocator.list_blocks(), 10, 50)

        assert grid == [True] * 3 + [False] * 7

    def test_tail_past_last_full_bucket(self):
        blocks = [
            BlockView(start=0, end=999, size=1000, free=True, owner=None),
            BlockView(start=1000, end=1009, size=10, free=False, owner=2),
        ]

        grid = occupancy(blocks, 1010, 50)

        assert len(grid) == 50
        assert grid[-1] is True
        assert not any(grid[:-1])

    def test_invalid_bucket_count(self, allocator):
        with pytest.raises(ValueError):
            occupancy(allocator.list_blocks(), allocator.total_size, 0)


class TestRenderMap:
    """Test cases for the ASCII memory map"""

    def test_map_with_legend(self, allocator):
        allocator.allocate(1, 500, "first")

        lines = render_map(allocator.list_blocks(), allocator.total_size).splitlines()

        assert lines == [
            "--- Memory Map ---",
            "#" * 25 + "." * 25,
            "Legend: # = Allocated, . = Free",
        ]

    def test_map_width_follows_bucket_count(self, allocator):
        allocator.allocate(1, 100, "first")

        cells = render_map(allocator.list_blocks(), allocator.total_size, buckets=10).splitlines()[1]

        assert cells == "#........."
