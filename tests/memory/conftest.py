"""
Shared pytest configuration and fixtures for paged allocator tests.
"""

import pytest

from pagealloc.memory.allocator import PagedMemoryAllocator
from pagealloc.memory.blocks import BlockMap


@pytest.fixture
def allocator():
    """A fresh 1000-unit address space with 100-unit pages"""
    return PagedMemoryAllocator(1000, page_size=100)


@pytest.fixture
def fine_allocator():
    """A 1000-unit address space with unit pages, so sizes are not rounded"""
    return PagedMemoryAllocator(1000, page_size=1)


@pytest.fixture
def block_map():
    """A BlockMap with a single free block of 1000 units"""
    return BlockMap(1000)


@pytest.fixture
def fragmented_allocator():
    """Unit-page allocator with free holes of 300, 100, 200 and 100 units.

    Layout (start: size):
        0: 300 free, 300: 100 PID 2, 400: 100 free, 500: 100 PID 4,
        600: 200 free, 800: 100 PID 6, 900: 100 free
    """
    allocator = PagedMemoryAllocator(1000, page_size=1)
    for pid, size in [(1, 300), (2, 100), (3, 100), (4, 100), (5, 200), (6, 100)]:
        assert allocator.allocate(pid, size, "first").success
    for pid in (1, 3, 5):
        assert allocator.deallocate(pid).success
    return allocator


def pytest_configure(config):
    """Configure pytest with custom markers and settings"""
    config.addinivalue_line("markers", "integration: mark test as integration test")
    config.addinivalue_line("markers", "unit: mark test as unit test")


def pytest_collection_modifyitems(config, items):
    """Add unit marker to tests by default"""
    for item in items:
        if not any(item.iter_markers()):
            item.add_marker(pytest.mark.unit)

