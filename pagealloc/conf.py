import logging
import os
from typing import Dict, Optional
from pydantic import BaseModel, Field, field_validator

from pagealloc.memory.allocator import (
    DEFAULT_PAGE_SIZE,
    PagedMemoryAllocator,
    PlacementStrategy,
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "PAGEALLOC_"


class AllocatorConfig(BaseModel):
    """
    AllocatorConfig defines the address space, paging and display parameters of a session.

    Attributes:
        total_size (int): Size of the simulated address space in units. Default is 1000.
        page_size (int): Allocation granularity in units. Default is 100.
        map_buckets (int): Number of cells in the ASCII occupancy map. Default is 50.
        default_strategy (str): Placement strategy used when a command names none.

    Example:
        >>> config = AllocatorConfig()
        >>> config.total_size
        1000
        >>> config.build_allocator().page_size
        100
    """

    total_size: int = Field(
        default=1000,
        gt=0,
        title="Total Size",
        description="Size of the simulated address space in units",
    )
    page_size: int = Field(
        default=DEFAULT_PAGE_SIZE,
        gt=0,
        title="Page Size",
        description="Allocation granularity; requests are rounded up to whole pages",
    )
    map_buckets: int = Field(
        default=50,
        gt=0,
        title="Map Buckets",
        description="Number of cells the occupancy map divides the address space into",
    )
    default_strategy: str = Field(
        default=PlacementStrategy.FIRST_FIT.value,
        title="Default Strategy",
        description="Placement strategy used when none is given: first, best or next",
    )

    @field_validator("default_strategy", mode="before")
    @classmethod
    def check_strategy(cls, value):
        if isinstance(value, PlacementStrategy):
            return value.value
        if PlacementStrategy.resolve(value) is None:
            choices = ", ".join(strategy.value for strategy in PlacementStrategy)
            raise ValueError(f"Unknown strategy {value!r}, expected one of: {choices}")
        return value

    def build_allocator(self, capture_trace: bool = True) -> PagedMemoryAllocator:
        """
        Create a fresh allocator engine from this configuration.

        Returns:
            PagedMemoryAllocator: An engine with one free block spanning the address space.
        """
        logger.info(
            f"Creating allocator: {self.total_size} units, page size {self.page_size}"
        )
        return PagedMemoryAllocator(
            self.total_size, page_size=self.page_size, capture_trace=capture_trace
        )

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "AllocatorConfig":
        """
        Build a configuration from ``PAGEALLOC_*`` environment variables.

        Recognised variables are PAGEALLOC_TOTAL_SIZE, PAGEALLOC_PAGE_SIZE,
        PAGEALLOC_MAP_BUCKETS and PAGEALLOC_STRATEGY. Unset variables keep
        their defaults.

        Args:
            environ (Optional[Dict[str, str]]): Mapping to read instead of ``os.environ``.

        Returns:
            AllocatorConfig: The validated configuration.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value.
        """
        environ = os.environ if environ is None else environ
        names = {
            "total_size": "TOTAL_SIZE",
            "page_size": "PAGE_SIZE",
            "map_buckets": "MAP_BUCKETS",
            "default_strategy": "STRATEGY",
        }
        values = {}
        for field_name, suffix in names.items():
            raw = environ.get(f"{ENV_PREFIX}{suffix}")
            if raw is not None:
                values[field_name] = raw
        return cls(**values)
