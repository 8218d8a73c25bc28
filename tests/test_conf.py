import pytest
from pydantic import ValidationError

from pagealloc.conf import AllocatorConfig
from pagealloc.memory import PagedMemoryAllocator, PlacementStrategy


class TestAllocatorConfig:
    def test_defaults(self):
        config = AllocatorConfig()
        assert config.total_size == 1000
        assert config.page_size == 100
        assert config.map_buckets == 50
        assert config.default_strategy == "first"

    @pytest.mark.parametrize(
        "field, value",
        [("total_size", 0), ("page_size", -1), ("map_buckets", 0)],
    )
    def test_non_positive_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            AllocatorConfig(**{field: value})

    def test_strategy_member_accepted(self):
        config = AllocatorConfig(default_strategy=PlacementStrategy.NEXT_FIT)
        assert config.default_strategy == "next"

    def test_build_allocator(self):
        allocator = AllocatorConfig(total_size=2048, page_size=64).build_allocator()

        assert isinstance(allocator, PagedMemoryAllocator)
        assert allocator.total_size == 2048
        assert allocator.page_size == 64
        assert len(allocator.list_blocks()) == 1

    def test_build_allocator_without_trace(self):
        allocator = AllocatorConfig().build_allocator(capture_trace=False)
        allocator.allocate(1, 10)
        assert allocator.history == []


class TestFromEnv:
    def test_empty_environment_uses_defaults(self):
        assert AllocatorConfig.from_env({}) == AllocatorConfig()

    def test_reads_prefixed_variables(self):
        config = AllocatorConfig.from_env(
            {
                "PAGEALLOC_TOTAL_SIZE": "4096",
                "PAGEALLOC_PAGE_SIZE": "256",
                "PAGEALLOC_MAP_BUCKETS": "64",
                "PAGEALLOC_STRATEGY": "best",
                "UNRELATED": "ignored",
            }
        )
        assert config.total_size == 4096
        assert config.page_size == 256
        assert config.map_buckets == 64
        assert config.default_strategy == "best"

    def test_invalid_variable(self):
        with pytest.raises(ValidationError):
            AllocatorConfig.from_env({"PAGEALLOC_PAGE_SIZE": "zero"})

    @pytest.mark.parametrize("strategy", ["worst", "BEST", ""])
    def test_invalid_strategy_variable(self, strategy):
        with pytest.raises(ValidationError):
            AllocatorConfig.from_env({"PAGEALLOC_STRATEGY": strategy})

    def test_reads_os_environ(self, monkeypatch):
        monkeypatch.setenv("PAGEALLOC_TOTAL_SIZE", "300")
        assert AllocatorConfig.from_env().total_size == 300
