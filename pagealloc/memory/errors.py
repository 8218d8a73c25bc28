from enum import Enum


class AllocError(Enum):
    """Enumeration of allocator error kinds"""

    INVALID_CONFIGURATION = "invalid_configuration"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN_STRATEGY = "unknown_strategy"
    OUT_OF_MEMORY = "out_of_memory"
    OWNER_NOT_FOUND = "owner_not_found"


class InvalidConfiguration(ValueError):
    """Raised when an allocator is constructed with a non-positive size or page size."""

    error = AllocError.INVALID_CONFIGURATION
