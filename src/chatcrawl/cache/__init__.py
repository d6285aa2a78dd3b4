from .directory import (
    DEFAULT_TTL,
    DIRECTORY_CACHE_ROOT,
    get_cached_metadata,
    parse_duration,
    store_metadata,
)

__all__ = [
    "DEFAULT_TTL",
    "DIRECTORY_CACHE_ROOT",
    "get_cached_metadata",
    "parse_duration",
    "store_metadata",
]
