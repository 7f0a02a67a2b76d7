"""
Cache stores for installed tool binaries.

Available Components:
--------------------
- CacheStore: Abstract base class for cache backing stores
- LocalCacheStore: Directory-backed store with a JSON index
- NO_CACHE: Primary key value that disables caching
"""

from cargokit.cache.store import (
    CacheStore,
    NO_CACHE,
    is_caching_disabled,
    validate_key,
    validate_paths,
)
from cargokit.cache.local import LocalCacheStore

__all__ = [
    "CacheStore",
    "LocalCacheStore",
    "NO_CACHE",
    "is_caching_disabled",
    "validate_key",
    "validate_paths",
]
