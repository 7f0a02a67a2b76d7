"""
Cache store abstraction for installed tool binaries.

A cache store persists a set of files under a key and restores them later,
trying a primary key first and then an ordered list of fallback keys.

Classes:
    CacheStore: Abstract base class for cache backing stores

Exceptions (from cargokit.core.exceptions):
    CacheValidationError: Malformed request, always fatal
    CacheReservationConflict: Key already claimed by another run
    CacheOtherError: Any other backing store failure
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from cargokit.core.exceptions import CacheValidationError

# Primary key value that turns caching off entirely
NO_CACHE = "no-cache"

MAX_KEY_LENGTH = 512


def is_caching_disabled(primary_key: Optional[str]) -> bool:
    """Return True if primary_key is the sentinel disabling the cache."""
    return primary_key == NO_CACHE


def validate_key(key: str) -> None:
    """
    Check that a cache key is acceptable to a backing store.

    Raises:
        CacheValidationError: If the key is empty, too long or has a comma
    """
    if not key:
        raise CacheValidationError("Cache key cannot be empty")
    if len(key) > MAX_KEY_LENGTH:
        raise CacheValidationError(
            f"Key Validation Error: {key} cannot be larger than "
            f"{MAX_KEY_LENGTH} characters."
        )
    if "," in key:
        raise CacheValidationError(
            f"Key Validation Error: {key} cannot contain commas."
        )


def validate_paths(paths: Sequence[Path]) -> List[Path]:
    """
    Check that at least one path was given.

    Returns:
        The paths as a list of Path objects

    Raises:
        CacheValidationError: If paths is empty
    """
    if not paths:
        raise CacheValidationError(
            "Path Validation Error: At least one directory or file path is required"
        )
    return [Path(p) for p in paths]


class CacheStore(ABC):
    """
    Abstract base class for cache backing stores.

    Implementations address artifacts by exact key. The artifact paths are
    chosen by the caller and never derived from the key.

    Example:
        class MyStore(CacheStore):
            def restore(self, paths, primary_key, restore_keys=()):
                ...

            def save(self, paths, primary_key):
                ...
    """

    @abstractmethod
    def restore(
        self,
        paths: Sequence[Path],
        primary_key: str,
        restore_keys: Sequence[str] = (),
    ) -> Optional[str]:
        """
        Restore a cached artifact set onto paths.

        Args:
            paths: Files or directories to restore
            primary_key: Key tried first (exact match)
            restore_keys: Fallback keys, tried in order

        Returns:
            The key that matched, or None on a miss

        Raises:
            CacheValidationError: If the request is malformed
            CacheOtherError: If the backing store fails
        """
        pass

    @abstractmethod
    def save(self, paths: Sequence[Path], primary_key: str) -> None:
        """
        Save paths under primary_key.

        Args:
            paths: Files or directories to save
            primary_key: Key to save under

        Raises:
            CacheValidationError: If the request is malformed
            CacheReservationConflict: If the key is already claimed
            CacheOtherError: If the backing store fails
        """
        pass
