"""
Cross-process locking for cargokit.

Cache entries are reserved by taking a file lock named after the cache key,
so two CI jobs sharing a cache directory never write the same entry at once.
Uses the `filelock` library for cross-platform locks that are released
automatically when a process dies.

Usage:
    from cargokit.core.locking import try_lock, key_lock_path

    with try_lock(key_lock_path(lock_dir, "cross-0.2.5-cargokit-cross")) as acquired:
        if acquired:
            write_cache_entry()
        else:
            print("Another job is saving this key")
"""

import logging
import platform
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._+-]")


def get_global_cache_dir() -> Path:
    """
    Get the global cargokit directory.

    Returns:
        Path to global cache directory (~/.cargokit, or AppData on Windows)
    """
    if platform.system() == "Windows":
        return Path.home() / "AppData" / "Local" / "cargokit"
    return Path.home() / ".cargokit"


def safe_key(key: str) -> str:
    """Turn a cache key into a string usable as a file name."""
    return _UNSAFE_CHARS.sub("-", key)


def key_lock_path(lock_dir: Path, key: str) -> Path:
    """
    Get the lock file path that reserves a cache key.

    Args:
        lock_dir: Directory holding lock files
        key: Cache key to reserve

    Returns:
        Path of the lock file for key
    """
    return Path(lock_dir) / f"key-{safe_key(key)}.lock"


@contextmanager
def try_lock(lock_path: Path, timeout: float = 0) -> Iterator[bool]:
    """
    Try to acquire lock without blocking (or with short timeout).

    Args:
        lock_path: Path to lock file
        timeout: 0 for immediate (non-blocking), or seconds to wait

    Yields:
        bool: True if lock acquired, False otherwise

    Example:
        >>> with try_lock(Path('/tmp/my.lock'), timeout=0) as acquired:
        ...     if acquired:
        ...         do_work()
    """
    lock_path = Path(lock_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock = FileLock(lock_path, timeout=timeout)

    acquired = False
    try:
        lock.acquire(timeout=timeout)
        acquired = True
        logger.debug(f"Acquired lock (try_lock): {lock_path}")
    except LockTimeout:
        logger.debug(f"Could not acquire lock (try_lock): {lock_path}")

    try:
        yield acquired
    finally:
        if acquired:
            lock.release()
            logger.debug(f"Released lock (try_lock): {lock_path}")


__all__ = [
    "get_global_cache_dir",
    "safe_key",
    "key_lock_path",
    "try_lock",
    "LockTimeout",
]
