"""
File system utilities for cargokit.

This module provides the small set of platform-aware file operations the
installers and cache store rely on:
- Executable lookup on the search path
- Scoped working directory changes with guaranteed restoration
- Atomic writes for index files
- Archive member validation against directory traversal
"""

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Union

logger = logging.getLogger(__name__)

# Platform detection
IS_WINDOWS = os.name == "nt"

# The process working directory is global state; only one scope may own it.
_cwd_lock = threading.RLock()


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


class InsecureArchiveError(FilesystemError):
    """Archive member would be extracted outside its destination."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def executable_name(name: str) -> str:
    """Return the platform file name for an executable (adds .exe on Windows)."""
    if IS_WINDOWS and not name.lower().endswith(".exe"):
        return f"{name}.exe"
    return name


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check whether path is located under parent.

    Args:
        path: Path to check
        parent: Candidate parent directory

    Returns:
        True if path is parent or one of its descendants
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def find_executable(
    name: str, search_paths: Optional[List[Path]] = None
) -> Optional[Path]:
    """
    Find an executable in the system PATH or provided search paths.

    Args:
        name: Executable name (e.g., 'cargo', 'cross')
        search_paths: Optional list of directories to search

    Returns:
        Path to executable if found, None otherwise

    Example:
        >>> find_executable('cargo')
        PosixPath('/home/runner/.cargo/bin/cargo')
    """
    extensions = [""] if not IS_WINDOWS else ["", ".exe", ".bat", ".cmd"]

    if search_paths is None:
        path_env = os.environ.get("PATH", "")
        search_paths = [Path(p) for p in path_env.split(os.pathsep) if p]

    for directory in search_paths:
        for ext in extensions:
            exe_path = directory / f"{name}{ext}"
            if exe_path.is_file() and os.access(exe_path, os.X_OK):
                return exe_path

    return None


# ============================================================================
# Scoped Working Directory
# ============================================================================


@contextmanager
def working_directory(path: Union[str, Path]) -> Iterator[Path]:
    """
    Change the process working directory for the duration of a block.

    The previous directory is restored on every exit path, including
    exceptions. Scopes are serialized through a process-wide lock since the
    working directory is shared by every thread.

    Args:
        path: Directory to switch to

    Yields:
        The directory that is now current

    Example:
        >>> with working_directory(tempfile.gettempdir()):
        ...     subprocess.run(['cargo', 'install', 'cross'])
    """
    target = Path(path)

    with _cwd_lock:
        previous = Path.cwd()
        logger.debug(f"Changing working directory to {target}")
        os.chdir(target)
        try:
            yield target
        finally:
            os.chdir(previous)
            logger.debug(f"Restored working directory to {previous}")


def neutral_directory() -> Path:
    """
    Get a directory free of toolchain overrides.

    Building from the system temp directory ensures no `rust-toolchain`
    file or directory override applies to the build.
    """
    return Path(tempfile.gettempdir())


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)

    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def validate_archive_member(name: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Args:
        name: Member path from archive
        destination: Extraction destination

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / name).resolve()

    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{name}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


__all__ = [
    "FilesystemError",
    "InsecureArchiveError",
    "IS_WINDOWS",
    "executable_name",
    "is_relative_to",
    "find_executable",
    "working_directory",
    "neutral_directory",
    "atomic_write",
    "validate_archive_member",
]
