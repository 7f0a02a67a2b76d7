"""
File system cache backing store.

Stores each cache entry as a gzipped tarball under a cache root directory,
with a JSON index mapping keys to archives. Suitable for local runs and for
self-hosted CI runners that keep a persistent cache directory between jobs.

Layout:
    <root>/index.json               key -> {archive, created, paths}
    <root>/entries/<safe-key>.tar.gz
    <root>/lock/                    index lock and per-key reservation locks

Restore precedence follows hosted CI caches: exact match on the primary key,
then for each restore key an exact match followed by the newest entry whose
key starts with it.
"""

import json
import logging
import sys
import tarfile
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path, PurePosixPath
from typing import Dict, List, Optional, Sequence

from filelock import FileLock, Timeout

from cargokit.cache.store import CacheStore, validate_key, validate_paths
from cargokit.core.exceptions import CacheOtherError, CacheReservationConflict
from cargokit.core.filesystem import (
    InsecureArchiveError,
    atomic_write,
    validate_archive_member,
)
from cargokit.core.locking import key_lock_path, safe_key, try_lock

logger = logging.getLogger(__name__)

INDEX_VERSION = 1


def _archive_name(path: Path) -> str:
    """Name of path inside an archive: the absolute path without its anchor."""
    path = path.resolve() if not path.is_absolute() else path
    return PurePosixPath(*path.parts[1:]).as_posix()


def _member_matches(member_name: str, wanted: Sequence[str]) -> bool:
    for name in wanted:
        if member_name == name or member_name.startswith(name + "/"):
            return True
    return False


class LocalCacheStore(CacheStore):
    """
    Cache store backed by a local directory.

    Attributes:
        root: Cache root directory
        lock_timeout: Seconds to wait for the index lock

    Example:
        >>> store = LocalCacheStore(Path('~/.cargokit/cache').expanduser())
        >>> store.save([Path('/home/me/.cargo/bin/cross')], 'cross-0.2.5-ci')
        >>> store.restore([Path('/home/me/.cargo/bin/cross')], 'cross-0.2.5-ci')
        'cross-0.2.5-ci'
    """

    def __init__(self, root: Path, lock_timeout: int = 30):
        self.root = Path(root)
        self.entries_dir = self.root / "entries"
        self.lock_dir = self.root / "lock"
        self.index_path = self.root / "index.json"
        self.lock_timeout = lock_timeout

        logger.debug(f"Initialized local cache store at {self.root}")

    # ------------------------------------------------------------------
    # Index management
    # ------------------------------------------------------------------

    def _empty_index(self) -> dict:
        return {"version": INDEX_VERSION, "entries": {}}

    def _load_index(self) -> dict:
        if not self.index_path.exists():
            return self._empty_index()

        try:
            with open(self.index_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise CacheOtherError(f"Failed to load cache index: {e}") from e

        if not isinstance(data, dict) or "entries" not in data:
            logger.warning("Invalid cache index format, resetting")
            return self._empty_index()

        return data

    def _save_index(self, data: dict) -> None:
        try:
            atomic_write(self.index_path, json.dumps(data, indent=2))
        except OSError as e:
            raise CacheOtherError(f"Failed to save cache index: {e}") from e

    @contextmanager
    def _index_lock(self):
        """Hold the exclusive index lock for the duration of the block."""
        try:
            self.lock_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise CacheOtherError(f"Cannot create lock directory: {e}") from e

        lock = FileLock(self.lock_dir / "index.lock", timeout=self.lock_timeout)
        try:
            with lock:
                yield
        except Timeout as e:
            raise CacheOtherError(
                f"Could not acquire cache index lock within {self.lock_timeout}s"
            ) from e

    def keys(self) -> List[str]:
        """Return every key currently stored, oldest first."""
        with self._index_lock():
            entries = self._load_index()["entries"]
        return sorted(entries, key=lambda k: entries[k].get("created", ""))

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def _find_match(
        self, entries: Dict[str, dict], primary_key: str, restore_keys: Sequence[str]
    ) -> Optional[str]:
        if primary_key in entries:
            return primary_key

        for restore_key in restore_keys:
            if restore_key in entries:
                return restore_key

            candidates = [k for k in entries if k.startswith(restore_key)]
            if candidates:
                return max(candidates, key=lambda k: entries[k].get("created", ""))

        return None

    def restore(
        self,
        paths: Sequence[Path],
        primary_key: str,
        restore_keys: Sequence[str] = (),
    ) -> Optional[str]:
        paths = validate_paths(paths)
        validate_key(primary_key)
        for restore_key in restore_keys:
            validate_key(restore_key)

        with self._index_lock():
            entries = self._load_index()["entries"]
            matched = self._find_match(entries, primary_key, restore_keys)
            entry = entries.get(matched) if matched else None

        if entry is None:
            logger.debug(f"Cache not found for key {primary_key}")
            return None

        archive = self.entries_dir / entry["archive"]
        if not archive.exists():
            logger.warning(f"Cache entry {matched} is missing its archive {archive}")
            return None

        wanted = [_archive_name(p) for p in paths]
        destination = Path(paths[0].resolve().anchor)

        try:
            extracted = self._extract(archive, destination, wanted)
        except (OSError, tarfile.TarError, InsecureArchiveError) as e:
            raise CacheOtherError(f"Failed to restore cache {matched}: {e}") from e

        if not extracted:
            logger.warning(f"Cache entry {matched} holds none of the requested paths")
            return None

        logger.info(f"Cache restored from key: {matched}")
        return matched

    def _extract(self, archive: Path, destination: Path, wanted: List[str]) -> int:
        with tarfile.open(archive, "r:gz") as tar:
            members = [m for m in tar.getmembers() if _member_matches(m.name, wanted)]

            for member in members:
                validate_archive_member(member.name, destination)

            if sys.version_info >= (3, 12):
                tar.extractall(destination, members=members, filter="data")
            else:
                tar.extractall(destination, members=members)

        return len(members)

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    def save(self, paths: Sequence[Path], primary_key: str) -> None:
        paths = validate_paths(paths)
        validate_key(primary_key)

        existing = [p for p in paths if p.exists()]
        if not existing:
            raise CacheOtherError(
                "Path Validation Error: Path(s) specified for caching do not exist, "
                "hence no cache is being saved."
            )

        with try_lock(key_lock_path(self.lock_dir, primary_key)) as acquired:
            if not acquired:
                raise CacheReservationConflict(primary_key)

            with self._index_lock():
                if primary_key in self._load_index()["entries"]:
                    raise CacheReservationConflict(primary_key)

            archive_name = f"{safe_key(primary_key)}.tar.gz"
            try:
                self._write_archive(self.entries_dir / archive_name, existing)
            except (OSError, tarfile.TarError) as e:
                raise CacheOtherError(f"Failed to save cache {primary_key}: {e}") from e

            with self._index_lock():
                data = self._load_index()
                data["entries"][primary_key] = {
                    "archive": archive_name,
                    "created": datetime.now().isoformat(),
                    "paths": [str(p) for p in existing],
                }
                self._save_index(data)

        logger.info(f"Cache saved with key: {primary_key}")

    def _write_archive(self, archive: Path, paths: List[Path]) -> None:
        archive.parent.mkdir(parents=True, exist_ok=True)

        # Write next to the target so the final rename is atomic
        with tempfile.NamedTemporaryFile(
            dir=archive.parent, prefix=f".{archive.name}.", suffix=".tmp", delete=False
        ) as tmp:
            tmp_path = Path(tmp.name)

        try:
            with tarfile.open(tmp_path, "w:gz") as tar:
                for path in paths:
                    tar.add(path.resolve(), arcname=_archive_name(path))
            tmp_path.replace(archive)
        except Exception:
            tmp_path.unlink(missing_ok=True)
            raise
