"""
Cached installation of cargo tools.

`ToolInstaller` runs the acquisition pipeline for one tool:

1. resolve the version (crates.io lookup when 'latest' or unspecified)
2. derive the cache keys from tool, concrete version and primary key
3. try to restore the binary from the cache store
4. on a miss, run `cargo install` from a neutral directory
5. save the fresh binary to the cache store (best effort)

Steps run strictly in order since each needs the previous result.
Installing the same key from two processes at once is not safe on its own;
the cache store's key reservation decides which one gets to save.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from cargokit.cache.store import CacheStore, is_caching_disabled
from cargokit.core.exceptions import (
    CacheReservationConflict,
    CacheValidationError,
    InstallCommandError,
)
from cargokit.core.filesystem import (
    executable_name,
    neutral_directory,
    working_directory,
)
from cargokit.core.logs import log_group
from cargokit.core.process import ExecOptions
from cargokit.core.registry import CratesRegistry
from cargokit.tools.cargo import Cargo

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "cargokit"
LATEST = "latest"


@dataclass(frozen=True)
class InstallRequest:
    """
    What to install and how to cache it.

    Attributes:
        tool_name: Crate to install (e.g., 'cross')
        version: Version to install; None or 'latest' resolves the newest one
        primary_key: Primary cache key; None uses the default key and
            'no-cache' disables caching
        restore_keys: Fallback cache keys, tried in order
        binary_name: Name of the installed executable (default: tool_name)
    """

    tool_name: str
    version: Optional[str] = None
    primary_key: Optional[str] = None
    restore_keys: Tuple[str, ...] = field(default_factory=tuple)
    binary_name: Optional[str] = None

    @property
    def binary(self) -> str:
        return self.binary_name or self.tool_name


@dataclass(frozen=True)
class CacheKeys:
    """Primary cache key and its ordered fallbacks."""

    primary: str
    restore: Tuple[str, ...] = ()


def default_primary_key(tool_name: str, namespace: str = DEFAULT_NAMESPACE) -> str:
    """Primary key used when the caller does not pick one."""
    return f"{namespace}-{tool_name}"


def compute_cache_keys(
    tool_name: str,
    version: str,
    primary_key: str,
    restore_keys: Sequence[str] = (),
) -> CacheKeys:
    """
    Derive the cache keys for one tool version.

    The same tool, version and primary key always give the same key, which
    is what makes the second run a cache hit.

    Example:
        >>> compute_cache_keys('cross', '0.2.5', 'ci', ['ci-old'])
        CacheKeys(primary='cross-0.2.5-ci', restore=('cross-0.2.5-ci-old',))
    """
    return CacheKeys(
        primary=f"{tool_name}-{version}-{primary_key}",
        restore=tuple(f"{tool_name}-{version}-{key}" for key in restore_keys),
    )


class ToolInstaller:
    """
    Install cargo tools through the cache.

    Attributes:
        cargo: Host cargo used for `cargo install`
        cache_store: Backing store for installed binaries
        registry: crates.io client used to resolve 'latest'
        namespace: Prefix of default primary keys
        locked: Pass --locked to `cargo install`
        neutral_build_dir: Build from the temp directory so no toolchain
            override of the current project applies to the build
    """

    def __init__(
        self,
        cargo: Cargo,
        cache_store: CacheStore,
        registry: Optional[CratesRegistry] = None,
        namespace: str = DEFAULT_NAMESPACE,
        locked: bool = False,
        neutral_build_dir: bool = True,
    ):
        self.cargo = cargo
        self.cache_store = cache_store
        self.registry = registry or CratesRegistry()
        self.namespace = namespace
        self.locked = locked
        self.neutral_build_dir = neutral_build_dir

    def resolve_version(self, request: InstallRequest) -> str:
        """
        Return the concrete version to install.

        Raises:
            ResolutionError: If 'latest' cannot be resolved
        """
        if not request.version or request.version == LATEST:
            return self.registry.resolve_latest_version(request.tool_name)
        return request.version

    def artifact_paths(self, request: InstallRequest) -> List[Path]:
        """Files produced by the install: the binary in cargo's bin directory."""
        return [self.cargo.bin_dir / executable_name(request.binary)]

    def cache_keys(self, request: InstallRequest, version: str) -> CacheKeys:
        primary_key = request.primary_key or default_primary_key(
            request.tool_name, self.namespace
        )
        return compute_cache_keys(
            request.tool_name, version, primary_key, request.restore_keys
        )

    def install(self, request: InstallRequest) -> Path:
        """
        Install a tool, reusing a cached binary when one exists.

        Args:
            request: What to install and how to cache it

        Returns:
            Path to the installed executable

        Raises:
            ResolutionError: If the version cannot be resolved
            InstallCommandError: If `cargo install` fails
            CacheValidationError: If the cache request is malformed
        """
        version = self.resolve_version(request)
        paths = self.artifact_paths(request)
        use_cache = not is_caching_disabled(request.primary_key)
        keys = self.cache_keys(request, version) if use_cache else None

        if keys is not None:
            matched = self._restore_from_cache(paths, keys)
            if matched:
                logger.info(
                    f"Using cached `{request.tool_name}` with version `{version}`"
                )
                return paths[0]

        installed = self._cargo_install(request, version)

        if keys is not None:
            self._save_to_cache(request.tool_name, paths, keys.primary)

        return installed

    def _install_args(self, tool_name: str, version: str) -> List[str]:
        args = ["install"]
        if self.locked:
            args.append("--locked")
        args.extend(["--version", version, tool_name])
        return args

    def _run_install(self, request: InstallRequest, version: str) -> int:
        options = ExecOptions(ignore_return_code=True)
        return self.cargo.call(self._install_args(request.tool_name, version), options)

    def _cargo_install(self, request: InstallRequest, version: str) -> Path:
        with log_group(f'Installing "{request.tool_name} = {version}"'):
            if self.neutral_build_dir:
                with working_directory(neutral_directory()):
                    exit_code = self._run_install(request, version)
            else:
                exit_code = self._run_install(request, version)

        if exit_code != 0:
            raise InstallCommandError(request.tool_name, version, exit_code)

        return self.artifact_paths(request)[0]

    def _restore_from_cache(
        self, paths: List[Path], keys: CacheKeys
    ) -> Optional[str]:
        """Restore from the cache; a failing store counts as a miss."""
        try:
            return self.cache_store.restore(paths, keys.primary, keys.restore)
        except CacheValidationError:
            raise
        except Exception as e:
            logger.warning(f"Failed to restore cache: {e}")
            return None

    def _save_to_cache(self, tool_name: str, paths: List[Path], key: str) -> None:
        """Save to the cache; only validation errors are allowed to escape."""
        try:
            logger.info(f"Caching `{tool_name}` with key `{key}`")
            self.cache_store.save(paths, key)
        except CacheValidationError:
            raise
        except CacheReservationConflict as e:
            logger.info(str(e))
        except Exception as e:
            logger.warning(f"Failed to save cache: {e}")
