"""
Cargo, the host build tool.

Every managed tool is installed with `cargo install` into cargo's own bin
directory, and sub-command tools are run through cargo.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from cargokit.core.exceptions import NotInstalledError
from cargokit.core.filesystem import find_executable
from cargokit.core.process import ExecOptions, run_command
from cargokit.tools.toolchain import format_toolchain_arg

logger = logging.getLogger(__name__)


class Cargo:
    """
    Located cargo executable with an optional toolchain override.

    Attributes:
        path: Resolved path of the cargo executable
        toolchain: Formatted toolchain argument ('' for the default toolchain)
    """

    def __init__(self, path: Path, toolchain: Optional[str] = None):
        self.path = Path(path)
        self.toolchain = format_toolchain_arg(toolchain)

    @classmethod
    def get(
        cls, toolchain: Optional[str] = None, search_paths: Optional[List[Path]] = None
    ) -> "Cargo":
        """
        Locate the installed cargo.

        Args:
            toolchain: Optional toolchain to use when executing cargo commands
            search_paths: Directories to search instead of PATH

        Returns:
            Cargo instance

        Raises:
            NotInstalledError: If cargo is not on the search path
        """
        path = find_executable("cargo", search_paths)
        if path is None:
            logger.error(
                "cargo is not installed by default for some virtual environments, "
                "see https://help.github.com/en/articles/software-in-virtual-environments-for-github-actions"
            )
            logger.error(
                "To install it, use rustup or an action such as: "
                "https://github.com/actions-rust-lang/setup-rust-toolchain"
            )
            raise NotInstalledError("cargo")

        return cls(path, toolchain)

    @property
    def bin_dir(self) -> Path:
        """Directory holding cargo and every binary installed by `cargo install`."""
        return self.path.parent

    def call_args(self, args: Sequence[str]) -> List[str]:
        """Prefix args with the toolchain argument, if any."""
        return [self.toolchain, *args] if self.toolchain else list(args)

    def call(self, args: Sequence[str], options: Optional[ExecOptions] = None) -> int:
        """
        Run a cargo command.

        Args:
            args: Arguments to pass to cargo
            options: Optional exec options

        Returns:
            Cargo exit code
        """
        return run_command(self.path, self.call_args(args), options).exit_code
