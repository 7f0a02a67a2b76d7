"""
Callable references to installed tools.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from cargokit.core.process import ExecOptions, run_command

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    """Identifies a concrete executable and where it lives."""

    name: str
    display_path: str


@dataclass(frozen=True)
class ToolHandle:
    """
    Immutable reference to an installed tool.

    Attributes:
        name: Tool name (e.g., 'cross')
        path: Resolved path of the tool's executable
        toolchain_arg: '+toolchain' argument, or '' for the default toolchain
        subcommand: Cargo sub-command the tool implements (e.g., 'hack'),
            None for standalone tools
        cargo_path: Cargo executable used to dispatch sub-command tools
    """

    name: str
    path: Path
    toolchain_arg: str = ""
    subcommand: Optional[str] = None
    cargo_path: Optional[Path] = None

    @property
    def spec(self) -> ToolSpec:
        return ToolSpec(name=self.name, display_path=str(self.path))

    def command(self, args: Sequence[str]) -> Tuple[Path, List[str]]:
        """
        Build the executable and argument vector that run the tool with args.

        Sub-command tools are dispatched through cargo so the toolchain
        argument is understood (`cargo +nightly hack ...`). Without a cargo
        executable they are called the way cargo would call them
        (`cargo-hack hack ...`).
        """
        toolchain = [self.toolchain_arg] if self.toolchain_arg else []

        if self.subcommand:
            if self.cargo_path is not None:
                return self.cargo_path, [*toolchain, self.subcommand, *args]
            if self.toolchain_arg:
                logger.warning(
                    f"cargo not found, running {self.name} without toolchain "
                    f"{self.toolchain_arg}"
                )
            return self.path, [self.subcommand, *args]

        return self.path, [*toolchain, *args]

    def call(self, args: Sequence[str], options: Optional[ExecOptions] = None) -> int:
        """
        Run the tool.

        Args:
            args: Arguments to pass to the tool
            options: Exec options; by default non-zero exit codes are
                returned, not raised

        Returns:
            The child process exit code, unmodified
        """
        if options is None:
            options = ExecOptions(ignore_return_code=True)

        executable, argv = self.command(args)
        return run_command(executable, argv, options).exit_code
