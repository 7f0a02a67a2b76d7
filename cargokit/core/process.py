"""
Subprocess execution for cargokit.

`run_command` is the single place where child processes are started. It
mirrors the options hosted CI runners expose for exec calls: fail or not on
non-zero exit, fail or not on stderr output, inherited or captured stdio.
"""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from cargokit.core.exceptions import ProcessExecutionError

logger = logging.getLogger(__name__)


@dataclass
class ExecOptions:
    """
    Options for running a child process.

    Attributes:
        ignore_return_code: Do not raise when the process exits non-zero
        fail_on_stderr: Raise when the process writes anything to stderr
        capture_output: Capture stdout/stderr instead of inheriting them
        cwd: Working directory for the child (default: inherited)
        env: Extra environment variables merged over the inherited ones
    """

    ignore_return_code: bool = False
    fail_on_stderr: bool = False
    capture_output: bool = False
    cwd: Optional[Path] = None
    env: Dict[str, str] = field(default_factory=dict)


@dataclass
class ExecResult:
    """Outcome of a finished child process."""

    exit_code: int
    stdout: str = ""
    stderr: str = ""


def _format_command(executable: Union[str, Path], args: Sequence[str]) -> str:
    return " ".join([str(executable), *args])


def run_command(
    executable: Union[str, Path],
    args: Sequence[str],
    options: Optional[ExecOptions] = None,
) -> ExecResult:
    """
    Run an executable with an argument vector.

    Args:
        executable: Resolved path (or name) of the program to run
        args: Arguments passed to the program
        options: Exec options (defaults: raise on non-zero, inherit stdio)

    Returns:
        ExecResult with the child's exit code (and output when captured)

    Raises:
        ProcessExecutionError: If the process cannot be started, exits
            non-zero without ignore_return_code, or writes to stderr with
            fail_on_stderr
    """
    options = options or ExecOptions()
    command: List[str] = [str(executable), *args]
    display = _format_command(executable, args)

    env = None
    if options.env:
        env = {**os.environ, **options.env}

    # stderr has to be captured to honor fail_on_stderr
    capture_stderr = options.capture_output or options.fail_on_stderr

    logger.info(f"[command]{display}")
    try:
        result = subprocess.run(
            command,
            cwd=str(options.cwd) if options.cwd else None,
            env=env,
            stdout=subprocess.PIPE if options.capture_output else None,
            stderr=subprocess.PIPE if capture_stderr else None,
            text=True,
        )
    except OSError as e:
        raise ProcessExecutionError(display, None, f"could not start: {e}") from e

    stdout = result.stdout or ""
    stderr = result.stderr or ""

    if stderr and not options.capture_output:
        # Pass stderr through when it was captured only for inspection
        logger.warning(stderr.rstrip())

    if options.fail_on_stderr and stderr:
        raise ProcessExecutionError(
            display, result.returncode, "process wrote to stderr"
        )

    if result.returncode != 0 and not options.ignore_return_code:
        raise ProcessExecutionError(
            display,
            result.returncode,
            f"exited with code {result.returncode}",
        )

    logger.debug(f"{display} exited with code {result.returncode}")
    return ExecResult(exit_code=result.returncode, stdout=stdout, stderr=stderr)
