"""
cargokit CLI argument parser.

This module implements the command-line interface for cargokit using argparse.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from cargokit.core.exceptions import CargoKitError
from cargokit.tools.manager import TOOLS

# Get version from package
try:
    from importlib.metadata import version

    __version__ = version("cargokit")
except Exception:
    __version__ = "0.1.0"

logger = logging.getLogger(__name__)


class CLI:
    """cargokit command-line interface."""

    def __init__(self):
        """Initialize CLI with argument parser."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """
        Create argument parser with all subcommands.

        Returns:
            Configured ArgumentParser instance
        """
        parser = argparse.ArgumentParser(
            prog="cargokit",
            description="cargokit - cached installs of cargo tools for CI",
            epilog='Use "cargokit COMMAND --help" for command-specific help',
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )

        # Global options
        parser.add_argument(
            "--version", action="version", version=f"cargokit {__version__}"
        )
        parser.add_argument(
            "--verbose", "-v", action="store_true", help="Enable verbose output"
        )
        parser.add_argument(
            "--quiet",
            "-q",
            action="store_true",
            help="Enable minimal output (errors only)",
        )
        parser.add_argument(
            "--config",
            type=Path,
            metavar="PATH",
            help="Path to configuration file (default: ./cargokit.yaml)",
        )

        subparsers = parser.add_subparsers(
            dest="command", help="Available commands", metavar="COMMAND"
        )

        self._add_get_command(subparsers)
        self._add_install_command(subparsers)
        self._add_ensure_command(subparsers)
        self._add_run_command(subparsers)
        self._add_resolve_command(subparsers)

        return parser

    @staticmethod
    def _add_tool_argument(parser):
        parser.add_argument(
            "tool", choices=sorted(TOOLS), metavar="TOOL", help="Tool name"
        )
        parser.add_argument(
            "--toolchain",
            metavar="NAME",
            help="Toolchain used to run the tool (e.g., nightly, +1.75)",
        )

    @staticmethod
    def _add_install_arguments(parser):
        parser.add_argument(
            "--tool-version",
            metavar="VERSION",
            help="Version to install (default: latest)",
        )
        parser.add_argument(
            "--primary-key",
            metavar="KEY",
            help="Primary cache key ('no-cache' disables caching)",
        )
        parser.add_argument(
            "--restore-key",
            action="append",
            metavar="KEY",
            help="Fallback cache key (can be used multiple times)",
        )

    def _add_get_command(self, subparsers):
        """Add 'get' subcommand."""
        parser = subparsers.add_parser(
            "get",
            help="Locate an installed tool",
            description="Print the path of an installed tool, fail if missing",
        )
        self._add_tool_argument(parser)

    def _add_install_command(self, subparsers):
        """Add 'install' subcommand."""
        parser = subparsers.add_parser(
            "install",
            help="Install a tool through the cache",
            description="Install a tool, restoring it from the cache when possible",
        )
        self._add_tool_argument(parser)
        self._add_install_arguments(parser)

    def _add_ensure_command(self, subparsers):
        """Add 'ensure' subcommand."""
        parser = subparsers.add_parser(
            "ensure",
            help="Reuse an installed tool or install it",
            description="Use the installed tool if present, otherwise install it",
        )
        self._add_tool_argument(parser)
        self._add_install_arguments(parser)

    def _add_run_command(self, subparsers):
        """Add 'run' subcommand."""
        parser = subparsers.add_parser(
            "run",
            help="Run a tool, installing it if needed",
            description="Run a tool and exit with its exit code",
        )
        self._add_tool_argument(parser)
        self._add_install_arguments(parser)
        parser.add_argument(
            "tool_args",
            nargs=argparse.REMAINDER,
            metavar="ARGS",
            help="Arguments passed to the tool (after --)",
        )

    def _add_resolve_command(self, subparsers):
        """Add 'resolve' subcommand."""
        parser = subparsers.add_parser(
            "resolve",
            help="Show the latest version of a crate",
            description="Query crates.io for the newest published version",
        )
        parser.add_argument("crate", metavar="CRATE", help="Crate name")

    def parse_args(self, args: Optional[List[str]] = None):
        """
        Parse command-line arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Parsed arguments namespace
        """
        return self.parser.parse_args(args)

    def run(self, args: Optional[List[str]] = None) -> int:
        """
        Run CLI with given arguments.

        Args:
            args: Arguments to parse (uses sys.argv if None)

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        parsed_args = self.parse_args(args)

        self._configure_logging(parsed_args)

        if not parsed_args.command:
            self.parser.print_help()
            return 1

        try:
            return self._dispatch_command(parsed_args)
        except KeyboardInterrupt:
            logger.info("Operation cancelled by user")
            return 130  # Standard exit code for SIGINT
        except CargoKitError as e:
            logger.error(f"Error: {e}")
            if parsed_args.verbose:
                import traceback

                traceback.print_exc()
            return 1

    def _configure_logging(self, args):
        """
        Configure logging based on verbose/quiet flags.

        Args:
            args: Parsed arguments with verbose/quiet flags
        """
        if args.verbose:
            level = logging.DEBUG
            format_str = "%(levelname)s [%(name)s] %(message)s"
        elif args.quiet:
            level = logging.ERROR
            format_str = "%(levelname)s: %(message)s"
        else:
            level = logging.INFO
            format_str = "%(message)s"

        logging.basicConfig(
            level=level,
            format=format_str,
            force=True,  # Reconfigure if already configured
        )

    def _dispatch_command(self, args) -> int:
        """
        Dispatch to appropriate command handler.

        Args:
            args: Parsed arguments with command field

        Returns:
            Exit code from command handler
        """
        from cargokit.cli.commands import tools

        command_map = {
            "get": tools.run_get,
            "install": tools.run_install,
            "ensure": tools.run_ensure,
            "run": tools.run_exec,
            "resolve": tools.run_resolve,
        }

        handler = command_map.get(args.command)
        if not handler:
            logger.error(f"Unknown command: {args.command}")
            return 1

        return handler(args)


def main():
    """Main entry point for CLI."""
    cli = CLI()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
