"""
Entry point for running the cargokit CLI as a module.

Usage: python -m cargokit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
