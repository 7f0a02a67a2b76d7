"""
Entry point for running cargokit as a module.

Usage: python -m cargokit [command] [options]
"""

from cargokit.cli.parser import main

if __name__ == "__main__":
    main()
