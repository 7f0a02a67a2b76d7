"""
Command-line interface for cargokit.
"""

from .parser import CLI, main

__all__ = ["CLI", "main"]
