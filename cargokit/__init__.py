"""
cargokit - cached installs of cargo tools for CI.

Installs auxiliary cargo tools (cargo-hack, cross) when they are missing and
caches the built binary between runs so `cargo install` does not repeat.
"""

__version__ = "0.1.0"
