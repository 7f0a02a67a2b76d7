"""Toolchain selection for cargo invocations."""

from typing import Optional


def format_toolchain_arg(toolchain: Optional[str] = None) -> str:
    """
    Compute the argument that selects a toolchain for cargo (or rustup proxies).

    Args:
        toolchain: Toolchain to use, or None to use the default toolchain

    Returns:
        Either an empty string if the default toolchain must be used, or the
        toolchain identifier prefixed with '+'

    Example:
        >>> format_toolchain_arg('nightly')
        '+nightly'
        >>> format_toolchain_arg('+beta')
        '+beta'
        >>> format_toolchain_arg()
        ''
    """
    if not toolchain:
        return ""

    return toolchain if toolchain.startswith("+") else f"+{toolchain}"
