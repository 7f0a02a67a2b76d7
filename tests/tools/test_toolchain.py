"""
Unit tests for toolchain argument formatting.
"""

import pytest

from cargokit.tools.toolchain import format_toolchain_arg


class TestFormatToolchainArg:
    """Test format_toolchain_arg."""

    def test_default_toolchain(self):
        """No toolchain means no argument."""
        assert format_toolchain_arg() == ""
        assert format_toolchain_arg(None) == ""
        assert format_toolchain_arg("") == ""

    def test_prefixes_plus(self):
        assert format_toolchain_arg("nightly") == "+nightly"

    def test_keeps_existing_plus(self):
        assert format_toolchain_arg("+beta") == "+beta"

    @pytest.mark.parametrize("toolchain", ["stable", "+1.75.0", "nightly-2024-01-01"])
    def test_idempotent(self, toolchain):
        once = format_toolchain_arg(toolchain)
        assert format_toolchain_arg(once) == once
