"""
Tests for architecture profiles.
"""

import pytest

from sdkmanage.core.exceptions import ValidationError
from sdkmanage.cross.arch import arch_profile, default_toolchain


class TestArchProfile:
    """Test arch_profile()."""

    def test_arm(self):
        profile = arch_profile("armv7hl")

        assert profile.compiler == "/opt/cross/bin/armv7hl-meego-linux-gnueabi-gcc"
        assert profile.emulator == "/usr/bin/qemu-arm-dynamic"

    def test_aarch64(self):
        assert arch_profile("aarch64").emulator == "/usr/bin/qemu-aarch64-dynamic"

    def test_mipsel(self):
        assert arch_profile("mipsel").compiler.endswith("mipsel-meego-linux-gnu-gcc")

    @pytest.mark.parametrize("arch", ["i486", "i586", "i686"])
    def test_x86_runs_natively(self, arch):
        """Test x86 targets share the i486 compiler and need no emulator."""
        profile = arch_profile(arch)

        assert profile.compiler == "/opt/cross/bin/i486-meego-linux-gnu-gcc"
        assert profile.emulator is None

    def test_unsupported(self):
        with pytest.raises(ValidationError, match="sparc"):
            arch_profile("sparc")


def test_default_toolchain():
    assert default_toolchain("i486") == "patterns-sailfish-sb2-i486"
    assert default_toolchain("armv7hl", prefix="tc-") == "tc-armv7hl"
