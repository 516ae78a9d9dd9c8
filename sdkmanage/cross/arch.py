"""
Architecture specific settings for scratchbox2 targets.

The processor architecture of a target selects the cross compiler and the
QEMU binary scratchbox2 uses to run target executables transparently.
"""

from dataclasses import dataclass
from typing import Optional

from sdkmanage.core.exceptions import ValidationError

CROSS_BIN = "/opt/cross/bin"


@dataclass(frozen=True)
class ArchProfile:
    """
    Cross-compilation settings for one architecture.

    Attributes:
        arch: RPM architecture of the target (e.g., 'armv7hl', 'i486')
        compiler: Path of the cross compiler inside the tooling
        emulator: QEMU binary for running target code, None when the host
            can run it natively
    """

    arch: str
    compiler: str
    emulator: Optional[str] = None


def arch_profile(arch: str) -> ArchProfile:
    """
    Look up the cross-compilation settings for arch.

    Args:
        arch: RPM architecture string

    Returns:
        ArchProfile for arch

    Raises:
        ValidationError: If arch is not supported

    Example:
        >>> arch_profile("armv7hl").emulator
        '/usr/bin/qemu-arm-dynamic'
        >>> arch_profile("i486").emulator is None
        True
    """
    if arch.startswith("arm"):
        return ArchProfile(
            arch=arch,
            compiler=f"{CROSS_BIN}/{arch}-meego-linux-gnueabi-gcc",
            emulator="/usr/bin/qemu-arm-dynamic",
        )
    if arch == "aarch64":
        return ArchProfile(
            arch=arch,
            compiler=f"{CROSS_BIN}/aarch64-meego-linux-gnu-gcc",
            emulator="/usr/bin/qemu-aarch64-dynamic",
        )
    if arch == "mipsel":
        return ArchProfile(
            arch=arch,
            compiler=f"{CROSS_BIN}/mipsel-meego-linux-gnu-gcc",
            emulator="/usr/bin/qemu-mipsel-dynamic",
        )
    if arch in ("i486", "i586", "i686"):
        return ArchProfile(arch=arch, compiler=f"{CROSS_BIN}/i486-meego-linux-gnu-gcc")

    raise ValidationError(
        f"Unsupported target architecture: {arch}. "
        "Supported: arm*, aarch64, mipsel, i486, i586, i686"
    )


def default_toolchain(arch: str, prefix: str = "patterns-sailfish-sb2-") -> str:
    """
    Name of the toolchain package that serves targets of arch.

    Example:
        >>> default_toolchain("armv7hl")
        'patterns-sailfish-sb2-armv7hl'
    """
    return f"{prefix}{arch}"
