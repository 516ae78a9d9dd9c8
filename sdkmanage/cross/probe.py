"""
Release and architecture detection for unpacked root file systems.

Targets are matched to toolings by release: both carry the release they were
built for in their SSU configuration (``/etc/ssu/ssu.ini``). The processor
architecture of a target is asked from its own RPM database.
"""

import configparser
import logging
from pathlib import Path
from typing import Optional

from sdkmanage.core.exceptions import SdkEnvironmentError
from sdkmanage.core.process import CommandRunner

logger = logging.getLogger(__name__)

SSU_INI = Path("etc/ssu/ssu.ini")
OS_RELEASE = Path("etc/os-release")


def read_ssu_release(root: Path) -> Optional[str]:
    """Release from ``[General] release=`` of the root's ssu.ini, if any."""
    parser = configparser.ConfigParser(interpolation=None, strict=False)
    try:
        parser.read(root / SSU_INI, encoding="utf-8")
    except configparser.Error as e:
        logger.warning(f"Cannot parse {root / SSU_INI}: {e}")
        return None
    value = parser.get("General", "release", fallback="").strip()
    return value or None


def read_os_release_version(root: Path) -> Optional[str]:
    """VERSION_ID from the root's os-release, if any."""
    try:
        text = (root / OS_RELEASE).read_text(encoding="utf-8")
    except OSError:
        return None
    for line in text.splitlines():
        key, _, value = line.partition("=")
        if key.strip() == "VERSION_ID":
            return value.strip().strip("\"'") or None
    return None


class RootfsProbe:
    """
    Query an unpacked root file system.

    Example:
        >>> probe = RootfsProbe(CommandRunner())
        >>> probe.release(Path("/srv/mer/targets/SailfishOS-4.5.0.18-armv7hl"))
        '4.5.0.18'
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def release(self, root: Path) -> str:
        """
        Release identifier of root.

        The SSU release is authoritative; os-release VERSION_ID is used for
        roots that do not carry SSU configuration.

        Raises:
            SdkEnvironmentError: If root carries no release information
        """
        release = read_ssu_release(root) or read_os_release_version(root)
        if not release:
            raise SdkEnvironmentError(f"Cannot determine release of {root}")
        logger.debug(f"Release of {root}: {release}")
        return release

    def architecture(self, root: Path) -> str:
        """
        Processor architecture of root, as recorded by its RPM database.

        Raises:
            ExternalToolFailure: If rpm fails
            SdkEnvironmentError: If rpm reports nothing
        """
        result = self.runner.run(
            ["rpm", "--root", root, "-q", "--qf", "%{ARCH}\\n", "rpm"], capture=True
        )
        lines = result.stdout.split()
        arch = lines[0] if lines else ""
        if not arch:
            raise SdkEnvironmentError(f"Cannot determine architecture of {root}")
        logger.debug(f"Architecture of {root}: {arch}")
        return arch
