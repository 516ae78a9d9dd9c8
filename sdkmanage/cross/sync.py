"""
Mirroring of target files to the host-visible target view.

In the virtualized SDK the IDE on the host cannot see the build roots inside
the virtual machine. A curated subset (headers, QML modules, pkg-config data
and the Qt Core library the IDE uses to detect the architecture) is copied
with rsync to a shared directory.
"""

import logging
import os
from pathlib import Path
from typing import List, Sequence

from sdkmanage.core.exceptions import ExternalToolFailure
from sdkmanage.core.process import CommandRunner

logger = logging.getLogger(__name__)

# rsync filter rules, first match wins
SYNC_FILTERS = (
    "+ */",
    "+ /usr/lib/libQt5Core.so*",
    "- lib*.so*",
    "+ /usr/lib/qt5/qml/**",
    "+ /usr/lib/qt5/imports/**",
    "+ /usr/include/**",
    "+ /usr/share/qt5/**",
    "+ /usr/lib/pkgconfig/**",
    "+ /usr/share/pkgconfig/**",
    "- *",
)

# The IDE crashes on targets without this executable
PLACEHOLDER_EXECUTABLE = Path("usr/bin/qmlscene")
# ...and expects this directory to exist
EXPECTED_DIRECTORY = Path("usr/lib/qt5/plugins")

# Partial transfer due to error / vanished source files
RSYNC_PARTIAL_EXIT_CODES = (23, 24)

RSYNC_BASE = ["rsync", "-prl", "--delete", "--ignore-errors"]


class HostSync:
    """
    rsync based mirroring between a target root and its host view.

    Individual file errors do not fail a sync: rsync runs with
    --ignore-errors and its partial-transfer exit codes count as success.
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def sync(self, target_root: Path, host_root: Path) -> None:
        """
        Mirror the curated subset of target_root to host_root.

        Files deleted from the target are deleted from the host view.

        Raises:
            ExternalToolFailure: If rsync fails as a whole
        """
        host_root.mkdir(parents=True, exist_ok=True)
        args: List[str] = list(RSYNC_BASE) + ["--prune-empty-dirs"]
        for rule in SYNC_FILTERS:
            args.extend(["-f", rule])
        args.extend([f"{target_root}/", f"{host_root}/"])

        logger.info(f"Synchronizing {target_root} to {host_root}")
        self._rsync(args)
        self._ensure_markers(host_root)

    def import_(self, host_root: Path, target_root: Path) -> None:
        """
        Copy the host view back into target_root, mirroring deletions.

        Raises:
            ExternalToolFailure: If rsync fails as a whole
        """
        logger.info(f"Importing {host_root} to {target_root}")
        self._rsync(list(RSYNC_BASE) + [f"{host_root}/", f"{target_root}/"])

    def _rsync(self, args: Sequence[str]) -> None:
        result = self.runner.run(args, capture=True, check=False)
        if result.returncode in RSYNC_PARTIAL_EXIT_CODES:
            logger.warning(
                f"rsync could not transfer some files (exit code {result.returncode})"
            )
        elif result.returncode != 0:
            raise ExternalToolFailure(
                args, result.returncode, stderr=result.stderr, message="rsync failed"
            )

    def _ensure_markers(self, host_root: Path) -> None:
        placeholder = host_root / PLACEHOLDER_EXECUTABLE
        placeholder.parent.mkdir(parents=True, exist_ok=True)
        if not placeholder.exists():
            placeholder.touch()
        os.chmod(placeholder, 0o755)

        (host_root / EXPECTED_DIRECTORY).mkdir(parents=True, exist_ok=True)
