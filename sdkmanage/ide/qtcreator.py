"""
Qt Creator target advertisement.

In the virtualized SDK the IDE learns about build targets from an XML
manifest on the shared host directory, maintained by the
``updateQtCreatorTargets`` utility.
"""

import logging
from pathlib import Path

from sdkmanage.core.process import CommandRunner

logger = logging.getLogger(__name__)

NOTIFIER = "updateQtCreatorTargets"


class IdeNotifier:
    """
    Add and remove targets in the IDE's target manifest.

    Example:
        >>> notifier = IdeNotifier(runner, Path("/host_targets/targets.xml"))
        >>> notifier.add_target("SailfishOS-4.5.0.18-armv7hl")
    """

    def __init__(self, runner: CommandRunner, manifest: Path):
        self.runner = runner
        self.manifest = Path(manifest)

    def add_target(self, name: str) -> None:
        logger.debug(f"Advertising target {name} in {self.manifest}")
        self.runner.run(
            [NOTIFIER, "--name", name, "--target-xml", self.manifest], capture=True
        )

    def remove_target(self, name: str) -> None:
        logger.debug(f"Withdrawing target {name} from {self.manifest}")
        self.runner.run(
            [NOTIFIER, "--delete", "--name", name, "--target-xml", self.manifest],
            capture=True,
        )
