"""Development package management inside targets."""

import logging
from typing import List, Optional, Sequence

from sdkmanage.context import SdkContext
from sdkmanage.core.exceptions import SdkManageError
from sdkmanage.packages.zypper import PackageInfo, Zypper

logger = logging.getLogger(__name__)

DEFAULT_PATTERN = "*-devel"


class DevelPackageManager:
    """
    Search, install and remove packages in a target.

    In the virtualized SDK the host view of the target is refreshed after
    every change so the IDE sees new headers.
    """

    def __init__(self, context: SdkContext):
        self.context = context
        self.targets = context.registry.target

    def _zypper(self, target: str) -> Zypper:
        self.targets.require(target)
        return Zypper.for_resource(self.targets, target)

    def list(self, target: str, pattern: Optional[str] = None) -> List[PackageInfo]:
        return self._zypper(target).search([pattern or DEFAULT_PATTERN])

    def install(self, target: str, packages: Sequence[str]) -> None:
        self._zypper(target).install(packages)
        self.resync(target)

    def remove(self, target: str, packages: Sequence[str]) -> None:
        self._zypper(target).remove(packages)
        self.resync(target)

    def resync(self, target: str) -> None:
        if not self.context.config.virtualized:
            return
        try:
            self.context.host_sync.sync(
                self.targets.path(target), self.targets.host_path(target)
            )
        except (SdkManageError, OSError) as e:
            logger.warning(f"Failed to synchronize {target} to the host: {e}")
