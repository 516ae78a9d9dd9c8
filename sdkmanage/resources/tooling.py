"""Tooling resources: chroot compiler environments under the toolings root."""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from sdkmanage.core.config import SdkConfig
from sdkmanage.core.process import Command, CommandRunner
from sdkmanage.resources.base import ResourceKind, ResourceType, valid_name

logger = logging.getLogger(__name__)

CHROOT_HELPER = "mer-tooling-chroot"


class ToolingType(ResourceType):
    """Toolings are plain directories; commands run through their chroot helper."""

    kind = ResourceKind.TOOLING

    def __init__(self, config: SdkConfig, runner: CommandRunner):
        self.config = config
        self.runner = runner

    @property
    def root(self) -> Path:
        return self.config.toolings_root

    def path(self, name: str) -> Path:
        return self.root / name

    def exists(self, name: str) -> bool:
        return valid_name(name) and self.path(name).is_dir()

    def enumerate(self) -> List[str]:
        if not self.root.is_dir():
            return []

        names = []
        for entry in sorted(self.root.iterdir()):
            if not entry.is_dir():
                continue
            if not valid_name(entry.name):
                logger.warning(f"Ignoring tooling with invalid name: {entry.name}")
                continue
            names.append(entry.name)
        return names

    def run_inside(
        self,
        name: str,
        cmd: Command,
        capture: bool = False,
        check: bool = True,
        input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        helper = self.path(name) / CHROOT_HELPER
        return self.runner.run(
            [helper, *cmd], elevated=True, capture=capture, check=check, input=input
        )
