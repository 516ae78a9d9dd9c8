"""Target resources: cross-build root filesystems registered with scratchbox2."""

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from sdkmanage.core.config import SdkConfig
from sdkmanage.core.process import Command
from sdkmanage.resources.base import ResourceKind, ResourceType, valid_name
from sdkmanage.sandbox.sb2 import Sandbox

logger = logging.getLogger(__name__)


class TargetType(ResourceType):
    """
    Targets exist when scratchbox2 knows them and their build root is present.

    The tooling a target runs on is looked up in its sandbox configuration
    each time tooling_of() is called.
    """

    kind = ResourceKind.TARGET

    def __init__(self, config: SdkConfig, sandbox: Sandbox):
        self.config = config
        self.sandbox = sandbox

    @property
    def root(self) -> Path:
        return self.config.targets_root

    def path(self, name: str) -> Path:
        """Build root of target; falls back to the default location."""
        return self.sandbox.target_root(name) or self.root / name

    def host_path(self, name: str) -> Path:
        """Host-visible mirror of the target (virtualized mode)."""
        return self.config.host_targets_root / name

    def exists(self, name: str) -> bool:
        if not valid_name(name) or not self.sandbox.is_registered(name):
            return False
        return self.path(name).is_dir()

    def enumerate(self) -> List[str]:
        names = []
        for name in self.sandbox.list_targets():
            if not valid_name(name):
                logger.warning(f"Ignoring target with invalid name: {name}")
                continue
            names.append(name)
        return names

    def run_inside(
        self,
        name: str,
        cmd: Command,
        capture: bool = False,
        check: bool = True,
        input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        return self.sandbox.run(
            name,
            cmd,
            mode="sdk-install",
            fakeroot=True,
            capture=capture,
            check=check,
            input=input,
        )

    def tooling_of(self, name: str) -> Optional[str]:
        """Name of the tooling target is bound to, read from its sb2.config."""
        tools_root = self.sandbox.tools_root(name)
        return tools_root.name if tools_root else None

    def targets_using(self, tooling: str) -> List[str]:
        """All registered targets whose sandbox configuration names tooling."""
        return [name for name in self.enumerate() if self.tooling_of(name) == tooling]
