"""
Runtime context shared by all commands.

SdkContext bundles the immutable configuration with the collaborator
wrappers built from it. It is created once by the CLI and passed to every
workflow; tests construct it with fakes for the external tools.
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional

from sdkmanage.core.config import SdkConfig
from sdkmanage.core.filesystem import PrivilegedFilesystem
from sdkmanage.core.process import CommandRunner
from sdkmanage.cross.probe import RootfsProbe
from sdkmanage.cross.sync import HostSync
from sdkmanage.ide.qtcreator import IdeNotifier
from sdkmanage.resources.dispatcher import Dispatcher
from sdkmanage.resources.registry import ResourceRegistry
from sdkmanage.sandbox.sb2 import Sandbox

logger = logging.getLogger(__name__)


@dataclass
class SdkContext:
    """
    Configuration plus collaborators.

    Attributes:
        config: Immutable configuration
        runner: Command runner for external tools
        fs: Privileged file system operations
        sandbox: Scratchbox2 wrapper
        registry: Resource kinds
        dispatcher: Kind-independent operations
        probe: Release/architecture detection
        host_sync: Host view mirroring
        ide: IDE target manifest updates
        uid: Invoking (non-privileged) user id
        gid: Invoking user's primary group id
    """

    config: SdkConfig
    runner: CommandRunner
    fs: PrivilegedFilesystem
    sandbox: Sandbox
    registry: ResourceRegistry
    dispatcher: Dispatcher
    probe: RootfsProbe
    host_sync: HostSync
    ide: IdeNotifier
    uid: int
    gid: int

    @classmethod
    def create(
        cls, config: SdkConfig, runner: Optional[CommandRunner] = None
    ) -> "SdkContext":
        """Wire the standard collaborators for config."""
        runner = runner or CommandRunner(elevate=config.elevate)
        sandbox = Sandbox(config.sandbox_config_dir, runner)
        registry = ResourceRegistry.create(config, runner, sandbox=sandbox)
        return cls(
            config=config,
            runner=runner,
            fs=PrivilegedFilesystem(runner),
            sandbox=sandbox,
            registry=registry,
            dispatcher=Dispatcher(registry, config.unregistered_domains),
            probe=RootfsProbe(runner),
            host_sync=HostSync(runner),
            ide=IdeNotifier(runner, config.ide_manifest),
            uid=os.getuid(),
            gid=os.getgid(),
        )
