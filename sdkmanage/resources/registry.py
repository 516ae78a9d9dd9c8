"""
Lookup from ResourceKind to its ResourceType implementation.

The registry is built once per process from the configuration and passed to
the dispatcher and workflows.
"""

from typing import Dict, Optional

from sdkmanage.core.config import SdkConfig
from sdkmanage.core.process import CommandRunner
from sdkmanage.resources.base import ResourceKind, ResourceType
from sdkmanage.resources.sdk import SdkType
from sdkmanage.resources.target import TargetType
from sdkmanage.resources.tooling import ToolingType
from sdkmanage.sandbox.sb2 import Sandbox


class ResourceRegistry:
    """
    Registry of the three resource kinds.

    Example:
        >>> registry = ResourceRegistry.create(config, runner)
        >>> registry.get(ResourceKind.TOOLING).enumerate()
        ['SailfishOS-4.5.0.18']
    """

    def __init__(self, tooling: ToolingType, target: TargetType, sdk: SdkType):
        self.tooling = tooling
        self.target = target
        self.sdk = sdk
        self._types: Dict[ResourceKind, ResourceType] = {
            ResourceKind.TOOLING: tooling,
            ResourceKind.TARGET: target,
            ResourceKind.SDK: sdk,
        }

    @classmethod
    def create(
        cls,
        config: SdkConfig,
        runner: CommandRunner,
        sandbox: Optional[Sandbox] = None,
    ) -> "ResourceRegistry":
        """Build the standard registry for config."""
        sandbox = sandbox or Sandbox(config.sandbox_config_dir, runner)
        return cls(
            tooling=ToolingType(config, runner),
            target=TargetType(config, sandbox),
            sdk=SdkType(runner),
        )

    def get(self, kind: ResourceKind) -> ResourceType:
        """
        Get the implementation for kind.

        Raises:
            KeyError: If kind is not a ResourceKind
        """
        return self._types[kind]

    def __getitem__(self, kind: ResourceKind) -> ResourceType:
        return self.get(kind)
