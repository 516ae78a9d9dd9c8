"""
Toolchain management.

A toolchain is the package (pattern) that provides the cross compiler for
one target architecture inside a tooling, named ``<prefix><arch>``
(``patterns-sailfish-sb2-armv7hl``).
"""

import logging
from typing import List, Optional

from sdkmanage.context import SdkContext
from sdkmanage.core.exceptions import (
    ResourceConflictError,
    SdkManageError,
    ValidationError,
)
from sdkmanage.cross.arch import default_toolchain
from sdkmanage.packages.zypper import PackageInfo, Zypper

logger = logging.getLogger(__name__)


class ToolchainManager:
    """List, install and remove toolchains in a tooling."""

    def __init__(self, context: SdkContext):
        self.context = context
        self.prefix = context.config.toolchain_prefix

    def _zypper(self, tooling: str) -> Zypper:
        toolings = self.context.registry.tooling
        toolings.require(tooling)
        return Zypper.for_resource(toolings, tooling)

    def _lookup(self, zypper: Zypper, name: str) -> Optional[PackageInfo]:
        for package in zypper.search([name], match_exact=True):
            if package.name == name:
                return package
        return None

    def list(self, tooling: str) -> List[PackageInfo]:
        """All toolchains known to tooling's repositories."""
        return self._zypper(tooling).search([f"{self.prefix}*"])

    def install(self, tooling: str, name: str) -> None:
        """
        Install toolchain name into tooling.

        Raises:
            ValidationError: If the tooling does not exist or does not
                offer the toolchain
        """
        zypper = self._zypper(tooling)
        package = self._lookup(zypper, name)
        if package is None:
            raise ValidationError(
                f"Toolchain {name} is not available in tooling {tooling}"
            )
        if package.installed:
            logger.info(f"Toolchain {name} is already installed in {tooling}")
            return
        zypper.install([name])

    def remove(self, tooling: str, name: str) -> None:
        """
        Remove toolchain name from tooling.

        Raises:
            ValidationError: If the toolchain is not installed
            ResourceConflictError: If a target on this tooling needs it
        """
        zypper = self._zypper(tooling)
        package = self._lookup(zypper, name)
        if package is None or not package.installed:
            raise ValidationError(f"Toolchain {name} is not installed in {tooling}")

        users = self._targets_needing(tooling, name)
        if users:
            raise ResourceConflictError(
                f"Toolchain {name} is used by target(s): {', '.join(users)}"
            )
        zypper.remove([name])

    def _targets_needing(self, tooling: str, name: str) -> List[str]:
        targets = self.context.registry.target
        users = []
        for target in targets.targets_using(tooling):
            try:
                arch = self.context.probe.architecture(targets.path(target))
            except SdkManageError as e:
                logger.warning(f"Cannot determine architecture of {target}: {e}")
                continue
            if default_toolchain(arch, self.prefix) == name:
                users.append(target)
        return users
