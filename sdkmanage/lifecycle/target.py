"""
Target install, removal and host view synchronization.

Installing a target is the longest workflow of the SDK: the root file
system is downloaded and unpacked, matched with a tooling of the same
release, given its toolchain, registered with scratchbox2 and finally
advertised to the IDE. Everything runs under one Transaction, so an error
or interruption at any step removes every trace of the new target,
including a tooling installed on its behalf.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sdkmanage.context import SdkContext
from sdkmanage.core.download import cleanup_download, fetch, log_progress
from sdkmanage.core.exceptions import (
    ExternalToolFailure,
    ResourceConflictError,
    SdkEnvironmentError,
    SdkManageError,
    UsageError,
    ValidationError,
)
from sdkmanage.core.filesystem import safe_rmtree
from sdkmanage.core.transaction import Transaction
from sdkmanage.cross.arch import arch_profile, default_toolchain
from sdkmanage.lifecycle.common import archive_hint, unpack_archive
from sdkmanage.lifecycle.rootfs import (
    add_hostname_to_hosts,
    copy_user_entries,
    write_machine_id,
)
from sdkmanage.lifecycle.toolchain import ToolchainManager
from sdkmanage.lifecycle.tooling import ToolingManager
from sdkmanage.resources.base import ResourceKind, validate_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TargetInstallRequest:
    """
    Parameters of a target installation.

    Attributes:
        name: New target's name
        url: Target archive URL or local path
        tooling: Tooling to use instead of the one matching the release
        tooling_url: Archive to install tooling from if it does not exist
        toolchain: Toolchain to use instead of the architecture default
        no_toolchain_check: Skip ensuring the toolchain is installed
    """

    name: str
    url: str
    tooling: Optional[str] = None
    tooling_url: Optional[str] = None
    toolchain: Optional[str] = None
    no_toolchain_check: bool = False


class TargetManager:
    """
    Install, remove and synchronize targets.

    Example:
        >>> manager = TargetManager(context)
        >>> manager.install(TargetInstallRequest(
        ...     "SailfishOS-4.5.0.18-armv7hl", "https://.../target.tar.bz2"))
    """

    def __init__(self, context: SdkContext):
        self.context = context
        self.config = context.config
        self.targets = context.registry.target
        self.toolings = context.registry.tooling
        self.tooling_manager = ToolingManager(context)
        self.toolchain_manager = ToolchainManager(context)

    # ========================================================================
    # Install
    # ========================================================================

    def validate(self, request: TargetInstallRequest) -> None:
        """
        Check a request before anything is changed.

        Raises:
            UsageError: If --tooling-url is given without --tooling
            ValidationError: If a name is invalid or the tooling is missing
            ResourceConflictError: If the target already exists
        """
        if request.tooling_url and not request.tooling:
            raise UsageError("--tooling-url requires --tooling")

        validate_name(request.name, ResourceKind.TARGET)
        if request.tooling:
            validate_name(request.tooling, ResourceKind.TOOLING)
            if not request.tooling_url:
                self.toolings.require(request.tooling)

        if self.context.sandbox.is_registered(request.name):
            raise ResourceConflictError(f"Target '{request.name}' already exists")

    def install(self, request: TargetInstallRequest) -> None:
        """Install a target; see TargetInstallRequest for the parameters."""
        self.validate(request)
        name = request.name
        sandbox = self.context.sandbox
        fs = self.context.fs
        target_dir = self.config.targets_root / name
        host_dir = self.targets.host_path(name)

        logger.info(f"Installing target {name}")

        with Transaction(f"install target {name}") as txn:
            txn.on_rollback(f"unregister {name}", sandbox.remove_target, name)

            fs.makedirs(self.config.targets_root)
            fs.chown(self.config.targets_root, self.context.uid, self.context.gid)

            if request.tooling_url and not self.toolings.exists(request.tooling):
                logger.info(f"Installing tooling {request.tooling} for {name}")
                self.tooling_manager.install_into(
                    txn, request.tooling, request.tooling_url
                )

            download = fetch(
                request.url,
                self.config.download_dir,
                archive_hint(ResourceKind.TARGET, name, request.url),
                progress_callback=log_progress,
            )
            try:
                txn.on_rollback(f"remove {target_dir}", fs.remove_tree, target_dir)
                fs.remove_tree(target_dir)
                fs.makedirs(target_dir)
                unpack_archive(fs, download.path, target_dir)
            finally:
                cleanup_download(download)

            tooling = self._select_tooling(target_dir, request.tooling)
            tooling_dir = self.toolings.path(tooling)

            arch = self.context.probe.architecture(target_dir)
            toolchain = request.toolchain or default_toolchain(
                arch, self.config.toolchain_prefix
            )
            if request.no_toolchain_check:
                logger.debug(f"Not checking toolchain {toolchain}")
            else:
                self.toolchain_manager.install(tooling, toolchain)

            fs.chown(target_dir, self.context.uid, self.context.gid, recursive=True)

            if self.config.virtualized:
                txn.on_rollback(
                    f"remove {host_dir}",
                    safe_rmtree,
                    host_dir,
                    self.config.host_targets_root,
                )
                self._sync_quietly(target_dir, host_dir)

            profile = arch_profile(arch)
            if self.config.chroot_mode:
                copy_user_entries(target_dir, self.context.uid, self.context.gid)

            sandbox.init_target(
                name, target_dir, tooling_dir, profile.compiler, profile.emulator
            )
            write_machine_id(name, target_dir)
            add_hostname_to_hosts(target_dir)

            if not self.targets.exists(name):
                raise ExternalToolFailure(
                    ["sb2-init", name],
                    0,
                    message=f"Target {name} is not usable after sb2-init",
                )

            if self.config.virtualized:
                self.context.ide.add_target(name)

            txn.commit()

        logger.info(f"Target {name} installed (tooling {tooling}, {arch})")

    def _select_tooling(self, target_dir: Path, forced: Optional[str]) -> str:
        probe = self.context.probe
        release = probe.release(target_dir)

        if forced:
            try:
                tooling_release = probe.release(self.toolings.path(forced))
            except SdkEnvironmentError as e:
                logger.warning(f"{e}; using tooling {forced} anyway")
                return forced
            if tooling_release != release:
                logger.warning(
                    f"Tooling {forced} is release {tooling_release}, "
                    f"target is release {release}"
                )
            return forced

        for candidate in self.toolings.enumerate():
            try:
                candidate_release = probe.release(self.toolings.path(candidate))
            except SdkEnvironmentError as e:
                logger.warning(f"Skipping tooling {candidate}: {e}")
                continue
            if candidate_release == release:
                logger.info(f"Using tooling {candidate}")
                return candidate

        raise ValidationError(
            f"No tooling found for release {release}; install one or use --tooling"
        )

    # ========================================================================
    # Remove
    # ========================================================================

    def remove(self, name: str) -> None:
        """
        Remove target name and everything registered for it.

        A target whose sandbox configuration is already gone is still
        removed from disk.

        Raises:
            ValidationError: If the name is invalid or nothing is left of
                the target
        """
        validate_name(name, ResourceKind.TARGET)
        sandbox = self.context.sandbox
        target_dir = self.config.targets_root / name
        registered = sandbox.is_registered(name)

        if not registered and not target_dir.exists():
            raise ValidationError(f"Target '{name}' does not exist")
        if not registered:
            logger.info(f"Target {name} is not registered with scratchbox2")

        logger.info(f"Removing target {name}")
        if self.config.virtualized:
            if registered:
                self.context.ide.remove_target(name)
            safe_rmtree(
                self.targets.host_path(name),
                require_prefix=self.config.host_targets_root,
            )
        if registered:
            sandbox.remove_target(name)
        self.context.fs.remove_tree(target_dir)

    # ========================================================================
    # Host view
    # ========================================================================

    def _require_virtualized(self) -> None:
        if not self.config.virtualized:
            raise SdkEnvironmentError(
                "Host synchronization is only available in the virtualized SDK"
            )

    def sync(self, name: str) -> None:
        """Mirror target name to its host view."""
        self._require_virtualized()
        self.targets.require(name)
        self.context.host_sync.sync(
            self.targets.path(name), self.targets.host_path(name)
        )

    def import_(self, name: str) -> None:
        """Copy the host view of target name back into the target."""
        self._require_virtualized()
        self.targets.require(name)
        self.context.host_sync.import_(
            self.targets.host_path(name), self.targets.path(name)
        )

    def _sync_quietly(self, target_dir: Path, host_dir: Path) -> None:
        try:
            self.context.host_sync.sync(target_dir, host_dir)
        except (SdkManageError, OSError) as e:
            logger.warning(f"Failed to synchronize {target_dir} to the host: {e}")
