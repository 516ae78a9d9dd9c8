"""
Tooling install and removal.

Installation is transactional: a failure or interruption at any step
removes the partially created tooling directory and the downloaded
archive, leaving the toolings root as it was.
"""

import logging

from sdkmanage.context import SdkContext
from sdkmanage.core.download import cleanup_download, fetch, log_progress
from sdkmanage.core.exceptions import ResourceConflictError, ToolingInUseError
from sdkmanage.core.transaction import Transaction
from sdkmanage.lifecycle.common import archive_hint, unpack_archive
from sdkmanage.resources.base import ResourceKind, validate_name

logger = logging.getLogger(__name__)


class ToolingManager:
    """
    Install and remove toolings.

    Example:
        >>> manager = ToolingManager(context)
        >>> manager.install("SailfishOS-4.5.0.18", "https://.../tooling.tar.bz2")
        >>> manager.remove("SailfishOS-4.5.0.18")
    """

    def __init__(self, context: SdkContext):
        self.context = context
        self.toolings = context.registry.tooling

    def install(self, name: str, url: str) -> None:
        """
        Install tooling name from url (archive URL or local path).

        Raises:
            ValidationError: If the name is invalid or the source is missing
            ResourceConflictError: If the tooling already exists
        """
        self.check_installable(name)
        logger.info(f"Installing tooling {name}")

        with Transaction(f"install tooling {name}") as txn:
            self.install_into(txn, name, url)
            txn.commit()

        logger.info(f"Tooling {name} installed")

    def check_installable(self, name: str) -> None:
        validate_name(name, ResourceKind.TOOLING)
        if self.toolings.exists(name):
            raise ResourceConflictError(f"Tooling '{name}' already exists")

    def install_into(self, txn: Transaction, name: str, url: str) -> None:
        """
        Perform the install steps, registering undo actions on txn.

        Used directly by the target installer so that an auto-installed
        tooling is rolled back together with the target.
        """
        fs = self.context.fs
        tooling_dir = self.toolings.path(name)

        fs.makedirs(self.toolings.root)

        download = fetch(
            url,
            self.context.config.download_dir,
            archive_hint(ResourceKind.TOOLING, name, url),
            progress_callback=log_progress,
        )
        try:
            txn.on_rollback(f"remove {tooling_dir}", fs.remove_tree, tooling_dir)
            fs.remove_tree(tooling_dir)
            fs.makedirs(tooling_dir)
            unpack_archive(fs, download.path, tooling_dir)
        finally:
            cleanup_download(download)

    def remove(self, name: str) -> None:
        """
        Remove tooling name.

        Raises:
            ValidationError: If the tooling does not exist
            ToolingInUseError: If any target still uses the tooling
        """
        self.toolings.require(name)

        users = self.context.registry.target.targets_using(name)
        if users:
            raise ToolingInUseError(name, users)

        logger.info(f"Removing tooling {name}")
        self.context.fs.remove_tree(self.toolings.path(name))
