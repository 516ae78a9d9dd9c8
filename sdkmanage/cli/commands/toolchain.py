"""Toolchain commands: list, install and remove toolchains of a tooling."""

import logging

from sdkmanage.cli.utils import build_context, print_packages
from sdkmanage.lifecycle.toolchain import ToolchainManager

logger = logging.getLogger(__name__)


def run(args) -> int:
    """
    Run a toolchain command.

    Args:
        args: Parsed arguments with ``action``, ``tooling`` and, for
            install/remove, ``name``

    Returns:
        Exit code (0 for success, 1 for error)
    """
    manager = ToolchainManager(build_context(args))

    if args.action == "list":
        print_packages(manager.list(args.tooling))
    elif args.action == "install":
        manager.install(args.tooling, args.name)
    elif args.action == "remove":
        manager.remove(args.tooling, args.name)
    return 0
