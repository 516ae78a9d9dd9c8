"""
Shared utilities for CLI commands.

Provides common functionality used across the command modules: building
the runtime context from the global options, argument translation for the
dispatcher, and consistent output formatting.
"""

import logging
import sys
from typing import Iterable, List, Optional

from sdkmanage.context import SdkContext
from sdkmanage.core.config import load_config
from sdkmanage.packages.zypper import PackageInfo
from sdkmanage.resources.dispatcher import ALL_FLAG, SweepResult

logger = logging.getLogger(__name__)


# ============================================================================
# Context
# ============================================================================


def build_context(args) -> SdkContext:
    """
    Load configuration named by the global options and wire collaborators.

    Args:
        args: Parsed arguments with a ``config`` attribute

    Raises:
        ConfigError: If the configuration cannot be loaded
    """
    config = load_config(getattr(args, "config", None))
    logger.debug(f"Installation mode: {config.install_mode}")
    return SdkContext.create(config)


# ============================================================================
# Argument Translation
# ============================================================================


def selection_args(args) -> List[str]:
    """Dispatcher selection from ``--all`` and positional names."""
    selection = [ALL_FLAG] if getattr(args, "all", False) else []
    selection.extend(getattr(args, "names", None) or [])
    return selection


def register_args(args) -> List[str]:
    """Rebuild the register argument vector from parsed options."""
    argv: List[str] = []
    if args.user is not None:
        argv.extend(["--user", args.user])
    if args.password is not None:
        argv.extend(["--password", args.password])
    if args.force:
        argv.append("--force")
    argv.extend(selection_args(args))
    return argv


# ============================================================================
# User Interface / Output Formatting
# ============================================================================


def print_error(message: str, details: Optional[str] = None):
    """
    Print error message to stderr in consistent format.

    Args:
        message: Main error message
        details: Optional additional details
    """
    print(f"ERROR: {message}", file=sys.stderr)
    if details:
        print(f"  {details}", file=sys.stderr)


def print_rows(rows: Iterable[Iterable[str]]):
    """Print comma separated result rows to stdout."""
    for row in rows:
        print(",".join(row))


def print_packages(packages: Iterable[PackageInfo]):
    print_rows((package.name, package.status) for package in packages)


def sweep_exit_code(result: SweepResult) -> int:
    """Exit code of a sweep; failures were already logged per instance."""
    if result.ok:
        return 0
    logger.error(f"Failed: {', '.join(result.failed)}")
    return 1
