"""
SDK commands.

This module provides the commands acting on the SDK host itself: its
release, package updates, registration, and a status self-check of the
mounts and services the SDK depends on.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from sdkmanage.cli.commands import resource
from sdkmanage.cli.utils import build_context, print_rows
from sdkmanage.context import SdkContext
from sdkmanage.resources.base import ResourceKind

logger = logging.getLogger(__name__)

KIND = ResourceKind.SDK

HOST_ROOT = Path("/")


@dataclass
class CheckResult:
    """Result of a status check."""

    name: str
    passed: bool
    message: str

    @property
    def status(self) -> str:
        return "ok" if self.passed else "fail"


class StatusChecker:
    """Check that the SDK's mounts are present and its services running."""

    def __init__(self, context: SdkContext):
        self.config = context.config
        self.runner = context.runner

    def check_mount(self, path: Path) -> CheckResult:
        if os.path.ismount(path):
            return CheckResult(str(path), True, f"{path} is mounted")
        return CheckResult(str(path), False, f"{path} is not a mount point")

    def check_service(self, unit: str) -> CheckResult:
        if self.runner.succeeds(["systemctl", "is-active", "--quiet", unit]):
            return CheckResult(unit, True, f"{unit} is active")
        return CheckResult(unit, False, f"{unit} is not active")

    def run_all_checks(self) -> List[CheckResult]:
        """
        Run all status checks.

        Returns:
            Check results, mounts first
        """
        mounts = list(self.config.status_mounts)
        if self.config.virtualized:
            mounts.insert(0, self.config.host_targets_root)

        results = [self.check_mount(path) for path in mounts]
        results.extend(self.check_service(unit) for unit in self.config.status_services)
        return results


def run_version(context: SdkContext, kind, args) -> int:
    print(context.probe.release(HOST_ROOT))
    return 0


def run_status(context: SdkContext, kind, args) -> int:
    results = StatusChecker(context).run_all_checks()
    print_rows((result.name, result.status) for result in results)

    failed = [result for result in results if not result.passed]
    for result in failed:
        logger.error(result.message)
    return 1 if failed else 0


ACTIONS = {
    "version": run_version,
    "refresh": resource.run_refresh,
    "upgradable": resource.run_upgradable,
    "upgrade": resource.run_upgrade,
    "status": run_status,
    "register": resource.run_register,
}


def run(args) -> int:
    """Run an sdk command."""
    context = build_context(args)
    return ACTIONS[args.action](context, KIND, args)
