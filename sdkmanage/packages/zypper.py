"""
Zypper integration.

Zypper is the package manager inside the SDK, toolings and targets. A
Zypper instance is bound to one resource: its commands go through that
resource's run_inside(), so the same code refreshes the host, a tooling
chroot or a scratchbox2 target.

Classes:
    PackageInfo: One row of ``zypper search`` output
    Zypper: Package manager operations scoped to a resource

Example:
    from sdkmanage.packages.zypper import Zypper

    zypper = Zypper.for_resource(registry.tooling, "SailfishOS-4.5.0.18")
    zypper.refresh()
    for package in zypper.search(["patterns-sailfish-sb2-*"]):
        print(package.name, package.installed)
"""

import functools
import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Sequence

from sdkmanage.core.exceptions import ExternalToolFailure
from sdkmanage.resources.base import ResourceType

logger = logging.getLogger(__name__)

# zypper exit status when a search matched nothing
ZYPPER_EXIT_INF_CAP_NOT_FOUND = 104

RunFunc = Callable[..., subprocess.CompletedProcess]


@dataclass(frozen=True)
class PackageInfo:
    """A package (or pattern) reported by zypper search."""

    name: str
    installed: bool
    type: str = "package"

    @property
    def status(self) -> str:
        return "installed" if self.installed else "available"


def parse_search_output(text: str) -> List[PackageInfo]:
    """
    Parse the table printed by ``zypper search``.

    Example input:
        S | Name                          | Summary | Type
        --+-------------------------------+---------+--------
        i | patterns-sailfish-sb2-armv7hl | SB2 ... | package
          | patterns-sailfish-sb2-i486    | SB2 ... | package
    """
    packages = []
    seen = set()
    for line in text.splitlines():
        if "|" not in line:
            continue
        columns = [column.strip() for column in line.split("|")]
        if len(columns) < 2:
            continue
        status, name = columns[0], columns[1]
        if not name or name == "Name" or set(name) <= {"-", "+"}:
            continue
        package_type = columns[-1] if len(columns) >= 4 else "package"
        if name in seen:
            continue
        seen.add(name)
        packages.append(
            PackageInfo(name=name, installed=status.startswith("i"), type=package_type)
        )
    return packages


class Zypper:
    """
    Zypper commands run through a resource's command execution.

    All commands are non-interactive; quiet mode and skipping the repository
    refresh can be chosen per invocation.
    """

    def __init__(self, run: RunFunc):
        """
        Args:
            run: Callable compatible with ResourceType.run_inside() with the
                instance name already bound
        """
        self._run = run

    @classmethod
    def for_resource(cls, resource: ResourceType, name: str) -> "Zypper":
        return cls(functools.partial(resource.run_inside, name))

    @staticmethod
    def command(
        args: Sequence[str], quiet: bool = False, no_refresh: bool = False
    ) -> List[str]:
        cmd = ["zypper", "--non-interactive"]
        if quiet:
            cmd.append("--quiet")
        if no_refresh:
            cmd.append("--no-refresh")
        cmd.extend(args)
        return cmd

    def refresh(self, force: bool = True, quiet: bool = False) -> None:
        args = ["refresh", "-f"] if force else ["refresh"]
        self._run(self.command(args, quiet=quiet))

    def list_updates(self, no_refresh: bool = True) -> subprocess.CompletedProcess:
        """Print available updates to standard output."""
        return self._run(self.command(["list-updates"], no_refresh=no_refresh))

    def dist_upgrade(self, no_refresh: bool = False) -> None:
        self._run(self.command(["dup"], no_refresh=no_refresh))

    def search(
        self,
        patterns: Sequence[str],
        match_exact: bool = False,
        no_refresh: bool = True,
    ) -> List[PackageInfo]:
        """
        Search available and installed packages.

        Returns:
            Matching packages; empty when nothing matches

        Raises:
            ExternalToolFailure: If zypper fails for another reason
        """
        args = ["search"]
        if match_exact:
            args.append("--match-exact")
        args.extend(patterns)
        cmd = self.command(args, quiet=True, no_refresh=no_refresh)

        result = self._run(cmd, capture=True, check=False)
        if result.returncode == ZYPPER_EXIT_INF_CAP_NOT_FOUND:
            return []
        if result.returncode != 0:
            raise ExternalToolFailure(
                cmd,
                result.returncode,
                stderr=result.stderr,
                message="zypper search failed",
            )
        return parse_search_output(result.stdout)

    def is_installed(self, name: str) -> bool:
        return any(
            package.name == name and package.installed
            for package in self.search([name], match_exact=True)
        )

    def install(self, packages: Sequence[str], no_refresh: bool = False) -> None:
        logger.info(f"Installing {', '.join(packages)}")
        self._run(self.command(["install", *packages], no_refresh=no_refresh))

    def remove(self, packages: Sequence[str]) -> None:
        logger.info(f"Removing {', '.join(packages)}")
        self._run(self.command(["remove", *packages], no_refresh=True))
