"""
Generic operations applied uniformly across resource kinds.

Every operation takes a ResourceKind, looks up its ResourceType in the
registry and works only through that interface. Names are validated, and
existence checked, before anything is executed.

Bulk operations (refresh and register over several instances) are sweeps:
every instance is attempted, failures are collected in a SweepResult and
the overall outcome fails if any instance failed.
"""

import argparse
import functools
import logging
import subprocess
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from sdkmanage.core.exceptions import SdkManageError, UsageError
from sdkmanage.core.process import Command
from sdkmanage.packages.ssu import Ssu
from sdkmanage.packages.zypper import Zypper
from sdkmanage.resources.base import ResourceKind
from sdkmanage.resources.registry import ResourceRegistry

logger = logging.getLogger(__name__)

ALL_FLAG = "--all"

# Order used by the *-all commands
SWEEP_ORDER = (ResourceKind.SDK, ResourceKind.TOOLING, ResourceKind.TARGET)


@dataclass
class SweepResult:
    """Per-instance outcome of a best-effort bulk operation."""

    results: List[Tuple[str, Optional[Exception]]] = field(default_factory=list)

    def record(self, identifier: str, error: Optional[Exception] = None) -> None:
        self.results.append((identifier, error))

    @property
    def ok(self) -> bool:
        return all(error is None for _, error in self.results)

    @property
    def failed(self) -> List[str]:
        return [identifier for identifier, error in self.results if error is not None]


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(message, usage=self.format_usage())


@dataclass(frozen=True)
class Credentials:
    """Registration account plus whatever arguments followed the options."""

    username: str
    password: str
    force: bool = False
    remaining: Tuple[str, ...] = ()

    @classmethod
    def parse(cls, argv: Sequence[str], prog: str = "register") -> "Credentials":
        """
        Parse ``--user U --password P [--force] [args...]``.

        Raises:
            UsageError: If user or password is missing
        """
        parser = _ArgumentParser(prog=prog, add_help=False)
        parser.add_argument("--user", required=True, metavar="USER")
        parser.add_argument("--password", required=True, metavar="PASSWORD")
        parser.add_argument("--force", action="store_true")
        parsed, remaining = parser.parse_known_args(list(argv))
        return cls(
            username=parsed.user,
            password=parsed.password,
            force=parsed.force,
            remaining=tuple(remaining),
        )

    def __repr__(self) -> str:
        return (
            f"Credentials(username={self.username!r}, password='***', "
            f"force={self.force}, remaining={self.remaining!r})"
        )


class Dispatcher:
    """
    Kind-independent resource operations.

    Example:
        >>> dispatcher = Dispatcher(registry)
        >>> names = dispatcher.select(ResourceKind.TARGET, ["--all"])
        >>> dispatcher.refresh(ResourceKind.TARGET, names).ok
        True
    """

    def __init__(
        self,
        registry: ResourceRegistry,
        unregistered_domains: Sequence[str] = ("sales",),
    ):
        self.registry = registry
        self.unregistered_domains = tuple(unregistered_domains)

    def select(
        self, kind: ResourceKind, args: Sequence[str], usage: Optional[str] = None
    ) -> List[str]:
        """
        Resolve command arguments to instance names.

        ``--all`` selects every installed instance. Otherwise each argument
        names an instance, and all of them must exist before anything is
        returned.

        Args:
            kind: Resource kind to select from
            args: ``--all`` or instance names
            usage: Usage text attached to usage errors

        Raises:
            UsageError: If neither --all nor any name was given
            ValidationError: If any name is invalid or does not exist
        """
        resource = self.registry.get(kind)
        if kind is ResourceKind.SDK:
            return resource.enumerate()

        args = list(args)
        if ALL_FLAG in args:
            if len(args) > 1:
                raise UsageError(
                    f"{ALL_FLAG} cannot be combined with names", usage=usage
                )
            return resource.enumerate()

        if not args:
            raise UsageError(
                f"Expected {ALL_FLAG} or at least one {kind.value} name", usage=usage
            )

        return resource.require_all(args)

    def run_inside(
        self, kind: ResourceKind, name: str, cmd: Command, **kwargs
    ) -> subprocess.CompletedProcess:
        """
        Run a privileged command inside an existing instance.

        The name is validated and its existence checked before cmd runs.
        Keyword arguments are passed on to ResourceType.run_inside().

        Raises:
            ValidationError: If name is invalid or does not exist
            ExternalToolFailure: If the command fails and check is not False
        """
        resource = self.registry.get(kind)
        resource.require(name)
        return resource.run_inside(name, cmd, **kwargs)

    def _zypper(self, kind: ResourceKind, name: str) -> Zypper:
        return Zypper(functools.partial(self.run_inside, kind, name))

    def _ssu(self, kind: ResourceKind, name: str) -> Ssu:
        return Ssu(functools.partial(self.run_inside, kind, name))

    def refresh(self, kind: ResourceKind, names: Sequence[str]) -> SweepResult:
        """Force a repository refresh for every instance in names."""
        resource = self.registry.get(kind)
        result = SweepResult()

        for name in names:
            description = resource.describe(name)
            try:
                resource.require(name)
                logger.info(f"Refreshing {description}")
                self._zypper(kind, name).refresh(force=True)
                result.record(name)
            except SdkManageError as e:
                logger.error(f"Failed to refresh {description}: {e}")
                result.record(name, e)

        return result

    def upgradable(
        self, kind: ResourceKind, name: str = ""
    ) -> subprocess.CompletedProcess:
        """List available updates of one instance on standard output."""
        resource = self.registry.get(kind)
        resource.require(name)
        return self._zypper(kind, name).list_updates(no_refresh=True)

    def upgrade(self, kind: ResourceKind, name: str = "") -> None:
        """Upgrade one instance to the latest packages."""
        resource = self.registry.get(kind)
        resource.require(name)
        logger.info(f"Upgrading {resource.describe(name)}")
        self._zypper(kind, name).dist_upgrade()

    def register(
        self, kind: ResourceKind, argv: Sequence[str], usage: Optional[str] = None
    ) -> SweepResult:
        """
        Register instances with the registration service.

        argv holds ``--user``, ``--password``, optional ``--force`` and, for
        toolings and targets, a selection (names or ``--all``). Instances
        whose domain shows they are already registered are skipped unless
        ``--force`` is given.

        Raises:
            UsageError: For missing credentials or selection
            ValidationError: For invalid or unknown names
        """
        credentials = Credentials.parse(argv, prog=f"{kind.value} register")
        if kind is ResourceKind.SDK:
            if credentials.remaining:
                raise UsageError(
                    f"Unexpected arguments: {' '.join(credentials.remaining)}"
                )
            names = self.select(kind, [])
        else:
            names = self.select(kind, credentials.remaining, usage=usage)

        return self._register_names(kind, names, credentials)

    def _register_names(
        self, kind: ResourceKind, names: Sequence[str], credentials: Credentials
    ) -> SweepResult:
        resource = self.registry.get(kind)
        result = SweepResult()

        for name in names:
            description = resource.describe(name)
            try:
                resource.require(name)
                ssu = self._ssu(kind, name)
                domain = ssu.domain()
                if domain not in self.unregistered_domains and not credentials.force:
                    logger.info(
                        f"Not registering {description}: domain is '{domain}' "
                        f"(use --force to register anyway)"
                    )
                    result.record(name)
                    continue

                logger.info(f"Registering {description}")
                ssu.register(credentials.username, credentials.password)
                result.record(name)
            except SdkManageError as e:
                logger.error(f"Failed to register {description}: {e}")
                result.record(name, e)

        return result

    def refresh_all(self) -> SweepResult:
        """Refresh the SDK, every tooling and every target."""
        result = SweepResult()
        for kind in SWEEP_ORDER:
            names = self.registry.get(kind).enumerate()
            sweep = self.refresh(kind, names)
            result.results.extend(
                (self._label(kind, name), error) for name, error in sweep.results
            )
        return result

    def register_all(self, argv: Sequence[str]) -> SweepResult:
        """Register the SDK, every tooling and every target."""
        credentials = Credentials.parse(argv, prog="register-all")
        if credentials.remaining:
            raise UsageError(f"Unexpected arguments: {' '.join(credentials.remaining)}")

        result = SweepResult()
        for kind in SWEEP_ORDER:
            names = self.registry.get(kind).enumerate()
            sweep = self._register_names(kind, names, credentials)
            result.results.extend(
                (self._label(kind, name), error) for name, error in sweep.results
            )
        return result

    def _label(self, kind: ResourceKind, name: str) -> str:
        return self.registry.get(kind).describe(name)
