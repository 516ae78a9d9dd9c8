"""
Resource kinds and the capability interface shared by all of them.

The dispatcher and workflows only talk to ResourceType; each kind
(tooling, target, sdk) implements it once. See registry.py for the lookup
from ResourceKind to implementation.
"""

import re
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence

from sdkmanage.core.exceptions import ValidationError
from sdkmanage.core.process import Command

NAME_PATTERN = re.compile(r"[A-Za-z0-9][A-Za-z0-9_.-]*\Z")


class ResourceKind(Enum):
    """Closed set of managed resource kinds."""

    TOOLING = "tooling"
    TARGET = "target"
    SDK = "sdk"


@dataclass(frozen=True)
class ResourceRef:
    """A (kind, name) pair; the SDK's name is always empty."""

    kind: ResourceKind
    name: str = ""

    def __str__(self) -> str:
        if self.kind is ResourceKind.SDK:
            return "SDK"
        return f"{self.kind.value} '{self.name}'"


def valid_name(name: Optional[str]) -> bool:
    """
    Check the naming rule shared by every tooling and target.

    A valid name is non-empty, consists of ASCII letters, digits, '_', '.'
    and '-', and starts with a letter or digit.

    Example:
        >>> valid_name("SailfishOS-4.5.0.18-armv7hl")
        True
        >>> valid_name("-rf")
        False
    """
    return bool(name) and NAME_PATTERN.match(name) is not None


def validate_name(name: Optional[str], kind: ResourceKind) -> str:
    """
    Return name unchanged, or raise if it breaks the naming rule.

    Raises:
        ValidationError: If name is invalid
    """
    if not valid_name(name):
        raise ValidationError(f"Invalid {kind.value} name: '{name or ''}'")
    return name


class ResourceType(ABC):
    """
    Capabilities every resource kind provides.

    Abstract Methods:
        exists(): Whether an instance is installed
        enumerate(): Names of all installed instances
        run_inside(): Run a privileged command in the instance's context
    """

    kind: ResourceKind

    def describe(self, name: str = "") -> str:
        """Human readable identifier used in messages."""
        return str(ResourceRef(self.kind, name))

    @abstractmethod
    def exists(self, name: str) -> bool:
        """Whether the named instance is installed."""
        pass

    @abstractmethod
    def enumerate(self) -> List[str]:
        """Names of all installed instances."""
        pass

    @abstractmethod
    def run_inside(
        self,
        name: str,
        cmd: Command,
        capture: bool = False,
        check: bool = True,
        input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run cmd inside the named instance with package-management privileges.

        Raises:
            ExternalToolFailure: If the command fails and check is True
        """
        pass

    def require(self, name: str) -> str:
        """
        Validate name and check that the instance exists.

        Raises:
            ValidationError: Naming the kind and identifier on failure
        """
        validate_name(name, self.kind)
        if not self.exists(name):
            description = self.describe(name)
            raise ValidationError(
                f"{description[:1].upper()}{description[1:]} does not exist"
            )
        return name

    def require_all(self, names: Sequence[str]) -> List[str]:
        """require() every name before returning any of them."""
        return [self.require(name) for name in names]
