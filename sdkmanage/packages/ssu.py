"""
SSU (repository and registration service) integration.

The registration domain tells whether an installation still needs to be
registered: fresh installations report an unregistered domain (``sales``
by default), registered ones report the domain of their account.
"""

import functools
import logging
import subprocess
from typing import Callable

from sdkmanage.resources.base import ResourceType

logger = logging.getLogger(__name__)

RunFunc = Callable[..., subprocess.CompletedProcess]


def parse_domain(text: str) -> str:
    """
    Extract the domain from ``ssu domain`` output.

    Example:
        >>> parse_domain("Device domain is currently: sales\\n")
        'sales'
    """
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return ""
    last = lines[-1]
    if ":" in last:
        last = last.rsplit(":", 1)[1]
    return last.strip()


class Ssu:
    """ssu commands run through a resource's command execution."""

    def __init__(self, run: RunFunc):
        self._run = run

    @classmethod
    def for_resource(cls, resource: ResourceType, name: str) -> "Ssu":
        return cls(functools.partial(resource.run_inside, name))

    def domain(self) -> str:
        result = self._run(["ssu", "domain"], capture=True)
        return parse_domain(result.stdout)

    def register(self, username: str, password: str) -> None:
        """Register with the given account; credentials go through stdin."""
        self._run(
            ["ssu", "register"],
            capture=True,
            input=f"{username}\n{password}\n",
        )
