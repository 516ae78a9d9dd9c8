"""The SDK itself: a single implicit instance, the host environment."""

import subprocess
from typing import List, Optional

from sdkmanage.core.process import Command, CommandRunner
from sdkmanage.resources.base import ResourceKind, ResourceType

SDK_INSTANCE = ""


class SdkType(ResourceType):
    kind = ResourceKind.SDK

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def exists(self, name: str = SDK_INSTANCE) -> bool:
        return True

    def enumerate(self) -> List[str]:
        return [SDK_INSTANCE]

    def require(self, name: str = SDK_INSTANCE) -> str:
        return SDK_INSTANCE

    def run_inside(
        self,
        name: str,
        cmd: Command,
        capture: bool = False,
        check: bool = True,
        input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        return self.runner.run(
            cmd, elevated=True, capture=capture, check=check, input=input
        )
