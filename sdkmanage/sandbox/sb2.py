"""
Scratchbox2 integration.

Scratchbox2 keeps one directory per registered target under the user's
sandbox configuration directory (``~/.scratchbox2/<target>/sb2.config``).
That file records the target's build root (SBOX_TARGET_ROOT) and the
tooling it runs on (SBOX_TOOLS_ROOT). It is the only record of the
target/tooling association and is read fresh on every query.
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from sdkmanage.core.filesystem import safe_rmtree
from sdkmanage.core.process import Command, CommandRunner

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "sb2.config"

_ASSIGNMENT = re.compile(r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)=(.*)$")


def parse_sb2_config(text: str) -> Dict[str, str]:
    """
    Parse the shell-style assignments of an sb2.config file.

    Example:
        >>> parse_sb2_config('SBOX_TOOLS_ROOT="/srv/mer/toolings/t1"\\n')
        {'SBOX_TOOLS_ROOT': '/srv/mer/toolings/t1'}
    """
    values = {}
    for line in text.splitlines():
        match = _ASSIGNMENT.match(line)
        if not match:
            continue
        key, value = match.group(1), match.group(2).strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        values[key] = value
    return values


class Sandbox:
    """
    Thin wrapper around the sb2 command line tools.

    Attributes:
        config_dir: Per-user scratchbox2 configuration directory
        runner: Command runner used for sb2, sb2-init and sb2-config
    """

    def __init__(self, config_dir: Path, runner: CommandRunner):
        self.config_dir = Path(config_dir)
        self.runner = runner

    def config_file(self, target: str) -> Path:
        return self.config_dir / target / CONFIG_FILE_NAME

    def is_registered(self, target: str) -> bool:
        """Whether scratchbox2 has a configuration for target."""
        return self.config_file(target).is_file()

    def read_config(self, target: str) -> Dict[str, str]:
        """Read target's sb2.config; empty if the target is not registered."""
        path = self.config_file(target)
        try:
            return parse_sb2_config(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}

    def target_root(self, target: str) -> Optional[Path]:
        value = self.read_config(target).get("SBOX_TARGET_ROOT")
        return Path(value) if value else None

    def tools_root(self, target: str) -> Optional[Path]:
        value = self.read_config(target).get("SBOX_TOOLS_ROOT")
        return Path(value) if value else None

    def list_targets(self) -> List[str]:
        """Targets known to scratchbox2 (``sb2-config -l``)."""
        result = self.runner.run(["sb2-config", "-l"], capture=True)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def init_target(
        self,
        target: str,
        target_root: Path,
        tools_root: Path,
        compiler: str,
        emulator: Optional[str] = None,
    ) -> None:
        """
        Register a target with scratchbox2 (``sb2-init``).

        sb2-init uses its working directory as the target root.
        """
        cmd: List[str] = ["sb2-init", "-L", "--sysroot=/", "-C", "--sysroot=/"]
        if emulator:
            cmd.extend(["-c", emulator])
        cmd.extend(["-m", "sdk-build", "-n", "-N", "-t", str(tools_root)])
        cmd.extend([target, compiler])
        self.runner.run(cmd, cwd=target_root, capture=True)
        logger.debug(f"Registered sandbox target {target}")

    def remove_target(self, target: str) -> None:
        """Drop the scratchbox2 configuration of target."""
        safe_rmtree(self.config_dir / target, require_prefix=self.config_dir)

    def run(
        self,
        target: str,
        cmd: Command,
        mode: str = "sdk-install",
        fakeroot: bool = True,
        capture: bool = False,
        check: bool = True,
        input: Optional[str] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run cmd inside target (``sb2 -t <target> -m <mode> [-R] cmd``).

        Args:
            fakeroot: Map the invoking user to root inside the target,
                as package installation requires
        """
        argv: List[str] = ["sb2", "-t", target, "-m", mode]
        if fakeroot:
            argv.append("-R")
        argv.extend(str(part) for part in cmd)
        return self.runner.run(argv, capture=capture, check=check, input=input)
