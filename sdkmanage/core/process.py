"""
External command execution for sdk-manage.

All collaborator tools (zypper, sb2, ssu, rsync, tar, ...) are invoked
through CommandRunner so that privilege elevation and error reporting are
handled in one place.
"""

import logging
import subprocess
from typing import List, Mapping, Optional, Sequence, Union
from pathlib import Path

from sdkmanage.core.exceptions import ExternalToolFailure

logger = logging.getLogger(__name__)

Command = Sequence[Union[str, Path]]


class CommandRunner:
    """
    Run external commands, optionally elevated through sudo.

    Attributes:
        elevate: If False, elevated commands run without the sudo prefix
            (used when already running as root, and in tests)
        sudo: Command prefix used for elevation

    Example:
        >>> runner = CommandRunner()
        >>> runner.run(["mkdir", "-p", "/srv/mer/toolings"], elevated=True)
        >>> out = runner.run(["sb2-config", "-l"], capture=True).stdout
    """

    def __init__(self, elevate: bool = True, sudo: Sequence[str] = ("sudo",)):
        self.elevate = elevate
        self.sudo = list(sudo)

    def build(self, cmd: Command, elevated: bool = False) -> List[str]:
        """Return the final argument vector for cmd."""
        argv = [str(part) for part in cmd]
        if elevated and self.elevate:
            argv = self.sudo + argv
        return argv

    def run(
        self,
        cmd: Command,
        elevated: bool = False,
        check: bool = True,
        capture: bool = False,
        input: Optional[str] = None,
        cwd: Optional[Path] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run a command.

        Args:
            cmd: Command and arguments
            elevated: Run with administrator privileges
            check: Raise ExternalToolFailure on non-zero exit status
            capture: Capture stdout/stderr as text instead of inheriting them
            input: Optional text fed to the command's stdin
            cwd: Working directory
            env: Environment for the child process

        Returns:
            Completed process

        Raises:
            ExternalToolFailure: If the command cannot be executed, or exits
                non-zero and check is True
        """
        argv = self.build(cmd, elevated=elevated)
        logger.debug(f"Running: {' '.join(argv)}")

        try:
            result = subprocess.run(
                argv,
                capture_output=capture,
                text=True,
                input=input,
                cwd=str(cwd) if cwd else None,
                env=dict(env) if env is not None else None,
            )
        except FileNotFoundError as e:
            raise ExternalToolFailure(
                argv, 127, message=f"Command not found: {argv[0]}"
            ) from e
        except OSError as e:
            raise ExternalToolFailure(
                argv, 126, message=f"Failed to execute {argv[0]}: {e}"
            ) from e

        if check and result.returncode != 0:
            raise ExternalToolFailure(
                argv, result.returncode, stderr=result.stderr if capture else None
            )

        return result

    def succeeds(self, cmd: Command, elevated: bool = False) -> bool:
        """Run cmd quietly and report whether it exited with status 0."""
        try:
            result = self.run(cmd, elevated=elevated, check=False, capture=True)
        except ExternalToolFailure:
            return False
        return result.returncode == 0
