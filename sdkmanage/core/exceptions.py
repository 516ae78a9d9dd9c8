"""
Centralized exception hierarchy for sdk-manage.

Every error surfaced to the command line derives from SdkManageError so the
CLI can map it to an exit status in one place.
"""

from typing import Optional, Sequence


# ============================================================================
# Base Exceptions
# ============================================================================


class SdkManageError(Exception):
    """Base exception for all sdk-manage errors."""

    pass


# ============================================================================
# Argument and Lookup Errors (raised before any side effect)
# ============================================================================


class UsageError(SdkManageError):
    """Missing or malformed command-line arguments."""

    def __init__(self, message: str, usage: Optional[str] = None):
        self.usage = usage
        super().__init__(message)


class ValidationError(SdkManageError):
    """Invalid resource name or nonexistent resource."""

    pass


class ConfigError(SdkManageError):
    """Configuration file parsing or validation error."""

    pass


# ============================================================================
# Operation Errors
# ============================================================================


class IntegrityError(SdkManageError):
    """Downloaded artifact failed checksum or sanity checks."""

    pass


class ResourceConflictError(SdkManageError):
    """Resource already exists or is still referenced by another resource."""

    pass


class ToolingInUseError(ResourceConflictError):
    """Raised when attempting to remove a tooling still used by targets."""

    def __init__(self, tooling: str, targets: Sequence[str]):
        self.tooling = tooling
        self.targets = list(targets)
        super().__init__(
            f"Tooling '{tooling}' is in use by target(s): {', '.join(self.targets)}"
        )


class SdkEnvironmentError(SdkManageError):
    """Host environment problem (disk full, missing mount or service)."""

    pass


class ExternalToolFailure(SdkManageError):
    """An external command returned a non-zero exit status."""

    def __init__(
        self,
        command: Sequence[str],
        returncode: int,
        stderr: Optional[str] = None,
        message: Optional[str] = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = stderr or ""
        msg = message or f"Command failed with exit code {returncode}"
        msg += f"\nCommand: {' '.join(self.command)}"
        if self.stderr.strip():
            msg += f"\nError output:\n{self.stderr.strip()}"
        super().__init__(msg)
