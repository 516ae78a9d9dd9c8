"""
File system utilities for sdk-manage.

This module provides:
- Safe file operations (atomic writes, guarded deletion)
- File hashing for download verification
- Disk space probing for unpack diagnostics
- Privileged operations on the shared tooling/target roots, executed
  through the command runner so they can be elevated
"""

import hashlib
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional, Union

from sdkmanage.core.exceptions import SdkManageError
from sdkmanage.core.process import CommandRunner

logger = logging.getLogger(__name__)


class FilesystemError(SdkManageError):
    """Base exception for filesystem operations."""

    pass


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Args:
        path: Path to check
        parent: Parent directory

    Returns:
        True if path is under parent directory
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def existing_ancestor(path: Union[str, Path]) -> Path:
    """Return path itself or the closest parent that exists."""
    path = Path(path).absolute()
    while not path.exists() and path != path.parent:
        path = path.parent
    return path


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    Args:
        file_path: Path to write to
        content: Content to write (string or bytes)
        encoding: Text encoding (used only for string content)
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        if file_path.exists():
            shutil.copymode(file_path, temp_path)
        temp_path.replace(file_path)

    except Exception:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError:
            pass
        raise


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree owned by the invoking user.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails
    """
    path = Path(path).absolute()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).absolute()
        if not is_relative_to(path, require_prefix) or path == require_prefix:
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists() and not path.is_symlink():
        return

    try:
        if path.is_symlink() or not path.is_dir():
            path.unlink()
        else:
            shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove '{path}': {e}") from e


def remove_file(path: Union[str, Path]) -> None:
    """Remove a file if present, logging instead of raising on failure."""
    path = Path(path)
    try:
        path.unlink(missing_ok=True)
        logger.debug(f"Removed: {path}")
    except OSError as e:
        logger.warning(f"Failed to remove {path}: {e}")


# ============================================================================
# Hashing and Disk Space
# ============================================================================


def compute_file_hash(
    file_path: Union[str, Path], algorithm: str = "md5", chunk_size: int = 8192
) -> str:
    """
    Compute hash of a file.

    Args:
        file_path: Path to file
        algorithm: Hash algorithm ('md5', 'sha256', ...)
        chunk_size: Number of bytes to read at once

    Returns:
        Hex digest of the hash
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FilesystemError(f"File not found: {file_path}")

    try:
        hasher = hashlib.new(algorithm)
    except ValueError:
        raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    with open(file_path, "rb") as f:
        while chunk := f.read(chunk_size):
            hasher.update(chunk)

    return hasher.hexdigest()


def free_space_fraction(path: Union[str, Path]) -> float:
    """
    Fraction (0.0-1.0) of the containing file system that is still free.

    Args:
        path: Any path on the file system of interest (need not exist yet)
    """
    usage = shutil.disk_usage(existing_ancestor(path))
    if usage.total == 0:
        return 0.0
    return usage.free / usage.total


# ============================================================================
# Privileged Operations
# ============================================================================


class PrivilegedFilesystem:
    """
    Mutations of shared system directories, run through the command runner.

    Tooling and target trees contain root-owned files, so these operations
    use the external tools (mkdir, rm, tar, chown) with elevation rather
    than Python file APIs.
    """

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def makedirs(self, path: Path) -> None:
        self.runner.run(["mkdir", "-p", path], elevated=True)

    def remove_tree(self, path: Path) -> None:
        """Remove path recursively (no-op if absent)."""
        if not os.path.lexists(path):
            return
        self.runner.run(["rm", "-rf", "--one-file-system", path], elevated=True)

    def unpack(self, archive: Path, destination: Path) -> None:
        """Unpack a tarball preserving permissions and numeric ownership."""
        self.runner.run(
            ["tar", "--numeric-owner", "-p", "-xf", archive, "-C", destination],
            elevated=True,
            capture=True,
        )

    def chown(self, path: Path, uid: int, gid: int, recursive: bool = False) -> None:
        cmd = ["chown"]
        if recursive:
            cmd.append("-R")
        cmd.extend([f"{uid}:{gid}", path])
        self.runner.run(cmd, elevated=True)
