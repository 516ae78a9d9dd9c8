"""Helpers shared by the tooling and target install workflows."""

import logging
from pathlib import Path

from sdkmanage.core.download import remote_filename
from sdkmanage.core.exceptions import ExternalToolFailure, SdkEnvironmentError
from sdkmanage.core.filesystem import PrivilegedFilesystem, free_space_fraction
from sdkmanage.resources.base import ResourceKind

logger = logging.getLogger(__name__)

# Below this share of free space an unpack failure is reported as disk full
MIN_FREE_SPACE_FRACTION = 0.05


def archive_hint(kind: ResourceKind, name: str, source: str) -> str:
    """
    Download file name for the archive of a resource.

    Example:
        >>> archive_hint(ResourceKind.TOOLING, "t1", "http://h/x/tooling.tar.bz2")
        'tooling-t1-tooling.tar.bz2'
    """
    return f"{kind.value}-{name}-{remote_filename(source)}"


def unpack_archive(fs: PrivilegedFilesystem, archive: Path, destination: Path) -> None:
    """
    Unpack archive into destination, diagnosing failures.

    Raises:
        SdkEnvironmentError: If unpacking failed and the file system is
            nearly full
        ExternalToolFailure: For any other unpack failure
    """
    logger.info(f"Unpacking {archive.name} to {destination}")
    try:
        fs.unpack(archive, destination)
    except ExternalToolFailure as e:
        free = free_space_fraction(destination)
        if free < MIN_FREE_SPACE_FRACTION:
            raise SdkEnvironmentError(
                f"Not enough disk space to unpack {archive.name} into "
                f"{destination} ({free:.1%} free)"
            ) from e
        raise ExternalToolFailure(
            e.command,
            e.returncode,
            stderr=e.stderr,
            message=f"Failed to unpack {archive.name}",
        ) from e
