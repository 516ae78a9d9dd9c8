"""
Artifact download with companion checksum verification.

This module provides fetch(), used by the install workflows to obtain
tooling and target archives:
- Local paths are used in place (no copy, nothing to clean up)
- HTTP/HTTPS downloads with retry on transient errors
- Best-effort MD5 verification against a ``<url>.md5sum`` side file
- Minimum size sanity check against error pages and truncated transfers
- Cleanup of partial files on any failure, including KeyboardInterrupt
"""

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union
from urllib.parse import unquote, urlparse

import requests
from filelock import FileLock, Timeout as LockTimeout
from requests.exceptions import ConnectionError, HTTPError, RequestException, Timeout

from sdkmanage.core.exceptions import (
    IntegrityError,
    ResourceConflictError,
    SdkManageError,
    ValidationError,
)
from sdkmanage.core.filesystem import compute_file_hash, remove_file

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"^(https?|ftps?)://", re.IGNORECASE)

# Anything smaller is an error page or a truncated transfer, not an archive
MIN_DOWNLOAD_SIZE = 10 * 1024

CHECKSUM_SUFFIX = ".md5sum"


class DownloadError(SdkManageError):
    """Exception raised when download fails."""

    pass


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second

    def __str__(self) -> str:
        return format_progress(self)


@dataclass(frozen=True)
class DownloadResult:
    """Local artifact location and whether fetch() created it."""

    path: Path
    fresh: bool


def is_url(source: str) -> bool:
    """Whether source names a network resource rather than a local path."""
    return bool(URL_PATTERN.match(source))


def remote_filename(url: str) -> str:
    """Last path component of url, used as the local download name."""
    name = unquote(Path(urlparse(url).path).name)
    return name or "download"


def fetch(
    source: str,
    work_dir: Path,
    destination_hint: Optional[str] = None,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
    max_retries: int = 3,
    min_size: int = MIN_DOWNLOAD_SIZE,
    lock_timeout: int = 600,
) -> DownloadResult:
    """
    Obtain a local copy of source.

    Args:
        source: Local file path or http(s) URL
        work_dir: Directory that receives downloads
        destination_hint: File name the artifact should end up with in
            work_dir (defaults to the remote file name)
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds
        max_retries: Maximum number of attempts for transient errors
        min_size: Smallest acceptable artifact size in bytes
        lock_timeout: Seconds to wait for another process downloading a file
            with the same remote name

    Returns:
        DownloadResult; ``fresh`` tells the caller it owns the file and
        should delete it when done

    Raises:
        ValidationError: If a local path does not exist or the URL scheme is
            not supported
        DownloadError: If the transfer fails
        IntegrityError: If the checksum does not match or the file is too small

    Example:
        >>> result = fetch("https://example.com/target.tar.7z", Path("/var/tmp"))
        >>> try:
        ...     unpack(result.path)
        ... finally:
        ...     if result.fresh:
        ...         result.path.unlink()
    """
    if not source:
        raise ValidationError("Source cannot be empty")

    if not is_url(source):
        path = Path(source).expanduser().resolve()
        if not path.is_file():
            raise ValidationError(f"File not found: {source}")
        logger.debug(f"Using local file: {path}")
        return DownloadResult(path=path, fresh=False)

    if not source.lower().startswith("http"):
        raise ValidationError(
            f"Unsupported URL scheme: {source} (use http(s) or a local path)"
        )

    work_dir = Path(work_dir)
    work_dir.mkdir(parents=True, exist_ok=True)

    name = remote_filename(source)
    artifact = work_dir / name
    checksum_file = work_dir / f"{name}{CHECKSUM_SUFFIX}"
    destination = work_dir / destination_hint if destination_hint else artifact

    # Named after the file actually written; hints sharing a remote name
    # download into the same work file.
    lock_dir = work_dir / ".lock"
    lock_dir.mkdir(exist_ok=True)
    lock = FileLock(str(lock_dir / f"{artifact.name}.lock"), timeout=lock_timeout)

    try:
        with lock:
            _fetch_locked(
                source,
                artifact,
                checksum_file,
                destination,
                progress_callback,
                timeout,
                max_retries,
                min_size,
            )
    except LockTimeout as e:
        raise ResourceConflictError(
            f"Download slot {artifact.name} is busy: another sdk-manage "
            f"process is downloading it"
        ) from e

    return DownloadResult(path=destination, fresh=True)


def _fetch_locked(
    url: str,
    artifact: Path,
    checksum_file: Path,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
    max_retries: int,
    min_size: int,
) -> None:
    """Download, verify and move into place; remove leftovers on any failure."""
    try:
        download_file(url, artifact, progress_callback, timeout, max_retries)
        expected = _fetch_checksum(url + CHECKSUM_SUFFIX, checksum_file, timeout)
        check_artifact(artifact, expected, min_size)
        if destination != artifact:
            artifact.replace(destination)
    except BaseException:
        logger.debug("Download failed, removing partial files")
        remove_file(artifact)
        remove_file(destination)
        raise
    finally:
        remove_file(checksum_file)


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = 30,
    max_retries: int = 3,
) -> Path:
    """
    Download url to destination, retrying transient errors with backoff.

    Client errors (4xx) are not retried.

    Raises:
        DownloadError: If download fails after retries
    """
    for attempt in range(max_retries):
        try:
            return _download_with_progress(
                url, destination, progress_callback, timeout
            )
        except HTTPError as e:
            status = e.response.status_code if e.response is not None else 0
            if status < 500 or attempt == max_retries - 1:
                raise DownloadError(f"Download of {url} failed: {e}") from e
            _backoff(attempt, e)
        except (Timeout, ConnectionError, RequestException) as e:
            if attempt == max_retries - 1:
                raise DownloadError(
                    f"Download failed after {max_retries} attempts: {e}"
                ) from e
            _backoff(attempt, e)

    raise DownloadError(f"Download of {url} failed")


def _backoff(attempt: int, error: Exception) -> None:
    backoff_seconds = 2**attempt
    logger.warning(
        f"Download attempt {attempt + 1} failed: {error}. "
        f"Retrying in {backoff_seconds}s..."
    )
    time.sleep(backoff_seconds)


def _download_with_progress(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]],
    timeout: int,
) -> Path:
    logger.info(f"Downloading {url}")

    response = requests.get(url, stream=True, timeout=timeout, allow_redirects=True)
    response.raise_for_status()

    content_length = response.headers.get("content-length")
    total_size = int(content_length) if content_length else 0

    downloaded = 0
    start_time = time.time()
    last_progress_time = start_time

    with open(destination, "wb") as f:
        for chunk in response.iter_content(chunk_size=65536):
            if not chunk:
                continue
            f.write(chunk)
            downloaded += len(chunk)

            current_time = time.time()
            if progress_callback and (
                current_time - last_progress_time >= 0.5 or downloaded == total_size
            ):
                elapsed = current_time - start_time
                progress_callback(
                    DownloadProgress(
                        bytes_downloaded=downloaded,
                        total_bytes=total_size if total_size > 0 else downloaded,
                        percentage=(downloaded / total_size * 100)
                        if total_size > 0
                        else 0,
                        speed_bps=downloaded / elapsed if elapsed > 0 else 0,
                    )
                )
                last_progress_time = current_time

    logger.debug(f"Wrote {downloaded} bytes to {destination}")
    return destination


def _fetch_checksum(url: str, checksum_file: Path, timeout: int) -> Optional[str]:
    """
    Download the companion checksum if the server publishes one.

    Returns:
        Expected MD5 hex digest, or None when no checksum is available
    """
    try:
        probe = requests.head(url, timeout=timeout, allow_redirects=True)
    except RequestException as e:
        logger.warning(f"Could not probe for checksum {url}: {e}")
        return None

    if probe.status_code != 200:
        logger.warning(f"No checksum published at {url}, skipping verification")
        return None

    try:
        download_file(url, checksum_file, timeout=timeout, max_retries=1)
    except DownloadError as e:
        raise IntegrityError(f"Failed to download checksum {url}: {e}") from e

    return parse_checksum_file(checksum_file)


def parse_checksum_file(checksum_file: Path) -> str:
    """Extract the digest from ``md5sum`` output ("<digest>  <file name>")."""
    tokens = checksum_file.read_text(encoding="utf-8", errors="replace").split()
    if not tokens or not re.fullmatch(r"[0-9a-fA-F]{32}", tokens[0]):
        raise IntegrityError(f"Malformed checksum file: {checksum_file.name}")
    return tokens[0].lower()


def check_artifact(
    artifact: Path, expected_md5: Optional[str], min_size: int = MIN_DOWNLOAD_SIZE
) -> None:
    """
    Reject missing, corrupted or suspiciously small downloads.

    Raises:
        IntegrityError: If any check fails
    """
    if not artifact.is_file():
        raise IntegrityError(f"Downloaded file is missing: {artifact}")

    if expected_md5 is not None:
        actual = compute_file_hash(artifact, "md5")
        if actual != expected_md5:
            raise IntegrityError(
                f"Checksum mismatch for {artifact.name}: "
                f"expected {expected_md5}, got {actual}"
            )
        logger.info("Checksum verified successfully")

    size = artifact.stat().st_size
    if size < min_size:
        raise IntegrityError(
            f"Downloaded file {artifact.name} is only {size} bytes, "
            f"expected at least {min_size}"
        )


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0 and progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s"
        )
    return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"


def log_progress(progress: DownloadProgress) -> None:
    """Progress callback that reports through logging (stderr)."""
    logger.info(str(progress))


def cleanup_download(result: Union[DownloadResult, None]) -> None:
    """Delete a fetched artifact if fetch() created it."""
    if result is not None and result.fresh:
        remove_file(result.path)
