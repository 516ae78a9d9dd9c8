"""
Tests for file system utilities.
"""

import os
import tarfile
from unittest.mock import patch

import pytest

from sdkmanage.core.exceptions import ExternalToolFailure, SdkManageError
from sdkmanage.core.filesystem import (
    FilesystemError,
    PrivilegedFilesystem,
    atomic_write,
    existing_ancestor,
    free_space_fraction,
    safe_rmtree,
)
from sdkmanage.core.process import CommandRunner


@pytest.fixture
def fs() -> PrivilegedFilesystem:
    return PrivilegedFilesystem(CommandRunner(elevate=False))


class TestHelpers:
    """Test path and file helpers."""

    def test_atomic_write_preserves_mode(self, tmp_path):
        """Test replacing a file keeps its permissions."""
        path = tmp_path / "hosts"
        path.write_text("old\n")
        os.chmod(path, 0o600)

        atomic_write(path, "new\n")

        assert path.read_text() == "new\n"
        assert path.stat().st_mode & 0o777 == 0o600
        assert list(tmp_path.iterdir()) == [path]

    def test_safe_rmtree_requires_prefix(self, tmp_path):
        """Test deletion outside (or of) the prefix is refused."""
        (tmp_path / "a").mkdir()

        with pytest.raises(ValueError):
            safe_rmtree(tmp_path, require_prefix=tmp_path)
        with pytest.raises(ValueError):
            safe_rmtree(tmp_path / "a", require_prefix=tmp_path / "b")

        safe_rmtree(tmp_path / "a", require_prefix=tmp_path)
        assert not (tmp_path / "a").exists()

    def test_safe_rmtree_missing_is_noop(self, tmp_path):
        """Test removing a missing path does nothing."""
        safe_rmtree(tmp_path / "missing")

    def test_safe_rmtree_failure_is_sdk_error(self, tmp_path):
        """Test deletion failures surface as sdk-manage errors."""
        (tmp_path / "a").mkdir()

        with patch(
            "sdkmanage.core.filesystem.shutil.rmtree",
            side_effect=PermissionError("denied"),
        ):
            with pytest.raises(FilesystemError, match="denied") as exc:
                safe_rmtree(tmp_path / "a")

        assert isinstance(exc.value, SdkManageError)

    def test_existing_ancestor(self, tmp_path):
        """Test the closest existing parent is found."""
        assert existing_ancestor(tmp_path / "a" / "b") == tmp_path

    def test_free_space_fraction(self, tmp_path):
        """Test the fraction is within 0..1 for paths not created yet."""
        fraction = free_space_fraction(tmp_path / "not" / "yet")
        assert 0.0 <= fraction <= 1.0


@pytest.mark.integration
class TestPrivilegedFilesystem:
    """Test privileged operations with real commands (no sudo)."""

    def test_makedirs_and_remove(self, fs, tmp_path):
        """Test directory creation and recursive removal."""
        path = tmp_path / "toolings" / "t1"
        fs.makedirs(path)
        (path / "file").write_text("x")

        fs.remove_tree(path)

        assert not path.exists()
        assert (tmp_path / "toolings").is_dir()

    def test_remove_missing_is_noop(self, fs, tmp_path):
        """Test removing nothing runs no command."""
        with patch.object(fs.runner, "run") as run:
            fs.remove_tree(tmp_path / "missing")
        run.assert_not_called()

    def test_unpack(self, fs, tmp_path):
        """Test tarballs are unpacked into the destination."""
        source = tmp_path / "src"
        (source / "etc").mkdir(parents=True)
        (source / "etc" / "os-release").write_text("VERSION_ID=4.5\n")
        archive = tmp_path / "rootfs.tar.gz"
        with tarfile.open(archive, "w:gz") as tar:
            tar.add(source / "etc", arcname="etc")
        destination = tmp_path / "dest"
        destination.mkdir()

        fs.unpack(archive, destination)

        assert (destination / "etc" / "os-release").read_text() == "VERSION_ID=4.5\n"

    def test_unpack_garbage(self, fs, tmp_path):
        """Test unpacking a non-archive fails with tar's message."""
        archive = tmp_path / "broken.tar"
        archive.write_bytes(b"this is not a tarball" * 100)
        destination = tmp_path / "dest"
        destination.mkdir()

        with pytest.raises(ExternalToolFailure) as exc_info:
            fs.unpack(archive, destination)

        assert exc_info.value.command[0] == "tar"

    def test_chown_to_self(self, fs, tmp_path):
        """Test chown to the invoking user succeeds."""
        (tmp_path / "d" / "f").parent.mkdir()
        (tmp_path / "d" / "f").write_text("x")

        fs.chown(tmp_path / "d", os.getuid(), os.getgid(), recursive=True)

        assert (tmp_path / "d" / "f").stat().st_uid == os.getuid()
