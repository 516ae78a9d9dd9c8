"""
Tests for host view mirroring.
"""

import os

import pytest

from conftest import completed
from sdkmanage.core.exceptions import ExternalToolFailure
from sdkmanage.cross.sync import HostSync


@pytest.fixture
def host_sync(runner):
    return HostSync(runner)


class TestSync:
    """Test HostSync.sync()."""

    def test_sync_creates_markers(self, host_sync, runner, tmp_path):
        """Test the IDE placeholder and plugin directory are created."""
        target, host = tmp_path / "target", tmp_path / "host" / "t1"
        target.mkdir()

        host_sync.sync(target, host)

        placeholder = host / "usr" / "bin" / "qmlscene"
        assert placeholder.is_file()
        assert os.access(placeholder, os.X_OK)
        assert (host / "usr" / "lib" / "qt5" / "plugins").is_dir()

        argv = runner.commands("rsync")[0]
        assert "--delete" in argv
        assert argv[-2:] == [f"{target}/", f"{host}/"]
        assert argv.index("+ */") < argv.index("- *")

    @pytest.mark.parametrize("code", [23, 24])
    def test_partial_transfer_is_warning(self, host_sync, runner, tmp_path, code, caplog):
        runner.on("rsync", lambda argv, **kwargs: completed(argv, "", code))

        host_sync.sync(tmp_path / "target", tmp_path / "host")

        assert f"exit code {code}" in caplog.text

    def test_failure(self, host_sync, runner, tmp_path):
        runner.on("rsync", lambda argv, **kwargs: completed(argv, "", 12, "protocol"))

        with pytest.raises(ExternalToolFailure, match="rsync failed"):
            host_sync.sync(tmp_path / "target", tmp_path / "host")


class TestImport:
    """Test HostSync.import_()."""

    def test_direction(self, host_sync, runner, tmp_path):
        """Test the host view is copied back without filters."""
        host_sync.import_(tmp_path / "host", tmp_path / "target")

        argv = runner.commands("rsync")[0]
        assert "-f" not in argv
        assert argv[-2:] == [f"{tmp_path / 'host'}/", f"{tmp_path / 'target'}/"]
