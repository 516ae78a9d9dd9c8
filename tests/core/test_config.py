"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest

from sdkmanage.core.config import SdkConfig, load_config
from sdkmanage.core.exceptions import ConfigError


class TestSdkConfig:
    """Test SdkConfig defaults and validation."""

    def test_defaults(self):
        """Test built-in defaults."""
        config = SdkConfig()

        assert config.install_mode == "chroot"
        assert config.toolings_root == Path("/srv/mer/toolings")
        assert config.targets_root == Path("/srv/mer/targets")
        assert config.elevate is True
        assert config.unregistered_domains == ("sales",)
        assert config.chroot_mode
        assert not config.virtualized

    def test_invalid_mode(self):
        """Test unknown installation modes are rejected."""
        with pytest.raises(ConfigError, match="install_mode"):
            SdkConfig(install_mode="bare-metal")

    def test_immutable(self):
        """Test the configuration cannot be changed in place."""
        config = SdkConfig()
        with pytest.raises(Exception):
            config.install_mode = "vm"

    def test_with_overrides(self):
        """Test overrides produce a new configuration."""
        config = SdkConfig()
        vm = config.with_overrides(install_mode="vm")

        assert vm.virtualized
        assert config.install_mode == "chroot"


class TestLoadConfig:
    """Test load_config()."""

    def test_full_file(self, tmp_path):
        """Test every supported key."""
        config_file = tmp_path / "sdk-manage.yaml"
        config_file.write_text(
            """
install_mode: vm
elevate: false
toolchain_prefix: patterns-custom-
paths:
  toolings: /data/toolings
  targets: /data/targets
  host_targets: /mnt/host
  downloads: /data/downloads
registration:
  unregistered_domains: [sales, demo]
status:
  mounts: [/mnt/host, /home/user/share]
  services: [sdk-webapp.service]
"""
        )

        config = load_config(config_file)

        assert config.virtualized
        assert config.elevate is False
        assert config.toolchain_prefix == "patterns-custom-"
        assert config.toolings_root == Path("/data/toolings")
        assert config.host_targets_root == Path("/mnt/host")
        assert config.download_dir == Path("/data/downloads")
        assert config.unregistered_domains == ("sales", "demo")
        assert config.status_mounts == (Path("/mnt/host"), Path("/home/user/share"))
        assert config.status_services == ("sdk-webapp.service",)

    def test_empty_file_uses_defaults(self, tmp_path):
        """Test an empty file yields the defaults."""
        config_file = tmp_path / "sdk-manage.yaml"
        config_file.write_text("")

        assert load_config(config_file) == SdkConfig()

    def test_environment_variable(self, tmp_path, monkeypatch):
        """Test SDK_MANAGE_CONFIG names the file when no path is given."""
        config_file = tmp_path / "env.yaml"
        config_file.write_text("install_mode: docker\n")
        monkeypatch.setenv("SDK_MANAGE_CONFIG", str(config_file))

        assert load_config().install_mode == "docker"

    def test_missing_explicit_file(self, tmp_path):
        """Test an explicitly named file must exist."""
        with pytest.raises(ConfigError):
            load_config(tmp_path / "missing.yaml")

    def test_unknown_path_key(self, tmp_path):
        """Test typos in path keys are reported."""
        config_file = tmp_path / "sdk-manage.yaml"
        config_file.write_text("paths:\n  tooling: /x\n")

        with pytest.raises(ConfigError, match="paths.tooling"):
            load_config(config_file)

    def test_invalid_yaml(self, tmp_path):
        """Test malformed YAML is a configuration error."""
        config_file = tmp_path / "sdk-manage.yaml"
        config_file.write_text("paths: [unclosed\n")

        with pytest.raises(ConfigError):
            load_config(config_file)

    def test_non_boolean_elevate(self, tmp_path):
        """Test elevate must be a boolean."""
        config_file = tmp_path / "sdk-manage.yaml"
        config_file.write_text("elevate: sometimes\n")

        with pytest.raises(ConfigError, match="elevate"):
            load_config(config_file)

    @pytest.mark.parametrize(
        "content,key",
        [
            ("registration: [sales]\n", "registration"),
            ("status: [sshd.service]\n", "status"),
            ("status:\n  mounts: /home/mersdk/share\n", "status.mounts"),
            ("status:\n  services: sshd.service\n", "status.services"),
            ("paths: [/srv]\n", "paths"),
        ],
    )
    def test_section_shapes(self, tmp_path, content, key):
        """Test sections of the wrong shape are configuration errors."""
        config_file = tmp_path / "sdk-manage.yaml"
        config_file.write_text(content)

        with pytest.raises(ConfigError, match=key):
            load_config(config_file)
