"""YAML configuration for sdk-manage.

The configuration is read once at process start and handed to every
component as an immutable SdkConfig. Nothing else in the package reads
paths from the environment.

Example configuration (/etc/sdk-manage.yaml):

    install_mode: vm
    elevate: true
    paths:
      toolings: /srv/mer/toolings
      targets: /srv/mer/targets
      host_targets: /host_targets
      sandbox_config: ~/.scratchbox2
      downloads: /var/tmp/sdk-manage
      ide_manifest: /host_targets/targets.xml
    registration:
      unregistered_domains: [sales]
    status:
      mounts: [/home/mersdk/share]
      services: [sshd]
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Optional, Tuple

import yaml

from sdkmanage.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("/etc/sdk-manage.yaml")
CONFIG_ENV_VAR = "SDK_MANAGE_CONFIG"

INSTALL_MODES = ("vm", "chroot", "docker")


@dataclass(frozen=True)
class SdkConfig:
    """Immutable runtime configuration."""

    install_mode: str = "chroot"
    toolings_root: Path = Path("/srv/mer/toolings")
    targets_root: Path = Path("/srv/mer/targets")
    host_targets_root: Path = Path("/host_targets")
    sandbox_config_dir: Path = field(
        default_factory=lambda: Path.home() / ".scratchbox2"
    )
    download_dir: Path = Path("/var/tmp/sdk-manage")
    ide_manifest: Path = Path("/host_targets/targets.xml")
    elevate: bool = True
    toolchain_prefix: str = "patterns-sailfish-sb2-"
    unregistered_domains: Tuple[str, ...] = ("sales",)
    status_mounts: Tuple[Path, ...] = ()
    status_services: Tuple[str, ...] = ()

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.install_mode not in INSTALL_MODES:
            raise ConfigError(
                f"Invalid install_mode: {self.install_mode} "
                f"(expected one of {list(INSTALL_MODES)})"
            )

    @property
    def virtualized(self) -> bool:
        """Whether target files are mirrored to a host-visible view."""
        return self.install_mode == "vm"

    @property
    def chroot_mode(self) -> bool:
        return self.install_mode == "chroot"

    def with_overrides(self, **changes) -> "SdkConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)


def _as_path(value) -> Path:
    return Path(os.path.expanduser(str(value)))


def _parse_and_validate(data: dict) -> SdkConfig:
    """Parse and validate configuration data."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    kwargs = {}

    if "install_mode" in data:
        kwargs["install_mode"] = data["install_mode"]
    if "elevate" in data:
        if not isinstance(data["elevate"], bool):
            raise ConfigError("elevate must be a boolean")
        kwargs["elevate"] = data["elevate"]
    if "toolchain_prefix" in data:
        kwargs["toolchain_prefix"] = str(data["toolchain_prefix"])

    paths = data.get("paths") or {}
    if not isinstance(paths, dict):
        raise ConfigError("paths must be a dictionary")
    path_keys = {
        "toolings": "toolings_root",
        "targets": "targets_root",
        "host_targets": "host_targets_root",
        "sandbox_config": "sandbox_config_dir",
        "downloads": "download_dir",
        "ide_manifest": "ide_manifest",
    }
    for key, value in paths.items():
        if key not in path_keys:
            raise ConfigError(
                f"Unknown path key: paths.{key} (expected one of {list(path_keys)})"
            )
        kwargs[path_keys[key]] = _as_path(value)

    registration = data.get("registration") or {}
    if not isinstance(registration, dict):
        raise ConfigError("registration must be a dictionary")
    domains = registration.get("unregistered_domains")
    if domains is not None:
        if not isinstance(domains, list):
            raise ConfigError("registration.unregistered_domains must be a list")
        kwargs["unregistered_domains"] = tuple(str(d) for d in domains)

    status = data.get("status") or {}
    if not isinstance(status, dict):
        raise ConfigError("status must be a dictionary")
    for key in ("mounts", "services"):
        if not isinstance(status.get(key) or [], list):
            raise ConfigError(f"status.{key} must be a list")
    if "mounts" in status:
        kwargs["status_mounts"] = tuple(_as_path(m) for m in status["mounts"] or [])
    if "services" in status:
        kwargs["status_services"] = tuple(str(s) for s in status["services"] or [])

    return SdkConfig(**kwargs)


def load_config(config_path: Optional[Path] = None) -> SdkConfig:
    """
    Load sdk-manage configuration.

    Resolution order: explicit path, then $SDK_MANAGE_CONFIG, then
    /etc/sdk-manage.yaml. An explicitly requested file must exist; the
    default file is optional and built-in defaults apply without it.

    Args:
        config_path: Optional explicit configuration file

    Returns:
        Parsed configuration

    Raises:
        ConfigError: If the file is missing (when explicit) or invalid
    """
    required = True
    if config_path is None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            config_path = Path(env_path)
        else:
            config_path = DEFAULT_CONFIG_PATH
            required = False

    config_path = Path(config_path)
    if not config_path.exists():
        if required:
            raise ConfigError(f"Configuration file not found: {config_path}")
        logger.debug(f"Config file not found (optional): {config_path}")
        return SdkConfig()

    logger.debug(f"Loading configuration from {config_path}")
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")

    if data is None:
        return SdkConfig()

    return _parse_and_validate(data)
