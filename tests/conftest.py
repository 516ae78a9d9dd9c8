"""
Pytest configuration and shared fixtures for sdk-manage tests.

Workflows run against a real temporary file system: mkdir, rm, tar and
chown are executed for real (without sudo). The SDK's collaborators
(scratchbox2, zypper, ssu, rpm, rsync, the IDE notifier, systemctl) are
answered by FakeRunner handlers.
"""

import io
import os
import subprocess
import tarfile
from fnmatch import fnmatch
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from sdkmanage.context import SdkContext
from sdkmanage.core.config import SdkConfig
from sdkmanage.core.exceptions import ExternalToolFailure
from sdkmanage.core.process import CommandRunner


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: runs real tar/mkdir/rm/chown in a temporary directory",
    )


# ============================================================================
# Fake Commands
# ============================================================================


def completed(
    argv, stdout: str = "", returncode: int = 0, stderr: str = ""
) -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(argv, returncode, stdout=stdout, stderr=stderr)


Handler = Callable[..., subprocess.CompletedProcess]


class FakeRunner(CommandRunner):
    """CommandRunner answering selected programs from Python handlers."""

    def __init__(self):
        super().__init__(elevate=False)
        self.handlers: Dict[str, Handler] = {}
        self.calls: List[List[str]] = []

    def on(self, program: str, handler: Handler) -> None:
        self.handlers[program] = handler

    def answer(self, program: str, stdout: str = "", returncode: int = 0) -> None:
        self.on(program, lambda argv, **kwargs: completed(argv, stdout, returncode))

    def run(
        self,
        cmd,
        elevated=False,
        check=True,
        capture=False,
        input=None,
        cwd=None,
        env=None,
    ):
        argv = self.build(cmd, elevated=elevated)
        handler = self.handlers.get(os.path.basename(argv[0]))
        if handler is None:
            return super().run(
                cmd,
                elevated=elevated,
                check=check,
                capture=capture,
                input=input,
                cwd=cwd,
                env=env,
            )

        self.calls.append(argv)
        result = handler(argv, input=input, cwd=cwd)
        if check and result.returncode != 0:
            raise ExternalToolFailure(argv, result.returncode, stderr=result.stderr)
        return result

    def commands(self, program: str) -> List[List[str]]:
        return [argv for argv in self.calls if os.path.basename(argv[0]) == program]


class FakeScratchbox:
    """sb2-config / sb2-init keeping real sb2.config files in config_dir."""

    def __init__(self, config_dir: Path):
        self.config_dir = config_dir

    def install(self, runner: FakeRunner) -> None:
        runner.on("sb2-config", self.list_targets)
        runner.on("sb2-init", self.init_target)

    def register(self, name: str, target_root: Path, tools_root: Path) -> None:
        directory = self.config_dir / name
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "sb2.config").write_text(
            f'SBOX_TARGET_ROOT="{target_root}"\n'
            f'export SBOX_TOOLS_ROOT="{tools_root}"\n'
        )

    def list_targets(self, argv, **kwargs):
        names = []
        if self.config_dir.is_dir():
            names = sorted(
                entry.name
                for entry in self.config_dir.iterdir()
                if (entry / "sb2.config").is_file()
            )
        return completed(argv, "".join(f"{name}\n" for name in names))

    def init_target(self, argv, cwd=None, **kwargs):
        tools_root = argv[argv.index("-t") + 1]
        self.register(argv[-2], Path(cwd), Path(tools_root))
        return completed(argv)


class FakePackages:
    """
    In-memory zypper and ssu for the SDK, toolings and targets.

    Attributes:
        packages: instance name -> {package name: installed}
        domains: instance name -> ssu domain (default "sales")
        calls: (instance, command) for every command run
        failing: instances whose commands all fail
    """

    def __init__(self):
        self.packages: Dict[str, Dict[str, bool]] = {}
        self.domains: Dict[str, str] = {}
        self.calls: List[tuple] = []
        self.failing = set()

    def install(self, runner: FakeRunner) -> None:
        runner.on("mer-tooling-chroot", self.tooling_command)
        runner.on("sb2", self.target_command)
        runner.on("zypper", self.sdk_command)
        runner.on("ssu", self.sdk_command)

    def tooling_command(self, argv, input=None, **kwargs):
        return self.handle(Path(argv[0]).parent.name, argv[1:], input)

    def target_command(self, argv, input=None, **kwargs):
        start = argv.index("-m") + 2
        if argv[start] == "-R":
            start += 1
        return self.handle(argv[2], argv[start:], input)

    def sdk_command(self, argv, input=None, **kwargs):
        return self.handle("", argv, input)

    def commands_for(self, instance: str) -> List[List[str]]:
        return [command for name, command in self.calls if name == instance]

    def handle(self, instance: str, command: List[str], input: Optional[str]):
        self.calls.append((instance, command))
        if instance in self.failing:
            return completed(command, returncode=1, stderr="simulated failure")

        if command[0] == "ssu":
            if command[1] == "domain":
                domain = self.domains.get(instance, "sales")
                return completed(command, f"Device domain is currently: {domain}\n")
            return completed(command)

        args = [arg for arg in command[1:] if not arg.startswith("--")]
        action = args[0]
        packages = self.packages.setdefault(instance, {})

        if action == "search":
            matches = sorted(
                name
                for name in packages
                if any(fnmatch(name, pattern) for pattern in args[1:])
            )
            if not matches:
                return completed(command, "No matching items found.\n", 104)
            rows = ["S | Name | Summary | Type", "--+------+---------+--------"]
            rows.extend(
                f"{'i' if packages[name] else ' '} | {name} | summary | package"
                for name in matches
            )
            return completed(command, "\n".join(rows) + "\n")
        if action == "install":
            for name in args[1:]:
                packages[name] = True
        if action == "remove":
            for name in args[1:]:
                packages[name] = False
        return completed(command)


# ============================================================================
# Archives
# ============================================================================


def _add_file(archive: tarfile.TarFile, name: str, data: bytes, mode: int = 0o644):
    info = tarfile.TarInfo(name)
    info.size = len(data)
    info.mode = mode
    archive.addfile(info, io.BytesIO(data))


def make_rootfs_archive(
    path: Path, release: str, tooling: bool = False, padding: int = 16 * 1024
) -> Path:
    """
    Write a gzipped root file system tarball.

    Incompressible padding keeps the archive above the minimum download size.
    """
    with tarfile.open(path, "w:gz") as archive:
        _add_file(
            archive, "etc/ssu/ssu.ini", f"[General]\nrelease={release}\n".encode()
        )
        _add_file(archive, "etc/hosts", b"127.0.0.1 localhost\n::1 localhost\n")
        _add_file(archive, "etc/passwd", b"root:x:0:0:root:/root:/bin/sh\n")
        _add_file(archive, "etc/group", b"root:x:0:\n")
        _add_file(archive, "usr/include/stdio.h", b"/* stdio */\n")
        _add_file(archive, "var/padding", os.urandom(padding))
        if tooling:
            _add_file(archive, "mer-tooling-chroot", b"#!/bin/sh\n", mode=0o755)
    return path


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def sdk_config(tmp_path: Path) -> SdkConfig:
    """Configuration with every root inside tmp_path and no sudo."""
    return SdkConfig(
        install_mode="chroot",
        toolings_root=tmp_path / "toolings",
        targets_root=tmp_path / "targets",
        host_targets_root=tmp_path / "host_targets",
        sandbox_config_dir=tmp_path / "sb2",
        download_dir=tmp_path / "downloads",
        ide_manifest=tmp_path / "host_targets" / "targets.xml",
        elevate=False,
    )


@pytest.fixture
def runner(sdk_config: SdkConfig) -> FakeRunner:
    runner = FakeRunner()
    runner.answer("rpm", "armv7hl\n")
    runner.answer("rsync")
    runner.answer("updateQtCreatorTargets")
    runner.answer("systemctl")
    return runner


@pytest.fixture
def scratchbox(sdk_config: SdkConfig, runner: FakeRunner) -> FakeScratchbox:
    scratchbox = FakeScratchbox(sdk_config.sandbox_config_dir)
    scratchbox.install(runner)
    return scratchbox


@pytest.fixture
def packages(runner: FakeRunner) -> FakePackages:
    packages = FakePackages()
    packages.install(runner)
    return packages


@pytest.fixture
def context(sdk_config, runner, scratchbox, packages) -> SdkContext:
    return SdkContext.create(sdk_config, runner=runner)


@pytest.fixture
def make_tooling(sdk_config: SdkConfig):
    """Create an installed tooling directory with a release."""

    def _make(name: str, release: str = "4.5.0.18") -> Path:
        root = sdk_config.toolings_root / name
        (root / "etc" / "ssu").mkdir(parents=True)
        (root / "etc" / "ssu" / "ssu.ini").write_text(
            f"[General]\nrelease={release}\n"
        )
        (root / "mer-tooling-chroot").write_text("#!/bin/sh\n")
        return root

    return _make


@pytest.fixture
def make_target(sdk_config: SdkConfig, scratchbox: FakeScratchbox):
    """Create a registered target bound to a tooling."""

    def _make(name: str, tooling: str) -> Path:
        root = sdk_config.targets_root / name
        (root / "etc").mkdir(parents=True)
        scratchbox.register(name, root, sdk_config.toolings_root / tooling)
        return root

    return _make


@pytest.fixture
def no_network(monkeypatch):
    """Disable network access for tests."""
    import socket

    def guard(*args, **kwargs):
        raise RuntimeError("Network access not allowed in this test")

    monkeypatch.setattr(socket, "socket", guard)


@pytest.fixture
def rootfs_archive(tmp_path: Path):
    """Factory writing root file system archives to tmp_path/archives."""
    directory = tmp_path / "archives"
    directory.mkdir()

    def _make(name: str, release: str = "4.5.0.18", tooling: bool = False) -> Path:
        return make_rootfs_archive(directory / name, release, tooling=tooling)

    return _make
