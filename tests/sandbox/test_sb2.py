"""
Tests for the scratchbox2 wrapper.
"""

from pathlib import Path

import pytest

from sdkmanage.sandbox.sb2 import Sandbox, parse_sb2_config


@pytest.fixture
def sandbox(sdk_config, runner, scratchbox):
    return Sandbox(sdk_config.sandbox_config_dir, runner)


def test_parse_sb2_config():
    """Test quoting, export and comments."""
    text = (
        "# generated by sb2-init\n"
        'SBOX_TARGET_ROOT="/srv/mer/targets/t1"\n'
        "export SBOX_TOOLS_ROOT='/srv/mer/toolings/x'\n"
        "SBOX_CPU=qemu-arm-dynamic\n"
    )

    assert parse_sb2_config(text) == {
        "SBOX_TARGET_ROOT": "/srv/mer/targets/t1",
        "SBOX_TOOLS_ROOT": "/srv/mer/toolings/x",
        "SBOX_CPU": "qemu-arm-dynamic",
    }


class TestSandbox:
    """Test Sandbox queries and commands."""

    def test_unregistered(self, sandbox):
        assert not sandbox.is_registered("t1")
        assert sandbox.read_config("t1") == {}
        assert sandbox.tools_root("t1") is None
        assert sandbox.list_targets() == []

    def test_init_and_query(self, sandbox, runner, tmp_path):
        """Test sb2-init runs in the target root and registers the target."""
        root = tmp_path / "targets" / "t1"
        root.mkdir(parents=True)

        sandbox.init_target(
            "t1", root, tmp_path / "toolings" / "x", "/opt/cross/bin/gcc", "/qemu"
        )

        argv = runner.commands("sb2-init")[0]
        assert argv[argv.index("-c") + 1] == "/qemu"
        assert argv[-2:] == ["t1", "/opt/cross/bin/gcc"]
        assert sandbox.is_registered("t1")
        assert sandbox.list_targets() == ["t1"]
        assert sandbox.target_root("t1") == root
        assert sandbox.tools_root("t1") == tmp_path / "toolings" / "x"

    def test_init_without_emulator(self, sandbox, runner, tmp_path):
        sandbox.init_target("t1", tmp_path, tmp_path / "x", "gcc")

        assert "-c" not in runner.commands("sb2-init")[0]

    def test_remove(self, sandbox, scratchbox, tmp_path):
        scratchbox.register("t1", tmp_path, tmp_path)

        sandbox.remove_target("t1")

        assert not sandbox.is_registered("t1")
        assert sandbox.config_dir.is_dir()

    def test_run(self, sandbox, runner):
        runner.answer("sb2", "hello\n")

        sandbox.run("t1", ["echo", Path("hello")], capture=True)

        assert runner.commands("sb2")[0] == [
            "sb2",
            "-t",
            "t1",
            "-m",
            "sdk-install",
            "-R",
            "echo",
            "hello",
        ]
