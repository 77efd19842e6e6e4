import io
from pathlib import Path

import pytest

from models import ExecutionContext
from zfs_errors import ZfsCommandError
from zfs_runner import CommandRunner, ZfsCommandBuilder


def test_builder_collects_flags_and_options() -> None:
    parts = (ZfsCommandBuilder("create").create_parents()
             .option("compression", "lz4").option("quota", None)
             .force(False).target("tank/a").build())
    assert parts == ["create", "-p", "-o", "compression=lz4", "tank/a"]


def test_builder_depth_option() -> None:
    assert ZfsCommandBuilder("list").type("snapshot").depth(1).target("tank/fs").build() == [
        "list", "-t", "snapshot", "-d", "1", "tank/fs",
    ]
    assert ZfsCommandBuilder("list").depth(None).build() == ["list"]


def test_builder_rejects_empty_action() -> None:
    with pytest.raises(ValueError):
        ZfsCommandBuilder("")


def test_build_prepends_binary_and_sudo() -> None:
    assert CommandRunner(ExecutionContext(binary="/sbin/zfs")).build(["list"]) == ["/sbin/zfs", "list"]
    runner = CommandRunner(ExecutionContext(binary="zfs", sudo=True))
    assert runner.build(ZfsCommandBuilder("list").script()) == ["sudo", "zfs", "list", "-H"]


def test_run_missing_binary_reports_failure(tmp_path: Path) -> None:
    runner = CommandRunner(ExecutionContext(binary=str(tmp_path / "no-such-zfs")))
    returncode, stdout, stderr, parts = runner.run(["list"])
    assert returncode == -1
    assert stdout == ""
    assert "Command not found" in stderr
    assert parts == [str(tmp_path / "no-such-zfs"), "list"]


def test_start_missing_binary_raises(tmp_path: Path) -> None:
    runner = CommandRunner(ExecutionContext(binary=str(tmp_path / "no-such-zfs")))
    with pytest.raises(ZfsCommandError):
        runner.start(["send", "tank/a@s1"], io.BytesIO())


def test_run_captures_output(fake_zfs) -> None:
    returncode, stdout, stderr, _parts = fake_zfs.runner.run(["list", "-H", "tank/a"])
    assert returncode == 0
    assert stdout == "tank/a\n"
    assert stderr == ""


def test_start_pumps_into_object_without_fileno(fake_zfs) -> None:
    sink = io.BytesIO()
    running = fake_zfs.runner.start(["send", "tank/a@s1"], sink)
    assert running.read_diagnostics() == ""
    assert running.wait() == 0
    assert sink.getvalue() == b"STREAM-DATA"


def test_start_hands_file_descriptor_to_process(fake_zfs, tmp_path: Path) -> None:
    fake_zfs.env.setenv("FAKE_ZFS_SEND_STDERR", "oops\n")
    out = tmp_path / "stream.bin"
    with open(out, "wb") as sink:
        running = fake_zfs.runner.start(["send", "tank/a@s1"], sink)
        assert running.read_diagnostics() == "oops\n"
        assert running.wait() == 0
    assert out.read_bytes() == b"STREAM-DATA"
