from __future__ import annotations

import io
import stat
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

from models import ExecutionContext
from zfs_runner import CommandRunner

PROGRESS_LINES = (
    "full a@c 1075819232\n"
    "size 1075819233\n"
    "15:39:14 1228816 a@c\n"
    "15:39:15 2279888 a@c\n"
)


class FakeRunningCommand:
    def __init__(self, command_parts, stderr_text: str = "", returncode: int = 0, stdin=None):
        self.command_parts = command_parts
        self.diagnostics = io.BytesIO(stderr_text.encode("utf-8"))
        self.stdin = stdin
        self.returncode = returncode
        self.process = SimpleNamespace(pid=4242)
        self.terminated = False

    def wait(self, timeout=None) -> int:
        return self.returncode

    def read_diagnostics(self) -> str:
        return self.diagnostics.read().decode("utf-8")

    def terminate(self) -> None:
        self.terminated = True


class FakeRunner(CommandRunner):
    """
    Scripted stand-in for CommandRunner.

    ``run_results`` are (returncode, stdout, stderr) tuples handed out in
    order; the ``send_*`` arguments describe what start() produces.
    """

    def __init__(self, run_results=None, *, send_stdout: bytes = b"", send_stderr: str = "",
                 send_returncode: int = 0, context: ExecutionContext | None = None) -> None:
        super().__init__(context or ExecutionContext(binary="zfs"))
        self.run_results = list(run_results or [])
        self.send_stdout = send_stdout
        self.send_stderr = send_stderr
        self.send_returncode = send_returncode
        self.calls: list[list[str]] = []
        self.started: list[FakeRunningCommand] = []

    def run(self, args, input_data=None):
        parts = self.build(args)
        self.calls.append(parts)
        if not self.run_results:
            raise AssertionError(f"unexpected command: {parts}")
        returncode, stdout, stderr = self.run_results.pop(0)
        return returncode, stdout, stderr, parts

    def start(self, args, sink):
        parts = self.build(args)
        self.calls.append(parts)
        sink.write(self.send_stdout)
        running = FakeRunningCommand(parts, self.send_stderr, self.send_returncode)
        self.started.append(running)
        return running


def zfs_get_dump(*rows: tuple[str, str, str, str]) -> str:
    return "".join("\t".join(row) + "\n" for row in rows)


FAKE_ZFS_SOURCE = '''\
import os
import sys

args = sys.argv[1:]
missing = [n for n in os.environ.get("FAKE_ZFS_MISSING", "").split(",") if n]

if args[0] == "list":
    name = args[-1]
    if name in missing:
        sys.stderr.write("cannot open '%s': dataset does not exist\\n" % name)
        sys.exit(1)
    print(name)
    sys.exit(0)

if args[0] == "send":
    sys.stdout.buffer.write(os.environ.get("FAKE_ZFS_PAYLOAD", "STREAM-DATA").encode())
    sys.stdout.flush()
    sys.stderr.write(os.environ.get("FAKE_ZFS_SEND_STDERR", ""))
    sys.stderr.flush()
    with open(os.environ["FAKE_ZFS_ARGS_LOG"], "a") as log:
        log.write(" ".join(args) + "\\n")
    sys.exit(int(os.environ.get("FAKE_ZFS_EXIT", "0")))

if args[0] == "receive":
    data = sys.stdin.buffer.read()
    with open(os.environ["FAKE_ZFS_RECEIVED"], "wb") as out:
        out.write(data)
    sys.stderr.write(os.environ.get("FAKE_ZFS_RECEIVE_STDERR", ""))
    sys.exit(int(os.environ.get("FAKE_ZFS_RECEIVE_EXIT", "0")))

sys.exit(0)
'''


@pytest.fixture()
def fake_zfs(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> SimpleNamespace:
    """An executable that behaves like the parts of zfs a transfer touches."""
    script = tmp_path / "zfs"
    script.write_text(f"#!{sys.executable}\n{FAKE_ZFS_SOURCE}", encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    args_log = tmp_path / "send-args.log"
    received = tmp_path / "received.bin"
    for var in ("FAKE_ZFS_MISSING", "FAKE_ZFS_SEND_STDERR", "FAKE_ZFS_EXIT",
                "FAKE_ZFS_RECEIVE_STDERR", "FAKE_ZFS_RECEIVE_EXIT", "FAKE_ZFS_PAYLOAD"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("FAKE_ZFS_ARGS_LOG", str(args_log))
    monkeypatch.setenv("FAKE_ZFS_RECEIVED", str(received))

    return SimpleNamespace(
        runner=CommandRunner(ExecutionContext(binary=str(script), timeout=30)),
        path=script,
        args_log=args_log,
        received=received,
        env=monkeypatch,
    )
