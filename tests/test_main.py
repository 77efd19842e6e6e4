import pytest

import config_manager
import main
from conftest import PROGRESS_LINES


@pytest.fixture()
def no_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_manager, "get_setting", lambda key, default=None: default)


def test_parser_send_targets_are_exclusive() -> None:
    with pytest.raises(SystemExit):
        main.build_parser().parse_args(["send", "a@c", "-o", "x", "--receive", "backup/a"])


def test_snapshot_prints_full_name(fake_zfs, no_config, capsys) -> None:
    assert main.main(["--zfs", str(fake_zfs.path), "snapshot", "tank/fs", "s1"]) == 0
    assert capsys.readouterr().out == "tank/fs@s1\n"


def test_send_to_file_with_progress(fake_zfs, no_config, tmp_path, capsys) -> None:
    fake_zfs.env.setenv("FAKE_ZFS_SEND_STDERR", PROGRESS_LINES)
    out = tmp_path / "a.zstream"

    assert main.main(["--zfs", str(fake_zfs.path), "send", "a@c", "-o", str(out), "-P"]) == 0

    assert out.read_bytes() == b"STREAM-DATA"
    err = capsys.readouterr().err
    assert "full send of a@c" in err
    assert "15:39:15 a@c" in err


def test_classified_failure_exits_non_zero(fake_zfs, no_config, tmp_path, capsys) -> None:
    fake_zfs.env.setenv("FAKE_ZFS_MISSING", "a@c")
    assert main.main(["--zfs", str(fake_zfs.path), "send", "a@c", "-o", str(tmp_path / "x")]) == 1
    assert "not-found" in capsys.readouterr().err
