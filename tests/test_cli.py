from __future__ import annotations

import json
import stat
from pathlib import Path

import pytest
import yaml

from agentdock.engine.cli import main

_FAKE_CLAUDE = """#!/bin/sh
if [ "$1" = "--version" ]; then
  echo "2.1.0 (Claude Code)"
  exit 0
fi
echo '{"type":"system","subtype":"init"}'
while IFS= read -r line; do
  echo '{"type":"result","subtype":"success","is_error":false,"result":"done"}'
done
"""


@pytest.fixture
def fake_claude(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    script = tmp_path / "claude"
    script.write_text(_FAKE_CLAUDE)
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    monkeypatch.setenv("AGENTDOCK_CLAUDE_BIN", str(script))
    return script


def test_path_command_prints_augmented_path(
    capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("AGENTDOCK_CLAUDE_BIN", raising=False)
    monkeypatch.setenv("PATH", "/usr/bin")
    monkeypatch.setenv("HOME", "/home/u")

    main(["path"])

    out = capsys.readouterr().out.strip().split(":")
    assert out[0] == "/usr/bin"
    assert "/home/u/.local/bin" in out


def test_check_command_prints_version(
    fake_claude: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    main(["check"])

    assert capsys.readouterr().out.strip() == "2.1.0 (Claude Code)"


def test_check_command_reports_missing_cli(
    tmp_path: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["check", "--claude-bin", str(tmp_path / "none" / "claude")])

    assert excinfo.value.code == 1
    assert capsys.readouterr().out.startswith("Error: Claude Code CLI not found")


def test_send_command_prints_events_until_result(
    fake_claude: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    ws = tmp_path / "ws"
    ws.mkdir()

    with pytest.raises(SystemExit) as excinfo:
        main(["send", "--cwd", str(ws), "hello"])

    assert excinfo.value.code == 0
    events = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [e["type"] for e in events] == ["system", "result"]
    assert events[-1]["result"] == "done"


def test_home_command_uses_worktree_parent(
    tmp_path: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    (tmp_path / "main" / ".claude").mkdir(parents=True)
    (tmp_path / "wt").mkdir()
    cfg = tmp_path / "agentdock.yaml"
    cfg.write_text(yaml.safe_dump({
        "workspaces": [
            {"id": "main", "path": "main"},
            {"id": "wt", "path": "wt", "kind": "worktree", "parent_id": "main"},
        ],
    }))

    main(["home", "--config", str(cfg), "--workspace", "wt"])

    assert capsys.readouterr().out.strip() == str((tmp_path / "main" / ".claude").resolve())


def test_workspace_requires_config() -> None:
    with pytest.raises(SystemExit, match="--workspace requires --config"):
        main(["home", "--workspace", "wt"])


def test_check_command_reports_unrunnable_cli(
    tmp_path: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    binary = tmp_path / "claude"
    binary.write_text(_FAKE_CLAUDE)
    binary.chmod(0o644)

    with pytest.raises(SystemExit) as excinfo:
        main(["check", "--claude-bin", str(binary)])

    assert excinfo.value.code == 1
    assert capsys.readouterr().out.startswith("Error: Claude Code CLI failed to start")


def test_missing_config_file_reports_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["home", "--config", str(tmp_path / "missing.yaml"), "--workspace", "wt"])

    assert excinfo.value.code == 1
    assert capsys.readouterr().out.startswith("Error: ")


def test_invalid_config_file_reports_error(
    tmp_path: Path, capsys: pytest.CaptureFixture[str],
) -> None:
    cfg = tmp_path / "agentdock.yaml"
    cfg.write_text("workspaces: [unclosed\n")

    with pytest.raises(SystemExit) as excinfo:
        main(["home", "--config", str(cfg)])

    assert excinfo.value.code == 1
    assert capsys.readouterr().out.startswith("Error: ")
