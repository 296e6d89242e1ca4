from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from agentdock.engine.config import SessionConfig
from agentdock.engine.models import WorkspaceKind
from agentdock.engine.yaml_config import load_yaml_config


def _write(path: Path, data: dict) -> Path:
    path.write_text(yaml.safe_dump(data))
    return path


def test_load_workspaces_and_engine_overrides(tmp_path: Path) -> None:
    cfg_path = _write(tmp_path / "agentdock.yaml", {
        "engine": {
            "claude_bin": "/opt/claude/bin/claude",
            "version_timeout_seconds": 2,
            "persistent_args": ["--model", "sonnet"],
        },
        "workspaces": [
            {"id": "app", "name": "App", "path": "app"},
            {
                "id": "app-wt",
                "path": "/abs/wt",
                "kind": "worktree",
                "parent_id": "app",
                "claude_bin": "  ",
            },
        ],
    })

    config = load_yaml_config(cfg_path)

    assert config.engine.claude_bin == "/opt/claude/bin/claude"
    assert config.engine.version_timeout_seconds == 2.0
    assert config.engine.persistent_args == ["--model", "sonnet"]
    app = config.get("app")
    assert app.path == str((tmp_path / "app").resolve())
    assert app.kind is WorkspaceKind.MAIN
    wt = config.get("app-wt")
    assert wt.kind.is_worktree()
    assert wt.name == "app-wt"
    assert wt.claude_bin is None
    assert config.parent_path(wt) == app.path
    assert config.parent_path(app) is None


def test_engine_section_falls_back_to_base(tmp_path: Path) -> None:
    cfg_path = _write(tmp_path / "agentdock.yaml", {"workspaces": []})
    base = SessionConfig(claude_bin="/env/claude", version_timeout_seconds=9.0)

    config = load_yaml_config(cfg_path, base)

    assert config.engine.claude_bin == "/env/claude"
    assert config.engine.version_timeout_seconds == 9.0
    assert config.workspaces == {}


def test_unknown_workspace_lists_available(tmp_path: Path) -> None:
    cfg_path = _write(tmp_path / "agentdock.yaml", {
        "workspaces": [{"id": "app", "path": "/a"}],
    })
    config = load_yaml_config(cfg_path)

    with pytest.raises(KeyError, match="Available: app"):
        config.get("missing")


def test_workspace_without_path_is_skipped(tmp_path: Path) -> None:
    cfg_path = _write(tmp_path / "agentdock.yaml", {
        "workspaces": [{"id": "broken"}, {"id": "ok", "path": "/ok"}],
    })

    config = load_yaml_config(cfg_path)

    assert list(config.workspaces) == ["ok"]


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_yaml_config(tmp_path / "nope.yaml")


def test_session_config_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AGENTDOCK_CLAUDE_BIN", " /usr/local/bin/claude ")
    monkeypatch.setenv("AGENTDOCK_VERSION_TIMEOUT", "1.5")
    monkeypatch.setenv("AGENTDOCK_PERSISTENT_ARGS", "--model opus")

    config = SessionConfig.from_env()

    assert config.claude_bin == "/usr/local/bin/claude"
    assert config.version_timeout_seconds == 1.5
    assert config.persistent_args == ["--model", "opus"]


def test_session_config_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for var in (
        "AGENTDOCK_CLAUDE_BIN",
        "AGENTDOCK_VERSION_TIMEOUT",
        "AGENTDOCK_PERSISTENT_ARGS",
        "AGENTDOCK_LOG_LEVEL",
    ):
        monkeypatch.delenv(var, raising=False)

    config = SessionConfig.from_env()

    assert config.claude_bin is None
    assert config.version_timeout_seconds == 5.0
    assert config.persistent_args == []
    assert config.log_level == "INFO"
