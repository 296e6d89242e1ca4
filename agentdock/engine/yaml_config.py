"""YAML workspace configuration loader.

Example YAML:
    engine:
      claude_bin: /opt/homebrew/bin/claude
      version_timeout_seconds: 5
      persistent_args: [--model, sonnet]

    workspaces:
      - id: app
        name: App
        path: ~/src/app
      - id: app-feature
        name: App (feature worktree)
        path: ~/src/app-worktrees/feature
        kind: worktree
        parent_id: app
        claude_bin: ~/.local/bin/claude

Relative workspace paths resolve against the YAML file's directory;
``~`` and ``$VARS`` are expanded in paths and binaries.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .config import SessionConfig
from .models import WorkspaceEntry

logger = logging.getLogger(__name__)


@dataclass
class WorkspacesConfig:
    """Complete parsed YAML configuration."""
    engine: SessionConfig
    workspaces: dict[str, WorkspaceEntry] = field(default_factory=dict)

    def get(self, workspace_id: str) -> WorkspaceEntry:
        try:
            return self.workspaces[workspace_id]
        except KeyError:
            available = ", ".join(sorted(self.workspaces)) or "none"
            raise KeyError(
                f"Unknown workspace '{workspace_id}'. Available: {available}"
            ) from None

    def parent_path(self, entry: WorkspaceEntry) -> str | None:
        """Path of entry's parent workspace, if it is configured."""
        if not entry.parent_id:
            return None
        parent = self.workspaces.get(entry.parent_id)
        return parent.path if parent else None


def _expand(value: str | None, base_dir: Path | None = None) -> str | None:
    if value is None or not str(value).strip():
        return None
    expanded = os.path.expandvars(os.path.expanduser(str(value).strip()))
    if base_dir is not None and not os.path.isabs(expanded):
        expanded = str((base_dir / expanded).resolve())
    return expanded


def load_yaml_config(
    path: str | Path,
    base: SessionConfig | None = None,
) -> WorkspacesConfig:
    """Load and parse a workspaces YAML file.

    Values in the ``engine`` section override *base* (typically
    SessionConfig.from_env()).
    """
    path = Path(path)
    logger.info(
        "load_yaml_config: loading %s (exists=%s)", path, path.exists()
    )
    try:
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error(
            "load_yaml_config: config file not found at %s (absolute path: %s)",
            path, path.absolute()
        )
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    base = base or SessionConfig()
    engine_raw = raw.get("engine") or {}
    engine = SessionConfig(
        claude_bin=_expand(engine_raw.get("claude_bin")) or base.claude_bin,
        version_timeout_seconds=float(engine_raw.get(
            "version_timeout_seconds", base.version_timeout_seconds
        )),
        persistent_args=[
            str(arg) for arg in engine_raw.get(
                "persistent_args", base.persistent_args
            )
        ],
        log_level=engine_raw.get("log_level", base.log_level),
    )

    workspaces: dict[str, WorkspaceEntry] = {}
    for item in raw.get("workspaces") or []:
        if not isinstance(item, dict) or not item.get("path"):
            logger.warning("load_yaml_config: skipping workspace without path: %r", item)
            continue
        item = dict(item)
        item["path"] = _expand(item["path"], path.parent)
        item["claude_bin"] = _expand(item.get("claude_bin"))
        entry = WorkspaceEntry.from_dict(item)
        if entry.id in workspaces:
            logger.warning(
                "load_yaml_config: duplicate workspace id %s, keeping the last",
                entry.id,
            )
        workspaces[entry.id] = entry

    logger.info(
        "Parsed YAML config %s: %d workspace(s)", path.name, len(workspaces),
    )
    return WorkspacesConfig(engine=engine, workspaces=workspaces)
