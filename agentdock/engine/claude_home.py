"""Resolution of the .claude configuration directory for a workspace."""
from __future__ import annotations

import os
from pathlib import Path

from .models import WorkspaceEntry


def resolve_workspace_claude_home(
    entry: WorkspaceEntry,
    parent_path: str | None = None,
) -> Path | None:
    """Project-level .claude directory for entry, if one exists.

    Worktrees share their parent checkout's settings, so the parent's
    .claude wins when present.
    """
    if entry.kind.is_worktree() and parent_path:
        project_home = Path(parent_path) / ".claude"
        if project_home.is_dir():
            return project_home
    project_home = Path(entry.path) / ".claude"
    if project_home.is_dir():
        return project_home
    return None


def resolve_default_claude_home() -> Path | None:
    """User-level home: $CLAUDE_HOME, then $CODEX_HOME, then ~/.claude."""
    for var in ("CLAUDE_HOME", "CODEX_HOME"):
        value = os.environ.get(var, "").strip()
        if value:
            return Path(value)
    home = resolve_home_dir()
    if home is None:
        return None
    return home / ".claude"


def resolve_home_dir() -> Path | None:
    for var in ("HOME", "USERPROFILE"):
        value = os.environ.get(var, "")
        if value.strip():
            return Path(value)
    # App bundles launched outside a shell may lack HOME; ask the
    # password database instead.
    try:
        import pwd
    except ImportError:
        return None
    try:
        home = pwd.getpwuid(os.getuid()).pw_dir
    except KeyError:
        return None
    return Path(home) if home else None
