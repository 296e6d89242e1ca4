"""Core data models for workspace sessions.

Dataclasses and enums shared by the tracker, channel and session.
Single source of truth to avoid circular imports.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .process import ProcessHandle


class WorkspaceKind(str, Enum):
    """Whether a workspace is a primary checkout or a git worktree."""
    MAIN = "main"
    WORKTREE = "worktree"

    def is_worktree(self) -> bool:
        return self is WorkspaceKind.WORKTREE


def new_turn_id() -> str:
    """Return a fresh turn ticket."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class WorkspaceEntry:
    """Static descriptor of a workspace.

    claude_bin overrides the default binary for this workspace when
    set to a non-blank value.
    """
    id: str
    name: str
    path: str
    kind: WorkspaceKind = WorkspaceKind.MAIN
    parent_id: str | None = None
    claude_bin: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WorkspaceEntry:
        path = str(data["path"])
        return cls(
            id=str(data.get("id") or path),
            name=str(data.get("name") or data.get("id") or path),
            path=path,
            kind=WorkspaceKind(data.get("kind", WorkspaceKind.MAIN.value)),
            parent_id=data.get("parent_id"),
            claude_bin=data.get("claude_bin"),
        )


@dataclass
class ActiveTurn:
    """The in-flight turn on one thread.

    turn_id distinguishes successive turns on the same thread so a
    late interrupt for a finished turn cannot kill its replacement.
    """
    turn_id: str
    process: ProcessHandle
