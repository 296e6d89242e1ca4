"""Workspace sessions for the Claude CLI: persistent process, turns, interrupts."""
from .models import ActiveTurn, WorkspaceEntry, WorkspaceKind, new_turn_id
from .config import SessionConfig
from .errors import (
    CliInstallationError,
    CliNotFoundError,
    CliStartError,
    CliTimeoutError,
    NoActiveChannelError,
    WorkspaceSessionError,
)

__all__ = [
    # Session (lazy import)
    "WorkspaceSession",
    "spawn_workspace_session",
    "TurnTracker",
    "PersistentChannel",
    "ProcessHandle",
    # Models
    "ActiveTurn",
    "WorkspaceEntry",
    "WorkspaceKind",
    "new_turn_id",
    # Config
    "SessionConfig",
    "WorkspacesConfig",
    "load_yaml_config",
    # Environment (lazy import)
    "build_path_env",
    "build_command",
    "check_installation",
    # Errors
    "CliInstallationError",
    "CliNotFoundError",
    "CliStartError",
    "CliTimeoutError",
    "NoActiveChannelError",
    "WorkspaceSessionError",
]


def __getattr__(name: str):
    if name in ("WorkspaceSession", "spawn_workspace_session"):
        from . import session
        return getattr(session, name)
    if name == "TurnTracker":
        from .turns import TurnTracker
        return TurnTracker
    if name == "PersistentChannel":
        from .channel import PersistentChannel
        return PersistentChannel
    if name == "ProcessHandle":
        from .process import ProcessHandle
        return ProcessHandle
    if name in ("WorkspacesConfig", "load_yaml_config"):
        from . import yaml_config
        return getattr(yaml_config, name)
    if name in ("build_path_env", "build_command", "check_installation"):
        from . import environment
        return getattr(environment, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
