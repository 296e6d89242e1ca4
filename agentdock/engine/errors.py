"""Exception hierarchy for workspace sessions.

One class per failure mode. Kill races against an already-exited
process are absorbed by ProcessHandle and never surface here; other
OS-level failures during write, flush or kill propagate as OSError.
"""
from __future__ import annotations


class WorkspaceSessionError(Exception):
    """Base exception for all workspace session errors."""


class CliInstallationError(WorkspaceSessionError):
    """The Claude CLI could not be verified; session construction aborts."""
    def __init__(self, binary: str, message: str):
        self.binary = binary
        super().__init__(message)


class CliNotFoundError(CliInstallationError):
    """Binary missing from the resolved PATH."""
    def __init__(self, binary: str):
        super().__init__(
            binary,
            "Claude Code CLI not found. Install Claude Code and ensure "
            f"`{binary}` is on your PATH.",
        )


class CliTimeoutError(CliInstallationError):
    """`claude --version` exceeded its deadline."""
    def __init__(self, binary: str, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        super().__init__(
            binary,
            "Timed out while checking Claude Code CLI. Make sure "
            f"`{binary} --version` runs in Terminal.",
        )


class CliStartError(CliInstallationError):
    """The binary exists but could not be run or exited non-zero."""
    def __init__(self, binary: str, detail: str = ""):
        self.detail = detail
        if detail:
            message = (
                f"Claude Code CLI failed to start: {detail}. "
                f"Try running `{binary} --version` in Terminal."
            )
        else:
            message = (
                "Claude Code CLI failed to start. "
                f"Try running `{binary} --version` in Terminal."
            )
        super().__init__(binary, message)


class NoActiveChannelError(WorkspaceSessionError):
    """A message was sent before a persistent stream was attached."""
    def __init__(self, workspace_id: str | None = None):
        self.workspace_id = workspace_id
        suffix = f" for workspace {workspace_id}" if workspace_id else ""
        super().__init__(
            "No stdin available - persistent session not established"
            + suffix
        )
