"""Per-workspace Claude CLI session.

A WorkspaceSession bundles three independently locked parts:

- TurnTracker: at most one in-flight turn per thread, with
  ticket-checked clear/interrupt.
- PersistentChannel: the long-lived ``claude`` process in stream-json
  mode and the stdin it reads envelopes from.
- session_init_lock: serializes initialization of the persistent
  process so concurrent callers spawn it once.

Turn and channel operations never wait on the init lock.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from .channel import PersistentChannel
from .config import SessionConfig
from .environment import build_command, check_installation
from .errors import CliNotFoundError, CliStartError
from .models import ActiveTurn, WorkspaceEntry
from .process import ProcessHandle
from .turns import TurnTracker

logger = logging.getLogger(__name__)

STREAM_JSON_ARGS = (
    "--input-format", "stream-json",
    "--output-format", "stream-json",
    "--verbose",
)


class WorkspaceSession:
    """Session state for one workspace.

    Construct through spawn_workspace_session(), which verifies the
    CLI first. The persistent process is started either by
    ensure_persistent_session() or by the caller, who then hands the
    pieces over with set_stdin()/set_persistent_child().
    """

    def __init__(
        self,
        entry: WorkspaceEntry,
        claude_bin: str | None = None,
        *,
        version: str | None = None,
        config: SessionConfig | None = None,
    ) -> None:
        self.entry = entry
        self.claude_bin = claude_bin
        self.version = version
        self.config = config or SessionConfig()
        self.turns = TurnTracker()
        self.channel = PersistentChannel(entry.id)
        self.session_init_lock = asyncio.Lock()

    # ── Turns ──────────────────────────────────────────────────

    async def track_turn(
        self,
        thread_id: str,
        turn_id: str,
        process: ProcessHandle,
    ) -> None:
        await self.turns.register(thread_id, turn_id, process)

    async def clear_turn(self, thread_id: str, turn_id: str) -> None:
        await self.turns.clear(thread_id, turn_id)

    async def interrupt_turn(self, thread_id: str, turn_id: str) -> None:
        await self.turns.interrupt(thread_id, turn_id)

    async def active_turn(self, thread_id: str) -> ActiveTurn | None:
        return await self.turns.get(thread_id)

    # ── Persistent channel ─────────────────────────────────────

    async def set_stdin(self, stream: Any) -> None:
        """Hand over stdin of an externally spawned persistent process."""
        await self.channel.attach_stream(stream)

    async def set_persistent_child(self, process: ProcessHandle) -> None:
        """Hand over an externally spawned persistent process."""
        await self.channel.attach_process(process)

    async def has_persistent_session(self) -> bool:
        return await self.channel.has_active_channel()

    async def send_message(self, message: str) -> None:
        """Send a new user message to the persistent session."""
        await self.channel.send_message(message)

    async def send_response(self, tool_use_id: str, result: Any) -> None:
        """Answer a tool_use request (e.g. AskUserQuestion) mid-turn."""
        await self.channel.send_response(tool_use_id, result)

    async def read_event(self) -> dict[str, Any] | None:
        return await self.channel.read_event()

    async def kill_persistent_session(self) -> None:
        await self.channel.shutdown()

    async def ensure_persistent_session(
        self,
        extra_args: list[str] | None = None,
    ) -> bool:
        """Start the persistent stream-json process unless one is running.

        Returns True when a process was spawned, False when a live one
        was reused. A process that exited on its own is discarded and
        replaced.
        """
        async with self.session_init_lock:
            state = await self.channel.state()
            if state.connected:
                if state.process is None or state.process.returncode is None:
                    return False
                logger.info(
                    "Persistent process for %s exited (rc=%s); respawning",
                    self.entry.id, state.process.returncode,
                )
                await self.channel.shutdown()

            command = build_command(
                self.claude_bin,
                *STREAM_JSON_ARGS,
                *self.config.persistent_args,
                *(extra_args or []),
            )
            try:
                process = await ProcessHandle.spawn(
                    command.argv, env=command.env, cwd=self.entry.path,
                )
            except FileNotFoundError:
                raise CliNotFoundError(command.binary) from None
            except OSError as exc:
                raise CliStartError(command.binary, str(exc)) from exc
            await self.channel.attach(process)
            return True

    async def close(self) -> None:
        """Interrupt every tracked turn and stop the persistent process.

        Both steps run even if the first fails; the first error is
        re-raised and a later one is only logged.
        """
        first_error: OSError | None = None
        try:
            await self.turns.interrupt_all()
        except OSError as exc:
            first_error = exc
        try:
            await self.channel.shutdown()
        except OSError as exc:
            if first_error is None:
                raise
            logger.warning(
                "Failed to stop persistent process for %s: %s",
                self.entry.id, exc,
            )
        if first_error is not None:
            raise first_error

    async def __aenter__(self) -> WorkspaceSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def __repr__(self) -> str:
        return (
            f"WorkspaceSession(workspace={self.entry.id!r}, "
            f"claude_bin={self.claude_bin!r}, turns={len(self.turns)})"
        )


def resolve_claude_bin(
    entry: WorkspaceEntry,
    default_claude_bin: str | None = None,
) -> str | None:
    """Workspace override when non-blank, else the default."""
    if entry.claude_bin and entry.claude_bin.strip():
        return entry.claude_bin
    if default_claude_bin and default_claude_bin.strip():
        return default_claude_bin
    return None


async def spawn_workspace_session(
    entry: WorkspaceEntry,
    default_claude_bin: str | None = None,
    *,
    config: SessionConfig | None = None,
) -> WorkspaceSession:
    """Verify the CLI for entry and build its session.

    Installation errors (not found, not runnable, timeout, non-zero
    exit) propagate and no session is created. Concurrent calls for the
    same entry each run the installation check and return separate
    sessions; callers that share one session per workspace must
    serialize construction themselves.
    """
    config = config or SessionConfig()
    claude_bin = resolve_claude_bin(entry, default_claude_bin or config.claude_bin)
    version = await check_installation(
        claude_bin, timeout=config.version_timeout_seconds,
    )
    logger.info(
        "Workspace session ready: %s (claude %s, bin=%s)",
        entry.id, version or "unknown", claude_bin or "claude",
    )
    return WorkspaceSession(entry, claude_bin, version=version, config=config)
