"""Line-delimited JSON channel to the persistent Claude CLI process.

The CLI runs with ``--input-format stream-json`` and reads one JSON
envelope per stdin line. Stream and process handle live in one state
object behind one lock, so readers never see a torn connection and
shutdown clears both together. Writes are serialized by a separate
lock that is never held while the state lock is waited on, so a send
stuck on a full pipe cannot block shutdown.
"""
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

from .errors import NoActiveChannelError
from .process import ProcessHandle

logger = logging.getLogger(__name__)

FLUSH_TIMEOUT_SECONDS = 1.0


def build_user_message(text: str) -> dict[str, Any]:
    """Envelope for a new user message.

    {"type":"user","message":{"role":"user","content":"..."}}
    """
    return {
        "type": "user",
        "message": {
            "role": "user",
            "content": text,
        },
    }


def build_tool_result(tool_use_id: str, result: Any) -> dict[str, Any]:
    """Envelope answering a mid-turn tool_use request (e.g. AskUserQuestion).

    {"type":"user","message":{"role":"user","content":[
        {"type":"tool_result","tool_use_id":"toolu_...","content":...}]}}
    """
    return {
        "type": "user",
        "message": {
            "role": "user",
            "content": [{
                "type": "tool_result",
                "tool_use_id": tool_use_id,
                "content": result,
            }],
        },
    }


def encode_envelope(envelope: dict[str, Any]) -> bytes:
    """Serialize to one compact JSON line terminated by a newline."""
    line = json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)
    return (line + "\n").encode("utf-8")


@dataclass(frozen=True)
class ChannelState:
    """Snapshot of the persistent connection.

    stream is the process stdin (write/drain/close); reader is its
    stdout when the channel was attached from a process.
    """
    stream: Any = None
    process: ProcessHandle | None = None
    reader: Any = None

    @property
    def connected(self) -> bool:
        return self.stream is not None


DISCONNECTED = ChannelState()


class PersistentChannel:
    """Owns the persistent process and the stdin stream it reads."""

    def __init__(
        self,
        name: str = "",
        *,
        flush_timeout: float = FLUSH_TIMEOUT_SECONDS,
    ) -> None:
        self._name = name
        self._flush_timeout = flush_timeout
        self._state = DISCONNECTED
        self._lock = asyncio.Lock()
        self._write_lock = asyncio.Lock()
        self._read_lock = asyncio.Lock()

    async def attach(self, process: ProcessHandle) -> None:
        """Install a freshly spawned process and its pipes in one step."""
        async with self._lock:
            self._state = ChannelState(
                stream=process.stdin,
                process=process,
                reader=process.stdout,
            )
        logger.info(
            "Persistent channel attached for %s (pid=%s)",
            self._name or "<unnamed>", process.pid,
        )

    async def attach_stream(self, stream: Any) -> None:
        """Install the stdin stream, replacing any previous one."""
        async with self._lock:
            self._state = ChannelState(
                stream=stream,
                process=self._state.process,
                reader=self._state.reader,
            )

    async def attach_process(self, process: ProcessHandle) -> None:
        """Install the process handle, replacing any previous one."""
        async with self._lock:
            self._state = ChannelState(
                stream=self._state.stream,
                process=process,
                reader=process.stdout or self._state.reader,
            )

    async def has_active_channel(self) -> bool:
        async with self._lock:
            return self._state.connected

    async def state(self) -> ChannelState:
        async with self._lock:
            return self._state

    async def send_message(self, text: str) -> None:
        """Write a user message envelope to the persistent process."""
        await self._write(build_user_message(text))

    async def send_response(self, tool_use_id: str, result: Any) -> None:
        """Write a tool_result envelope answering a pending tool_use."""
        await self._write(build_tool_result(tool_use_id, result))

    async def _write(self, envelope: dict[str, Any]) -> None:
        payload = encode_envelope(envelope)
        async with self._write_lock:
            async with self._lock:
                stream = self._state.stream
            if stream is None:
                raise NoActiveChannelError(self._name or None)
            # One write per envelope; drain surfaces broken pipes.
            stream.write(payload)
            await stream.drain()

    async def read_event(self) -> dict[str, Any] | None:
        """Read the next JSON object from the process stdout.

        Lines that are not JSON objects are skipped. Returns None at
        EOF or when no reader is attached.
        """
        async with self._read_lock:
            async with self._lock:
                reader = self._state.reader
            if reader is None:
                return None
            while True:
                line = await reader.readline()
                if not line:
                    return None
                try:
                    event = json.loads(line.decode("utf-8", errors="replace"))
                except json.JSONDecodeError:
                    logger.debug("Skipping non-JSON line from claude stdout")
                    continue
                if isinstance(event, dict):
                    return event

    async def shutdown(self) -> None:
        """Flush, kill and forget the persistent process.

        The channel is disconnected even when the kill fails; the
        kill error is re-raised afterwards.
        """
        async with self._lock:
            state = self._state
            self._state = DISCONNECTED
        if not state.connected and state.process is None:
            return

        if state.stream is not None:
            await self._flush(state.stream)
            state.stream.close()

        if state.process is not None:
            await state.process.kill()
            logger.info(
                "Persistent channel stopped for %s (pid=%s)",
                self._name or "<unnamed>", state.process.pid,
            )

    async def _flush(self, stream: Any) -> None:
        """Best-effort drain before teardown, bounded by flush_timeout."""
        if self._write_lock.locked():
            # An in-flight send is already draining this stream.
            return
        try:
            await asyncio.wait_for(stream.drain(), timeout=self._flush_timeout)
        except asyncio.TimeoutError:
            logger.debug(
                "stdin flush did not finish within %.1fs on shutdown",
                self._flush_timeout,
            )
        except (ConnectionError, OSError) as exc:
            # Process is being torn down regardless.
            logger.debug("Ignoring stdin flush error on shutdown: %s", exc)
