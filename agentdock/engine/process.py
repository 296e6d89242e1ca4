"""Independently locked handle around an OS process.

Turn processes are shared between the code driving a turn and the
tracker that may interrupt it, so every kill goes through the
handle's own lock rather than the tracker's mapping lock.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)


class ProcessHandle:
    """Shared handle to a subprocess with an exclusive kill section.

    Wraps an asyncio.subprocess.Process (or anything exposing pid,
    returncode, kill() and an awaitable wait()).
    """

    def __init__(self, process: Any) -> None:
        self._process = process
        self._lock = asyncio.Lock()

    @classmethod
    async def spawn(
        cls,
        argv: list[str],
        *,
        env: dict[str, str] | None = None,
        cwd: str | None = None,
        capture_stderr: bool = False,
    ) -> ProcessHandle:
        """Start argv with piped stdin/stdout.

        stderr is discarded unless capture_stderr is set; an unread
        stderr pipe can fill up and stall the child.
        create_subprocess_exec passes args as array, no shell.
        """
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=(
                asyncio.subprocess.PIPE if capture_stderr
                else asyncio.subprocess.DEVNULL
            ),
            env=env,
            cwd=cwd,
        )
        logger.info("Spawned %s (pid=%d)", argv[0], proc.pid)
        return cls(proc)

    @property
    def process(self) -> Any:
        return self._process

    @property
    def pid(self) -> int | None:
        return getattr(self._process, "pid", None)

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def stdin(self) -> Any:
        return getattr(self._process, "stdin", None)

    @property
    def stdout(self) -> Any:
        return getattr(self._process, "stdout", None)

    async def kill(self) -> None:
        """SIGKILL the process and reap it.

        A process that already exited counts as killed. Any other
        OSError propagates.
        """
        async with self._lock:
            if self._process.returncode is not None:
                return
            try:
                self._process.kill()
            except ProcessLookupError:
                logger.debug(
                    "Process pid=%s already exited before kill", self.pid,
                )
                return
            await self._process.wait()
            logger.info(
                "Killed process pid=%s (rc=%s)",
                self.pid, self._process.returncode,
            )

    async def wait(self) -> int:
        return await self._process.wait()

    def __repr__(self) -> str:
        return f"ProcessHandle(pid={self.pid}, returncode={self.returncode})"
