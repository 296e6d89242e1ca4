"""Per-thread tracking of in-flight turns.

At most one turn is active per thread. Every mutation holds the
mapping lock; killing a turn's process happens after that lock is
released, under the process handle's own lock, so a slow kill never
stalls registration on other threads.
"""
from __future__ import annotations

import asyncio
import logging

from .models import ActiveTurn
from .process import ProcessHandle

logger = logging.getLogger(__name__)


class TurnTracker:
    """Mapping of thread_id -> ActiveTurn with ticket-checked removal."""

    def __init__(self) -> None:
        self._turns: dict[str, ActiveTurn] = {}
        self._lock = asyncio.Lock()

    async def register(
        self,
        thread_id: str,
        turn_id: str,
        process: ProcessHandle,
    ) -> None:
        """Track a turn, replacing whatever was tracked for the thread.

        The replaced turn's process is left alone; callers decide
        whether it should be interrupted first.
        """
        async with self._lock:
            previous = self._turns.get(thread_id)
            self._turns[thread_id] = ActiveTurn(turn_id=turn_id, process=process)
        if previous is not None and previous.turn_id != turn_id:
            logger.debug(
                "Thread %s: turn %s replaced by %s",
                thread_id, previous.turn_id, turn_id,
            )

    async def clear(self, thread_id: str, turn_id: str) -> None:
        """Forget a finished turn, unless it was already replaced."""
        async with self._lock:
            active = self._turns.get(thread_id)
            if active is not None and active.turn_id == turn_id:
                del self._turns[thread_id]

    async def interrupt(self, thread_id: str, turn_id: str) -> None:
        """Kill the process of turn_id if it is still the thread's turn.

        No-op when the thread has no turn or a different one. The
        entry is popped and put back on mismatch inside one critical
        section, so a replacement registered concurrently is never
        dropped by a stale interrupt.
        """
        async with self._lock:
            active = self._turns.pop(thread_id, None)
            if active is None:
                return
            if active.turn_id != turn_id:
                self._turns[thread_id] = active
                logger.debug(
                    "Ignoring stale interrupt for thread %s "
                    "(requested %s, active %s)",
                    thread_id, turn_id, active.turn_id,
                )
                return
        await active.process.kill()
        logger.info("Interrupted turn %s on thread %s", turn_id, thread_id)

    async def interrupt_all(self) -> None:
        """Kill every tracked turn and empty the mapping.

        All kills are attempted; the first OSError is re-raised once
        they have run.
        """
        async with self._lock:
            turns = list(self._turns.items())
            self._turns.clear()
        errors: list[OSError] = []
        for thread_id, active in turns:
            try:
                await active.process.kill()
            except OSError as exc:
                logger.warning(
                    "Failed to kill turn %s on thread %s: %s",
                    active.turn_id, thread_id, exc,
                )
                errors.append(exc)
        if errors:
            raise errors[0]

    async def get(self, thread_id: str) -> ActiveTurn | None:
        async with self._lock:
            return self._turns.get(thread_id)

    async def active_thread_ids(self) -> list[str]:
        async with self._lock:
            return list(self._turns)

    def __len__(self) -> int:
        return len(self._turns)
