"""Claude CLI command resolution and installation check.

GUI-launched processes often inherit a minimal PATH, so the command
is run with PATH extended by the usual install locations (Homebrew,
~/.local/bin, mise shims, cargo, bun, nvm node versions).
"""
from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .errors import CliNotFoundError, CliStartError, CliTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_BINARY = "claude"
VERSION_TIMEOUT_SECONDS = 5.0

_SYSTEM_DIRS = (
    "/opt/homebrew/bin",
    "/usr/local/bin",
    "/usr/bin",
    "/bin",
    "/usr/sbin",
    "/sbin",
)
_HOME_DIRS = (
    ".local/bin",
    ".local/share/mise/shims",
    ".cargo/bin",
    ".bun/bin",
)


def _non_blank(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    return value


def _nvm_bin_dirs(home: str) -> list[str]:
    """bin/ directories of every node version installed through nvm."""
    nvm_root = Path(home) / ".nvm" / "versions" / "node"
    try:
        entries = sorted(nvm_root.iterdir())
    except OSError:
        return []
    return [str(entry / "bin") for entry in entries if (entry / "bin").is_dir()]


def build_path_env(
    claude_bin: str | None = None,
    *,
    path: str | None = None,
    home: str | None = None,
) -> str | None:
    """Return PATH extended with common CLI install locations.

    path and home default to the current environment. Entries keep
    their order and appear once. The parent of an explicit claude_bin
    is appended last. Returns None if nothing is left.
    """
    if path is None:
        path = os.environ.get("PATH", "")
    if home is None:
        home = os.environ.get("HOME")

    paths = [entry for entry in path.split(":") if entry]
    extras = list(_SYSTEM_DIRS)
    if home:
        extras.extend(f"{home}/{suffix}" for suffix in _HOME_DIRS)
        extras.extend(_nvm_bin_dirs(home))
    bin_path = _non_blank(claude_bin)
    if bin_path is not None:
        parent = os.path.dirname(bin_path)
        if parent:
            extras.append(parent)

    seen: set[str] = set()
    deduped: list[str] = []
    for entry in [*paths, *extras]:
        if entry not in seen:
            seen.add(entry)
            deduped.append(entry)
    if not deduped:
        return None
    return ":".join(deduped)


@dataclass
class ClaudeCommand:
    """argv plus environment for one claude invocation."""
    argv: list[str]
    env: dict[str, str] | None = field(default=None, repr=False)

    @property
    def binary(self) -> str:
        return self.argv[0]


def build_command(claude_bin: str | None = None, *args: str) -> ClaudeCommand:
    """Build a claude command with the augmented PATH."""
    binary = _non_blank(claude_bin) or DEFAULT_BINARY
    env = None
    path_env = build_path_env(claude_bin)
    if path_env is not None:
        env = os.environ.copy()
        env["PATH"] = path_env
    return ClaudeCommand(argv=[binary, *args], env=env)


async def check_installation(
    claude_bin: str | None = None,
    *,
    timeout: float = VERSION_TIMEOUT_SECONDS,
) -> str | None:
    """Run ``claude --version`` and return the trimmed version string.

    Returns None when the CLI succeeds but prints nothing. Raises
    CliNotFoundError, CliTimeoutError or CliStartError otherwise.
    """
    command = build_command(claude_bin, "--version")
    binary = command.binary
    # Resolve against the augmented PATH rather than our own.
    env_path = (command.env or os.environ).get("PATH")

    async def _run() -> tuple[int, bytes, bytes]:
        proc = await asyncio.create_subprocess_exec(
            *command.argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=command.env,
        )
        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            raise
        return proc.returncode, stdout, stderr

    try:
        returncode, stdout, stderr = await asyncio.wait_for(_run(), timeout=timeout)
    except FileNotFoundError:
        logger.warning("Claude CLI %r not found (PATH=%s)", binary, env_path)
        raise CliNotFoundError(binary) from None
    except asyncio.TimeoutError:
        logger.warning("Claude CLI %r --version timed out after %.1fs", binary, timeout)
        raise CliTimeoutError(binary, timeout) from None
    except OSError as exc:
        # Present but not runnable (not executable, bad interpreter, ...).
        logger.warning("Claude CLI %r could not be started: %s", binary, exc)
        raise CliStartError(binary, str(exc)) from exc

    out = stdout.decode("utf-8", errors="replace").strip()
    if returncode != 0:
        err = stderr.decode("utf-8", errors="replace").strip()
        detail = err or out
        logger.warning(
            "Claude CLI %r --version exited rc=%s: %s", binary, returncode, detail,
        )
        raise CliStartError(binary, detail)

    logger.debug("Claude CLI %r version: %s", binary, out or "<empty>")
    return out or None
