"""Session configuration loaded from environment variables.

All settings have sensible defaults. Override via AGENTDOCK_* env vars.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

from .environment import VERSION_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


@dataclass
class SessionConfig:
    """Workspace session configuration."""

    # Default claude binary when a workspace does not set its own.
    # None means "claude" resolved on the augmented PATH.
    claude_bin: str | None = None

    # Deadline for the `claude --version` installation check.
    version_timeout_seconds: float = VERSION_TIMEOUT_SECONDS

    # Extra arguments appended when spawning the persistent process
    # (e.g. ["--model", "sonnet"]).
    persistent_args: list[str] = field(default_factory=list)

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> SessionConfig:
        """Load configuration from AGENTDOCK_* environment variables."""
        overrides = {
            k: v for k, v in os.environ.items() if k.startswith("AGENTDOCK_")
        }
        if overrides:
            logger.info(
                "SessionConfig.from_env: AGENTDOCK_* env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(overrides.items())),
            )
        else:
            logger.debug("SessionConfig.from_env: no AGENTDOCK_* env vars set, using defaults")

        config = cls(
            claude_bin=os.getenv("AGENTDOCK_CLAUDE_BIN", "").strip() or None,
            version_timeout_seconds=float(os.getenv(
                "AGENTDOCK_VERSION_TIMEOUT", str(cls.version_timeout_seconds)
            )),
            persistent_args=os.getenv("AGENTDOCK_PERSISTENT_ARGS", "").split(),
            log_level=os.getenv("AGENTDOCK_LOG_LEVEL", cls.log_level),
        )
        logger.debug(
            "SessionConfig.from_env: claude_bin=%s timeout=%.1fs log_level=%s",
            config.claude_bin, config.version_timeout_seconds, config.log_level,
        )
        return config
