"""agentdock: per-workspace Claude CLI sessions with race-safe turn tracking."""

__version__ = "0.1.0"
