"""GitHub Copilot CLI backend."""

from .parser import DEFAULT_SESSION_STATE_DIR, CopilotParser

__all__ = ["DEFAULT_SESSION_STATE_DIR", "CopilotParser"]
