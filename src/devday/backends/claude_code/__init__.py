"""Claude Code backend."""

from .discovery import decode_project_path, find_session_files, is_subagent_session
from .parser import DEFAULT_CLAUDE_HOME, ClaudeCodeParser

__all__ = [
    "DEFAULT_CLAUDE_HOME",
    "ClaudeCodeParser",
    "decode_project_path",
    "find_session_files",
    "is_subagent_session",
]
