"""Codex CLI backend."""

from .parser import DEFAULT_SESSIONS_DIR, CodexParser

__all__ = ["DEFAULT_SESSIONS_DIR", "CodexParser"]
