"""OpenCode backend."""

from .parser import DEFAULT_STORAGE_DIR, OPENCODE_USAGE_SCHEMA, OpenCodeParser

__all__ = ["DEFAULT_STORAGE_DIR", "OPENCODE_USAGE_SCHEMA", "OpenCodeParser"]
