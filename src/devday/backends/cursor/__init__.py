"""Cursor backend."""

from .parser import CursorParser, default_state_db

__all__ = ["CursorParser", "default_state_db"]
