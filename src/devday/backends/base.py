"""Base class for source parsers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from ..digest import DigestOptions
from ..protocol import Session, ToolKind
from .shared import DayWindow, day_window

logger = logging.getLogger(__name__)


class BaseParser(ABC):
    """Walks a source's units and turns each into at most one Session.

    Subclasses locate units (files, directories, database rows) and parse a
    single unit. A unit that fails with an OS or database error is logged
    and skipped; its siblings are still processed.
    """

    tool: ToolKind
    # Errors that make a single unit unreadable without affecting its siblings
    unit_errors: tuple[type[Exception], ...] = (OSError, UnicodeDecodeError)

    def __init__(self, root: Path | str, digest_options: DigestOptions | None = None):
        self.root = Path(root).expanduser()
        self.digest_options = digest_options or DigestOptions()

    @property
    def name(self) -> str:
        return self.tool.value

    def is_available(self) -> bool:
        try:
            return self.root.exists()
        except OSError:
            return False

    def get_sessions(self, date: str) -> list[Session]:
        window = day_window(date)
        if not self.is_available():
            return []

        sessions: list[Session] = []
        for unit in self._find_units():
            try:
                session = self._parse_unit(unit, window)
            except self.unit_errors as e:
                logger.debug(f"{self.name}: skipping unreadable unit {unit}: {e}")
                continue
            if session is not None:
                sessions.append(session)

        logger.debug(f"{self.name}: {len(sessions)} session(s) on {date}")
        return sessions

    @abstractmethod
    def _find_units(self) -> Iterable[Any]:
        """Yield the physical units that may hold a session."""

    @abstractmethod
    def _parse_unit(self, unit: Any, window: DayWindow) -> Session | None:
        """Parse one unit into a Session clipped to ``window``."""


def find_files(root: Path, suffix: str) -> list[Path]:
    """Recursively list files under ``root`` with ``suffix``, sorted.

    Unreadable directories are skipped.
    """
    if not root.exists():
        return []

    found: list[Path] = []
    stack = [root]
    while stack:
        directory = stack.pop()
        try:
            entries = list(directory.iterdir())
        except OSError:
            continue
        for entry in entries:
            try:
                if entry.is_dir():
                    stack.append(entry)
                elif entry.is_file() and entry.name.endswith(suffix):
                    found.append(entry)
            except OSError:
                continue
    return sorted(found)
