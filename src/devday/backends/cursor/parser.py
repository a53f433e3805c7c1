"""Session parser for Cursor's composer history.

Cursor keeps chat ("composer") state in the global ``state.vscdb`` SQLite
database, table ``cursorDiskKV``:

    composerData:<composerId>              # conversation header + metadata
    bubbleId:<composerId>:<bubbleId>       # one message bubble

Older composers embed full bubbles in ``conversation``; newer ones only list
``fullConversationHeadersOnly`` and store bubbles as separate rows.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Any
from urllib.parse import unquote, urlparse

from ...protocol import Session, ToolKind
from ..base import BaseParser
from ..shared import (
    DayWindow,
    SessionAccumulator,
    as_record,
    collect_file_paths,
    parse_maybe_json,
    parse_timestamp_ms,
    string_from_record,
    string_or_none,
)

logger = logging.getLogger(__name__)

USER_BUBBLE = 1
ASSISTANT_BUBBLE = 2

COMPOSER_PREFIX = "composerData:"
BUBBLE_PREFIX = "bubbleId:"


def default_state_db() -> Path:
    """Location of Cursor's global state database for this platform."""
    home = Path.home()
    if sys.platform == "darwin":
        base = home / "Library" / "Application Support" / "Cursor"
    elif sys.platform.startswith("win"):
        base = home / "AppData" / "Roaming" / "Cursor"
    else:
        base = home / ".config" / "Cursor"
    return base / "User" / "globalStorage" / "state.vscdb"


def _decode_value(raw: Any) -> dict | None:
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if not isinstance(raw, str):
        return None
    try:
        return as_record(json.loads(raw))
    except (json.JSONDecodeError, RecursionError):
        return None


def _uri_to_path(value: str | None) -> str | None:
    if not value:
        return None
    if value.startswith("file://"):
        return unquote(urlparse(value).path) or None
    return value


def bubble_timestamp_ms(bubble: dict) -> int | None:
    ts = parse_timestamp_ms(bubble.get("createdAt"))
    if ts is not None:
        return ts
    timing = as_record(bubble.get("timingInfo")) or {}
    for key in ("clientStartTime", "clientRpcSendTime", "clientEndTime"):
        ts = parse_timestamp_ms(timing.get(key))
        if ts is not None:
            return ts
    return None


def bubble_project_path(bubble: dict) -> str | None:
    uris = bubble.get("workspaceUris")
    if isinstance(uris, list):
        for uri in uris:
            path = _uri_to_path(string_or_none(uri))
            if path:
                return path
    return _uri_to_path(string_from_record(bubble, "workspaceProjectDir", "cwd"))


class CursorParser(BaseParser):
    """Reads composer conversations from a read-only ``state.vscdb`` connection."""

    tool = ToolKind.CURSOR
    unit_errors = (OSError, UnicodeDecodeError, sqlite3.Error)

    def __init__(self, state_db: Path | str | None = None, digest_options=None):
        super().__init__(state_db or default_state_db(), digest_options)
        self._conn: sqlite3.Connection | None = None

    def is_available(self) -> bool:
        try:
            return self.root.is_file()
        except OSError:
            return False

    def get_sessions(self, date: str) -> list[Session]:
        if not self.is_available():
            return super().get_sessions(date)
        try:
            self._conn = sqlite3.connect(f"{self.root.as_uri()}?mode=ro", uri=True)
        except sqlite3.Error as e:
            logger.debug(f"cursor: cannot open {self.root}: {e}")
            return []
        try:
            return super().get_sessions(date)
        except sqlite3.Error as e:
            # Locked or not a Cursor database
            logger.debug(f"cursor: failed to read {self.root}: {e}")
            return []
        finally:
            self._conn.close()
            self._conn = None

    def _rows(self, prefix: str) -> list[tuple[str, Any]]:
        assert self._conn is not None
        cursor = self._conn.execute(
            "SELECT key, value FROM cursorDiskKV WHERE key LIKE ? ORDER BY key",
            (prefix + "%",),
        )
        return cursor.fetchall()

    def _find_units(self) -> list[tuple[str, dict]]:
        units = []
        for key, raw in self._rows(COMPOSER_PREFIX):
            composer = _decode_value(raw)
            if composer is None:
                continue
            units.append((key[len(COMPOSER_PREFIX) :], composer))
        return units

    def _load_bubbles(self, composer_id: str, composer: dict) -> list[dict]:
        inline = composer.get("conversation")
        if isinstance(inline, list) and inline:
            return [b for b in inline if isinstance(b, dict)]

        stored: dict[str, dict] = {}
        for key, raw in self._rows(f"{BUBBLE_PREFIX}{composer_id}:"):
            bubble = _decode_value(raw)
            if bubble is not None:
                stored[key.rsplit(":", 1)[-1]] = bubble

        headers = composer.get("fullConversationHeadersOnly")
        if not isinstance(headers, list):
            return list(stored.values())

        ordered = []
        for header in headers:
            bubble_id = string_from_record(as_record(header), "bubbleId")
            if bubble_id and bubble_id in stored:
                ordered.append(stored.pop(bubble_id))
        return ordered

    def _parse_unit(self, unit: tuple[str, dict], window: DayWindow) -> Session | None:
        composer_id, composer = unit
        acc = SessionAccumulator(
            tool=self.tool,
            window=window,
            session_id=composer_id,
            digest_options=self.digest_options,
        )
        acc.set_project_path(_uri_to_path(string_from_record(composer, "workspacePath", "cwd")))
        name = string_or_none(composer.get("name"))

        for bubble in self._load_bubbles(composer_id, composer):
            if acc.project_path is None:
                acc.set_project_path(bubble_project_path(bubble))

            ts = bubble_timestamp_ms(bubble)
            if not acc.observe(ts):
                continue

            model_info = as_record(bubble.get("modelInfo"))
            acc.add_model(string_from_record(model_info, "modelName"))
            acc.add_usage(as_record(bubble.get("tokenCount")))

            text = string_or_none(bubble.get("text"))
            text = text.strip() if text else None
            bubble_type = bubble.get("type")
            if bubble_type == USER_BUBBLE:
                acc.add_user_message(ts, text)
            elif bubble_type == ASSISTANT_BUBBLE:
                acc.add_assistant_message(ts, text)

            tool_data = as_record(bubble.get("toolFormerData"))
            if tool_data:
                raw_args = parse_maybe_json(tool_data.get("rawArgs"))
                if raw_args is None:
                    raw_args = parse_maybe_json(tool_data.get("params"))
                acc.add_tool_call(ts, string_from_record(tool_data, "name", "tool"), raw_args)
                collect_file_paths(parse_maybe_json(tool_data.get("result")), acc.files_touched)

        if name:
            acc.title = name
        return acc.finalize()
