"""Session parser for OpenCode's hierarchical JSON storage.

OpenCode stores sessions in:
~/.local/share/opencode/storage/
    session/{projectID}/{sessionID}.json    # Session metadata
    message/{sessionID}/{messageID}.json    # Messages
    part/{messageID}/{partID}.json          # Message parts
"""

from __future__ import annotations

import logging
from pathlib import Path

from ...protocol import Session, ToolKind
from ..base import BaseParser
from ..shared import (
    DEFAULT_USAGE_SCHEMA,
    DayWindow,
    SessionAccumulator,
    as_record,
    collect_file_paths,
    number_or_none,
    parse_maybe_json,
    read_json_file,
    string_from_record,
    string_or_none,
)

logger = logging.getLogger(__name__)

# Default location for OpenCode storage (XDG Base Directories)
DEFAULT_STORAGE_DIR = Path.home() / ".local" / "share" / "opencode" / "storage"

# OpenCode's message.tokens uses bare bucket names and a nested cache object
OPENCODE_USAGE_SCHEMA = DEFAULT_USAGE_SCHEMA.extend(
    aliases={
        "input": ("input",),
        "output": ("output",),
        "reasoning": ("reasoning",),
        "cache_read": ("read",),
        "cache_write": ("write",),
    },
    nested_keys=("cache",),
)


def _load_json_dir(directory: Path) -> list[dict]:
    """Load every ``*.json`` record in a directory, sorted by filename.

    OpenCode ids sort chronologically, so filename order is stored order.
    Unparsable files are skipped.
    """
    if not directory.is_dir():
        return []
    records = []
    for path in sorted(directory.glob("*.json")):
        record = read_json_file(path)
        if record is not None:
            records.append(record)
    return records


def _message_timestamp_ms(message: dict) -> int | None:
    time_data = as_record(message.get("time")) or {}
    created = number_or_none(time_data.get("created"))
    if created is None:
        created = number_or_none(time_data.get("completed"))
    return int(created) if created is not None else None


class OpenCodeParser(BaseParser):
    """Reads session/message/part JSON records from OpenCode storage."""

    tool = ToolKind.OPENCODE

    def __init__(self, storage_dir: Path | str = DEFAULT_STORAGE_DIR, digest_options=None):
        super().__init__(storage_dir, digest_options)

    def _find_units(self) -> list[Path]:
        session_base = self.root / "session"
        if not session_base.exists():
            return []
        candidates = []
        for path in sorted(session_base.glob("*/*.json")):
            try:
                if path.stat().st_size == 0:
                    continue
            except OSError:
                continue
            candidates.append(path)
        return candidates

    def _parse_unit(self, session_path: Path, window: DayWindow) -> Session | None:
        session_data = read_json_file(session_path)
        if session_data is None:
            return None

        acc = SessionAccumulator(
            tool=self.tool,
            window=window,
            session_id=session_path.stem,
            digest_options=self.digest_options,
            usage_schema=OPENCODE_USAGE_SCHEMA,
        )
        acc.set_session_id(string_or_none(session_data.get("id")))
        acc.set_project_path(string_or_none(session_data.get("directory")))
        native_title = string_or_none(session_data.get("title"))

        for message in _load_json_dir(self.root / "message" / acc.session_id):
            ts = _message_timestamp_ms(message)
            if not acc.observe(ts):
                continue

            role = message.get("role")
            acc.add_model(message.get("modelID"))
            acc.add_usage(as_record(message.get("tokens")))

            path_info = as_record(message.get("path"))
            if acc.project_path is None and path_info:
                acc.set_project_path(string_from_record(path_info, "cwd", "root"))

            message_id = string_or_none(message.get("id"))
            parts = _load_json_dir(self.root / "part" / message_id) if message_id else []

            texts = []
            for part in parts:
                part_type = part.get("type")
                if part_type == "text" and not part.get("synthetic"):
                    text = string_or_none(part.get("text"))
                    if text:
                        texts.append(text)
                elif part_type == "tool":
                    state = as_record(part.get("state")) or {}
                    acc.add_tool_call(ts, string_or_none(part.get("tool")), state.get("input"))
                    collect_file_paths(parse_maybe_json(state.get("output")), acc.files_touched)
                    collect_file_paths(as_record(state.get("metadata")), acc.files_touched)

            text = "\n".join(texts).strip()
            if role == "user":
                acc.add_user_message(ts, text, count_empty=True)
            elif role == "assistant":
                acc.add_assistant_message(ts, text, count_empty=True)

        # OpenCode generates its own session titles; prefer them over the prompt
        if native_title:
            acc.title = native_title

        return acc.finalize()
