"""Session parser for Codex CLI rollout files.

Codex writes one JSONL file per session somewhere under
~/.codex/sessions/YYYY/MM/DD/, with lines like:
{"timestamp": "...", "type": "session_meta"|"turn_context"|"event_msg"|"response_item", "payload": {...}}
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from ...protocol import Session, ToolKind
from ..base import BaseParser, find_files
from ..shared import (
    DayWindow,
    SessionAccumulator,
    as_record,
    iter_jsonl,
    parse_timestamp_ms,
    string_from_record,
    string_or_none,
)

logger = logging.getLogger(__name__)

DEFAULT_SESSIONS_DIR = Path.home() / ".codex" / "sessions"

ASSISTANT_EVENT_TYPES = ("agent_message", "assistant_message")
TOOL_CALL_ITEM_TYPES = {
    "function_call": "arguments",
    "custom_tool_call": "input",
    "local_shell_call": "action",
}


def extract_message_text(content: Any) -> str:
    """Join the text parts of a response_item message."""
    if isinstance(content, str):
        return content.strip()
    if not isinstance(content, list):
        return ""
    parts = []
    for item in content:
        text = string_from_record(as_record(item), "text", "content")
        if text:
            parts.append(text)
    return "\n".join(parts).strip()


def extract_timestamp_ms(entry: dict) -> int | None:
    ts = parse_timestamp_ms(entry.get("timestamp"))
    if ts is not None:
        return ts
    payload = as_record(entry.get("payload"))
    if payload:
        return parse_timestamp_ms(payload.get("timestamp"))
    return None


class CodexParser(BaseParser):
    """Reads ``*.jsonl`` rollouts found anywhere below the sessions root."""

    tool = ToolKind.CODEX

    def __init__(self, sessions_root: Path | str = DEFAULT_SESSIONS_DIR, digest_options=None):
        super().__init__(sessions_root, digest_options)

    def _find_units(self) -> list[Path]:
        return find_files(self.root, ".jsonl")

    def _parse_unit(self, path: Path, window: DayWindow) -> Session | None:
        acc = SessionAccumulator(
            tool=self.tool,
            window=window,
            session_id=path.stem,
            digest_options=self.digest_options,
        )
        # Once structured response_item messages appear, event_msg copies are duplicates
        saw_structured_messages = False

        for entry in iter_jsonl(path):
            entry_type = entry.get("type")
            payload = as_record(entry.get("payload"))

            if entry_type == "session_meta" and payload:
                acc.set_session_id(string_from_record(payload, "id"))
                acc.set_project_path(string_from_record(payload, "cwd"))

            ts = extract_timestamp_ms(entry)
            if not acc.observe(ts) or payload is None:
                continue

            if entry_type == "turn_context":
                acc.add_model(payload.get("model"))

            elif entry_type == "event_msg":
                event_type = string_or_none(payload.get("type"))
                if event_type == "token_count":
                    acc.add_usage(payload)
                elif saw_structured_messages:
                    continue
                elif event_type == "user_message":
                    acc.add_user_message(ts, string_or_none(payload.get("message")))
                elif event_type in ASSISTANT_EVENT_TYPES:
                    text = string_or_none(payload.get("message")) or string_or_none(payload.get("text"))
                    acc.add_assistant_message(ts, text)

            elif entry_type == "response_item":
                item_type = string_or_none(payload.get("type"))
                if item_type == "message":
                    saw_structured_messages = True
                    role = string_or_none(payload.get("role"))
                    text = extract_message_text(payload.get("content"))
                    if role == "user":
                        acc.add_user_message(ts, text)
                    elif role == "assistant":
                        acc.add_assistant_message(ts, text)
                elif item_type in TOOL_CALL_ITEM_TYPES:
                    input_key = TOOL_CALL_ITEM_TYPES[item_type]
                    name = string_or_none(payload.get("name"))
                    if item_type == "local_shell_call":
                        name = name or "shell"
                    acc.add_tool_call(ts, name, payload.get(input_key))

        return acc.finalize()
