"""Session parser for Claude Code JSONL transcripts.

Entries look like:
{"type": "user"|"assistant", "timestamp": "...", "cwd": "...", "sessionId": "...",
 "message": {...}, "requestId": "..."}
plus ``{"type": "summary", "summary": "..."}`` lines written by Claude Code's
own summarization.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ...protocol import Session, ToolKind
from ..base import BaseParser
from ..shared import (
    DayWindow,
    SessionAccumulator,
    as_record,
    collect_file_paths,
    extract_usage,
    iter_jsonl,
    parse_timestamp_ms,
    string_from_record,
    string_or_none,
)
from .discovery import decode_project_path, find_session_files

logger = logging.getLogger(__name__)

DEFAULT_CLAUDE_HOME = Path.home() / ".claude"

# Placeholder model Claude Code records for locally generated messages
SYNTHETIC_MODEL = "<synthetic>"


def split_content(content) -> tuple[str, list[dict], list[dict]]:
    """Split message content into (text, tool_use blocks, tool_result blocks)."""
    if isinstance(content, str):
        return content.strip(), [], []
    if not isinstance(content, list):
        return "", [], []

    texts = []
    tool_uses = []
    tool_results = []
    for block in content:
        rec = as_record(block)
        if rec is None:
            continue
        block_type = rec.get("type")
        if block_type == "text":
            text = string_or_none(rec.get("text"))
            if text:
                texts.append(text)
        elif block_type == "tool_use":
            tool_uses.append(rec)
        elif block_type == "tool_result":
            tool_results.append(rec)
    return "\n".join(texts).strip(), tool_uses, tool_results


class ClaudeCodeParser(BaseParser):
    """Reads ~/.claude/projects/**.jsonl, skipping subagent transcripts."""

    tool = ToolKind.CLAUDE_CODE

    def __init__(self, claude_home: Path | str = DEFAULT_CLAUDE_HOME, digest_options=None):
        super().__init__(claude_home, digest_options)
        self.projects_dir = self.root / "projects"

    def is_available(self) -> bool:
        try:
            return self.projects_dir.exists()
        except OSError:
            return False

    def _find_units(self) -> list[Path]:
        return find_session_files(self.projects_dir)

    def _parse_unit(self, path: Path, window: DayWindow) -> Session | None:
        acc = SessionAccumulator(
            tool=self.tool,
            window=window,
            session_id=path.stem,
            digest_options=self.digest_options,
        )
        # Streaming writes repeat an API response; keep the most complete usage
        # per message_id:request_id
        dedup_usage: dict[str, tuple[dict[str, int], int]] = {}

        for entry in iter_jsonl(path):
            entry_type = entry.get("type")

            if entry_type == "summary":
                acc.summary = string_or_none(entry.get("summary")) or acc.summary
                continue
            if entry_type not in ("user", "assistant"):
                continue

            acc.set_session_id(string_from_record(entry, "sessionId"))
            acc.set_project_path(string_from_record(entry, "cwd"))

            ts = parse_timestamp_ms(entry.get("timestamp"))
            if not acc.observe(ts):
                continue

            message = as_record(entry.get("message")) or {}
            text, tool_uses, tool_results = split_content(message.get("content"))

            if entry_type == "user":
                collect_file_paths(entry.get("toolUseResult"), acc.files_touched)
                if tool_results and not text:
                    # Tool output fed back to the model, not a typed message
                    acc.mark_activity(ts)
                    continue
                if entry.get("isMeta"):
                    continue
                acc.add_user_message(ts, text)
                continue

            model = string_or_none(message.get("model"))
            if model and model != SYNTHETIC_MODEL:
                acc.add_model(model)

            acc.add_assistant_message(ts, text)
            for block in tool_uses:
                acc.add_tool_call(ts, string_or_none(block.get("name")), block.get("input"))

            usage = extract_usage(message.get("usage"), acc.usage_schema)
            if usage is not None:
                msg_id = string_or_none(message.get("id"))
                request_id = string_or_none(entry.get("requestId"))
                if msg_id and request_id:
                    key = f"{msg_id}:{request_id}"
                else:
                    key = f"no_dedup_{len(dedup_usage)}"
                existing = dedup_usage.get(key)
                if existing is None or usage["output"] > existing[1]:
                    dedup_usage[key] = (usage, usage["output"])

        for usage, _ in dedup_usage.values():
            acc.add_usage_buckets(usage)

        if acc.project_path is None:
            acc.set_project_path(decode_project_path(path, self.projects_dir))

        return acc.finalize()
