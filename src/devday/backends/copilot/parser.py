"""Session parser for GitHub Copilot CLI session state.

Copilot keeps sessions under ~/.copilot/session-state/ either as
``<sessionId>/events.jsonl`` with a ``workspace.yaml`` sidecar, or as a
flat ``<sessionId>.jsonl`` file. Events look like:
{"type": "user.message", "timestamp": "...", "data": {...}}
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ...protocol import Session, ToolKind
from ..base import BaseParser
from ..shared import (
    DayWindow,
    SessionAccumulator,
    as_record,
    collect_file_paths,
    iter_jsonl,
    parse_maybe_json,
    parse_timestamp_ms,
    string_from_record,
)

logger = logging.getLogger(__name__)

DEFAULT_SESSION_STATE_DIR = Path.home() / ".copilot" / "session-state"

MODEL_KEYS = ("model", "modelId", "modelName", "newModel")
MODEL_CHANGE_RE = re.compile(r"Model changed to:\s*([^\s(]+)", re.IGNORECASE)

TURN_EVENTS = ("assistant.turn_start", "assistant.turn_end")
TOOL_EVENTS = ("tool.execution_start", "tool.execution_complete")


@dataclass(frozen=True)
class CopilotSessionInput:
    """One session's event log and optional workspace sidecar."""

    session_id: str
    events_path: Path
    workspace_path: Path | None = None


@dataclass(frozen=True)
class WorkspaceMetadata:
    cwd: str | None = None
    git_root: str | None = None
    summary: str | None = None


def parse_workspace_metadata(path: Path | None) -> WorkspaceMetadata:
    """Read cwd, git_root and summary from a workspace.yaml sidecar.

    Missing or malformed files yield empty metadata.
    """
    if path is None or not path.exists():
        return WorkspaceMetadata()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.debug(f"Failed to read workspace metadata {path}: {e}")
        return WorkspaceMetadata()
    record = as_record(data)
    if record is None:
        return WorkspaceMetadata()

    def text(key: str) -> str | None:
        value = record.get(key)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    return WorkspaceMetadata(cwd=text("cwd"), git_root=text("git_root"), summary=text("summary"))


def extract_message_text(data: dict | None) -> str | None:
    """Text of a message event's ``content`` (string, list of parts, or part)."""
    if not data:
        return None
    content = data.get("content")

    if isinstance(content, str):
        return content.strip() or None

    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                if part.strip():
                    parts.append(part)
                continue
            text = string_from_record(as_record(part), "text", "content", "value")
            if text:
                parts.append(text)
        return "\n".join(parts).strip() or None

    text = string_from_record(as_record(content), "text", "content", "value")
    return text.strip() or None if text else None


def collect_models(event_type: str, data: dict | None, acc: SessionAccumulator) -> None:
    if not data:
        return
    for key in MODEL_KEYS:
        acc.add_model(data.get(key))

    model_list = data.get("models")
    if isinstance(model_list, list):
        for model in model_list:
            acc.add_model(model)

    acc.add_model(string_from_record(as_record(data.get("context")), "model"))

    if event_type == "session.info" and data.get("infoType") == "model":
        message = data.get("message")
        if isinstance(message, str):
            match = MODEL_CHANGE_RE.search(message)
            if match:
                acc.add_model(match.group(1))


def extract_timestamp_ms(event: dict) -> int | None:
    ts = parse_timestamp_ms(event.get("timestamp"))
    if ts is not None:
        return ts
    data = as_record(event.get("data"))
    fallback = string_from_record(data, "timestamp", "startTime")
    return parse_timestamp_ms(fallback)


class CopilotParser(BaseParser):
    """Reads Copilot CLI events plus workspace sidecar metadata."""

    tool = ToolKind.COPILOT

    def __init__(self, session_state_root: Path | str = DEFAULT_SESSION_STATE_DIR, digest_options=None):
        super().__init__(session_state_root, digest_options)

    def _find_units(self) -> list[CopilotSessionInput]:
        try:
            entries = sorted(self.root.iterdir())
        except OSError:
            return []

        inputs = []
        for entry in entries:
            if entry.is_dir():
                events_path = entry / "events.jsonl"
                if events_path.exists():
                    workspace_path = entry / "workspace.yaml"
                    inputs.append(
                        CopilotSessionInput(
                            session_id=entry.name,
                            events_path=events_path,
                            workspace_path=workspace_path if workspace_path.exists() else None,
                        )
                    )
            elif entry.is_file() and entry.suffix == ".jsonl":
                inputs.append(CopilotSessionInput(session_id=entry.stem, events_path=entry))
        return inputs

    def _parse_unit(self, unit: CopilotSessionInput, window: DayWindow) -> Session | None:
        workspace = parse_workspace_metadata(unit.workspace_path)

        acc = SessionAccumulator(
            tool=self.tool,
            window=window,
            session_id=unit.session_id,
            digest_options=self.digest_options,
        )
        acc.set_project_path(workspace.cwd or workspace.git_root)
        acc.title = workspace.summary
        acc.summary = workspace.summary

        for event in iter_jsonl(unit.events_path):
            event_type = event.get("type") or ""
            data = as_record(event.get("data"))

            if event_type == "session.start" and data:
                self._apply_session_start(data, acc)

            ts = extract_timestamp_ms(event)
            if not acc.observe(ts):
                continue

            collect_models(event_type, data, acc)
            if data:
                acc.add_usage(data)

            if event_type == "user.message":
                acc.add_user_message(ts, extract_message_text(data), count_empty=True)

            elif event_type == "assistant.message":
                acc.add_assistant_message(ts, extract_message_text(data), count_empty=True)
                requests = data.get("toolRequests") if data else None
                if isinstance(requests, list):
                    for request in requests:
                        req = as_record(request)
                        if req:
                            acc.add_tool_call(None, string_from_record(req, "name"), req.get("arguments"))

            elif event_type in TURN_EVENTS:
                acc.mark_activity(ts)

            elif event_type in TOOL_EVENTS:
                acc.mark_activity(ts)
                if data:
                    raw_input = data.get("arguments")
                    if raw_input is None:
                        raw_input = data.get("result")
                    acc.add_tool_call(None, string_from_record(data, "toolName", "name"), raw_input)
                    collect_file_paths(parse_maybe_json(data.get("result")), acc.files_touched)

        return acc.finalize()

    @staticmethod
    def _apply_session_start(data: dict[str, Any], acc: SessionAccumulator) -> None:
        acc.set_session_id(string_from_record(data, "sessionId"))

        context = as_record(data.get("context"))
        cwd = string_from_record(context, "cwd") or string_from_record(data, "cwd")
        git_root = string_from_record(context, "gitRoot", "git_root") or string_from_record(
            data, "gitRoot", "git_root"
        )
        acc.set_project_path(cwd or git_root)

        summary = string_from_record(data, "summary")
        if summary and not acc.title:
            acc.title = summary
        if summary and not acc.summary:
            acc.summary = summary
