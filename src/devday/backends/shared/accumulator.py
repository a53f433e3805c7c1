"""Per-unit session aggregation shared by all parsers.

A ``SessionAccumulator`` lives for the extraction of exactly one session
file (or record group). Parsers classify their records and feed them in
stored order; ``finalize`` turns the aggregate into an immutable
``Session`` or None when nothing happened on the requested day.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ...digest import DigestOptions, build_conversation_digest, format_digest_fragment
from ...pricing import estimate_cost
from ...protocol import Session, TokenUsage, ToolKind
from .timeutil import DayWindow, ms_to_datetime
from .tools import summarize_tool_call
from .usage import DEFAULT_USAGE_SCHEMA, UsageSchema, extract_usage

# Longest gap between two activity events that still counts as work
MAX_EVENT_GAP_MS = 5 * 60 * 1000

MAX_TITLE_CHARS = 60

# Substrings that mark injected instructions rather than a typed prompt
SYSTEM_ENVELOPE_MARKERS = (
    "<environment_context>",
    "<agent_instructions>",
    "<user_instructions>",
    "<command-name>",
    "<local-command-stdout>",
    "Caveat: The messages below were generated",
)
SYSTEM_ENVELOPE_PREFIXES = ("# AGENTS.md",)

_WHITESPACE_RE = re.compile(r"\s+")


def looks_like_system_envelope(text: str) -> bool:
    stripped = text.lstrip()
    if any(stripped.startswith(prefix) for prefix in SYSTEM_ENVELOPE_PREFIXES):
        return True
    return any(marker in text for marker in SYSTEM_ENVELOPE_MARKERS)


def truncate_prompt(prompt: str, max_chars: int = MAX_TITLE_CHARS) -> str:
    """Collapse whitespace and cap a prompt for use as a title."""
    clean = _WHITESPACE_RE.sub(" ", prompt).strip()
    if len(clean) <= max_chars:
        return clean
    return clean[: max_chars - 3] + "..."


def compute_active_duration_ms(timestamps: list[int], max_gap_ms: int = MAX_EVENT_GAP_MS) -> int:
    """Sum of positive gaps between sorted timestamps, each capped at ``max_gap_ms``."""
    ordered = sorted(timestamps)
    duration = 0
    for previous, current in zip(ordered, ordered[1:]):
        gap = current - previous
        if gap > 0:
            duration += min(gap, max_gap_ms)
    return duration


@dataclass
class SessionAccumulator:
    """Mutable aggregate for a single session unit."""

    tool: ToolKind
    window: DayWindow
    session_id: str
    digest_options: DigestOptions = field(default_factory=DigestOptions)
    usage_schema: UsageSchema = DEFAULT_USAGE_SCHEMA
    home: str = field(default_factory=lambda: str(Path.home()))

    project_path: str | None = None
    title: str | None = None
    summary: str | None = None

    user_message_count: int = 0
    assistant_message_count: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    reasoning_tokens: int = 0
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0

    models: dict[str, None] = field(default_factory=dict)
    files_touched: dict[str, None] = field(default_factory=dict)
    tool_call_summaries: dict[str, None] = field(default_factory=dict)
    digest_parts: list[str] = field(default_factory=list)
    activity_timestamps: list[int] = field(default_factory=list)
    earliest_ms: int | None = None
    latest_ms: int | None = None

    # -- metadata ----------------------------------------------------------

    def set_project_path(self, path: str | None) -> None:
        if path:
            self.project_path = path

    def set_session_id(self, session_id: str | None) -> None:
        if session_id:
            self.session_id = session_id

    # -- in-day records ----------------------------------------------------

    def observe(self, ts: int | None) -> bool:
        """Record a timestamp in the observed span; True if it is in-day."""
        if not self.window.contains(ts):
            return False
        self.earliest_ms = ts if self.earliest_ms is None else min(self.earliest_ms, ts)
        self.latest_ms = ts if self.latest_ms is None else max(self.latest_ms, ts)
        return True

    def mark_activity(self, ts: int) -> None:
        self.activity_timestamps.append(ts)

    def add_model(self, model: Any) -> None:
        if isinstance(model, str) and model.strip():
            self.models[model.strip()] = None

    def add_user_message(self, ts: int, text: str | None, count_empty: bool = False) -> None:
        if not text and not count_empty:
            return
        self.user_message_count += 1
        self.mark_activity(ts)
        if not text:
            return
        self.digest_parts.append(format_digest_fragment("User", text, self.digest_options))
        if not self.title and not looks_like_system_envelope(text):
            self.title = truncate_prompt(text)

    def add_assistant_message(self, ts: int, text: str | None, count_empty: bool = False) -> None:
        if not text and not count_empty:
            return
        self.assistant_message_count += 1
        self.mark_activity(ts)
        if text:
            self.digest_parts.append(format_digest_fragment("Assistant", text, self.digest_options))

    def add_tool_call(self, ts: int | None, name: str | None, raw_input: Any) -> str:
        summary = summarize_tool_call(name, raw_input, self.files_touched, self.home)
        self.tool_call_summaries[summary] = None
        if ts is not None:
            self.mark_activity(ts)
        return summary

    def add_usage(self, record: Any) -> bool:
        """Merge token counts found in ``record``; False if none were found."""
        usage = extract_usage(record, self.usage_schema)
        if usage is None:
            return False
        self.add_usage_buckets(usage)
        return True

    def add_usage_buckets(self, usage: dict[str, int]) -> None:
        self.input_tokens += usage.get("input", 0)
        self.output_tokens += usage.get("output", 0)
        self.reasoning_tokens += usage.get("reasoning", 0)
        self.cache_read_tokens += usage.get("cache_read", 0)
        self.cache_write_tokens += usage.get("cache_write", 0)

    # -- result ------------------------------------------------------------

    def finalize(self) -> Session | None:
        """Build the Session, or None if no activity fell on the day."""
        if not self.activity_timestamps or self.earliest_ms is None or self.latest_ms is None:
            return None

        tokens = TokenUsage.from_buckets(
            input=self.input_tokens,
            output=self.output_tokens,
            reasoning=self.reasoning_tokens,
            cache_read=self.cache_read_tokens,
            cache_write=self.cache_write_tokens,
        )
        models = tuple(self.models)
        cost_usd = estimate_cost(models[0], tokens) if tokens.total > 0 and models else 0.0

        project_name = Path(self.project_path).name or self.project_path if self.project_path else None

        return Session(
            id=self.session_id,
            tool=self.tool,
            project_path=self.project_path,
            project_name=project_name,
            title=self.title,
            started_at=ms_to_datetime(self.window.clip(self.earliest_ms)),
            ended_at=ms_to_datetime(self.window.clip(self.latest_ms)),
            duration_ms=compute_active_duration_ms(self.activity_timestamps),
            message_count=self.user_message_count + self.assistant_message_count,
            user_message_count=self.user_message_count,
            assistant_message_count=self.assistant_message_count,
            summary=self.summary,
            tokens=tokens,
            cost_usd=cost_usd,
            models=models,
            files_touched=tuple(self.files_touched),
            conversation_digest=build_conversation_digest(self.digest_parts, self.digest_options),
            tool_call_summaries=tuple(self.tool_call_summaries),
        )
