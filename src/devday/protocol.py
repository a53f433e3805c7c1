"""Shared data types and the parser protocol.

Every source parser produces ``Session`` objects. Recap assembly,
rendering and summarization only ever see this type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Protocol, runtime_checkable


class ToolKind(str, Enum):
    """Source kinds a session can come from."""

    OPENCODE = "opencode"
    CLAUDE_CODE = "claude-code"
    CURSOR = "cursor"
    CODEX = "codex"
    COPILOT = "copilot"


SessionKey = tuple[ToolKind, str]


@dataclass(frozen=True)
class TokenUsage:
    """Token counts for a session, split by billing bucket."""

    input: int = 0
    output: int = 0
    reasoning: int = 0
    cache_read: int = 0
    cache_write: int = 0
    total: int = 0

    @classmethod
    def from_buckets(
        cls,
        input: int = 0,
        output: int = 0,
        reasoning: int = 0,
        cache_read: int = 0,
        cache_write: int = 0,
    ) -> TokenUsage:
        """Build a usage whose total is the sum of the five buckets."""
        return cls(
            input=input,
            output=output,
            reasoning=reasoning,
            cache_read=cache_read,
            cache_write=cache_write,
            total=input + output + reasoning + cache_read + cache_write,
        )

    def __add__(self, other: TokenUsage) -> TokenUsage:
        if not isinstance(other, TokenUsage):
            return NotImplemented
        return TokenUsage(
            input=self.input + other.input,
            output=self.output + other.output,
            reasoning=self.reasoning + other.reasoning,
            cache_read=self.cache_read + other.cache_read,
            cache_write=self.cache_write + other.cache_write,
            total=self.total + other.total,
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "input": self.input,
            "output": self.output,
            "reasoning": self.reasoning,
            "cache_read": self.cache_read,
            "cache_write": self.cache_write,
            "total": self.total,
        }


@dataclass(frozen=True)
class Session:
    """One conversation from one tool, clipped to a calendar day."""

    id: str
    tool: ToolKind
    project_path: str | None
    project_name: str | None
    title: str | None
    started_at: datetime
    ended_at: datetime
    duration_ms: int
    message_count: int
    user_message_count: int
    assistant_message_count: int
    summary: str | None
    tokens: TokenUsage = field(default_factory=TokenUsage)
    cost_usd: float = 0.0
    models: tuple[str, ...] = ()
    files_touched: tuple[str, ...] = ()
    conversation_digest: str = ""
    tool_call_summaries: tuple[str, ...] = ()

    @property
    def key(self) -> SessionKey:
        """Identity across sources; ids are only unique within one tool."""
        return (self.tool, self.id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to plain JSON-compatible types."""
        return {
            "id": self.id,
            "tool": self.tool.value,
            "project_path": self.project_path,
            "project_name": self.project_name,
            "title": self.title,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat(),
            "duration_ms": self.duration_ms,
            "message_count": self.message_count,
            "user_message_count": self.user_message_count,
            "assistant_message_count": self.assistant_message_count,
            "summary": self.summary,
            "tokens": self.tokens.to_dict(),
            "cost_usd": self.cost_usd,
            "models": list(self.models),
            "files_touched": list(self.files_touched),
            "conversation_digest": self.conversation_digest,
            "tool_call_summaries": list(self.tool_call_summaries),
        }


@runtime_checkable
class Parser(Protocol):
    """Contract every source parser implements."""

    name: str

    def is_available(self) -> bool:
        """True if the source's root path exists. Never raises."""
        ...

    def get_sessions(self, date: str) -> list[Session]:
        """Return the sessions with activity on ``date`` (YYYY-MM-DD)."""
        ...
