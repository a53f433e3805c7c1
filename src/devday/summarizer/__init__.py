"""LLM-backed session and recap summaries with deterministic fallbacks."""

from .chunking import rebalance_chunks, split_digest_into_chunks
from .client import (
    AnthropicClient,
    OpenAIClient,
    SummarizerClient,
    SummaryResult,
    build_client,
)
from .config import (
    DEFAULT_SESSION_SUMMARY_INSTRUCTIONS,
    SessionSummaryInstructions,
    SummaryOptions,
    load_session_summary_instructions,
)
from .pipeline import (
    SummaryShape,
    build_fallback_session_summary,
    build_session_summaries,
    first_success,
    normalize_summary,
    summarize_recap,
    summarize_session,
)
from .prompts import extract_evidence_signals, extract_skill_names, extract_tool_names

__all__ = [
    "AnthropicClient",
    "OpenAIClient",
    "SummarizerClient",
    "SummaryResult",
    "build_client",
    "DEFAULT_SESSION_SUMMARY_INSTRUCTIONS",
    "SessionSummaryInstructions",
    "SummaryOptions",
    "load_session_summary_instructions",
    "SummaryShape",
    "build_fallback_session_summary",
    "build_session_summaries",
    "first_success",
    "normalize_summary",
    "summarize_recap",
    "summarize_session",
    "rebalance_chunks",
    "split_digest_into_chunks",
    "extract_evidence_signals",
    "extract_skill_names",
    "extract_tool_names",
]
