"""Summarizer configuration and instruction loading."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ..digest import parse_char_limit

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_CHUNK_CHARS = 7_500
MAX_SUMMARY_CHUNKS = 12
SUMMARY_CHUNK_CHARS_ENV = "DEVDAY_SESSION_SUMMARY_CHUNK_CHARS"

DEFAULT_INSTRUCTIONS_PATH = Path("prompts") / "worklog-session-summary.md"

DEFAULT_SESSION_SUMMARY_INSTRUCTIONS = """# Devday Session Summary Instructions

You are summarizing one coding session from a developer worklog.

## Output style
- Write in a conversational first-person plural style using "we".
- Prefer 1-3 short paragraphs that describe progression across the full session.
- You may add headings only if they improve clarity.

## Focus
- Emphasize outcomes, decisions, and technical changes.
- Explain how the session progressed from start to finish (early, middle, and late phases).
- Group related work into coherent phases/workstreams when useful.
- Prefer completed outcomes over attempted but unfinished actions.
- Call out noteworthy challenges, tradeoffs, or discoveries where relevant.
- Mention concrete files/systems if useful.
- Include concrete identifiers when available (for example commit SHAs, PR numbers, build IDs, refresh IDs).
- Mention unresolved decisions or risks only when they materially affect next steps.

## Avoid
- Token/cost/model/provider details.
- Forced templates or strict bullet-only output.
- Long verbatim transcript quotes.
- Invented identifiers or unsupported claims.
"""


@dataclass(frozen=True)
class SummaryOptions:
    """Chunking limits for long session digests.

    Attributes:
        chunk_chars: Target chunk size. 0 or below disables chunking.
        max_chunks: Chunks beyond this count are merged in groups.
    """

    chunk_chars: int = DEFAULT_SUMMARY_CHUNK_CHARS
    max_chunks: int = MAX_SUMMARY_CHUNKS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SummaryOptions:
        env = os.environ if environ is None else environ
        return cls(
            chunk_chars=parse_char_limit(env.get(SUMMARY_CHUNK_CHARS_ENV), DEFAULT_SUMMARY_CHUNK_CHARS)
        )

    @property
    def chunking_enabled(self) -> bool:
        return self.chunk_chars > 0


@dataclass(frozen=True)
class SessionSummaryInstructions:
    """Instruction text and the file it came from (None for the built-in text)."""

    text: str
    path: Path | None = None


def load_session_summary_instructions(path: str | Path | None = None) -> SessionSummaryInstructions:
    """Load session summary instructions from a markdown file.

    Read fresh on every call so edits take effect on the next run.

    Args:
        path: Instruction file. If None or blank, ./prompts/worklog-session-summary.md
            is tried.

    Returns:
        The file's stripped text, or the built-in instructions if the file is
        missing, unreadable or empty.
    """
    if path is not None and str(path).strip():
        candidate = Path(str(path).strip()).expanduser()
    else:
        candidate = Path.cwd() / DEFAULT_INSTRUCTIONS_PATH

    if candidate.exists():
        try:
            text = candidate.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read summary instructions {candidate}: {e}")
        else:
            if text:
                return SessionSummaryInstructions(text=text, path=candidate)

    return SessionSummaryInstructions(text=DEFAULT_SESSION_SUMMARY_INSTRUCTIONS)
