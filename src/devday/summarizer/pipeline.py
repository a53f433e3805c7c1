"""Session and recap summarization with ordered fallbacks.

Each session summary tries, in order: the chunked path (for digests longer
than the chunk size), a single whole-digest call, and finally a
deterministic summary built from the session itself. Calls run one at a
time.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import replace
from enum import Enum

from ..protocol import Session, SessionKey
from ..recap import DayRecap, ProjectSummary
from .chunking import split_digest_into_chunks
from .client import SummarizerClient, SummaryResult
from .config import DEFAULT_SESSION_SUMMARY_INSTRUCTIONS, SummaryOptions
from .prompts import (
    NO_TRANSCRIPT,
    build_chunk_summary_prompt,
    build_chunk_synthesis_prompt,
    build_project_summary_prompt,
    build_session_prompt,
    build_standup_prompt,
    extract_first_user_message,
    extract_last_assistant_message,
    extract_tool_names,
    format_files,
    truncate_sentence,
)

logger = logging.getLogger(__name__)

EMPTY_SUMMARY_TEXT = "We completed focused development work in this session."
DEFAULT_STANDUP_BULLETS = 5

CHALLENGE_KEYWORDS = ("issue", "error", "fail", "problem", "challenge", "debug")

_BULLET_PREFIX_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")

Attempt = Callable[[], Awaitable[SummaryResult]]


class SummaryShape(str, Enum):
    PROSE = "prose"
    BULLETS = "bullets"


def normalize_summary(
    text: str,
    shape: SummaryShape = SummaryShape.PROSE,
    max_bullets: int = DEFAULT_STANDUP_BULLETS,
) -> str:
    """Tidy model output.

    Trailing whitespace is trimmed per line and outer blank lines removed.
    ``SummaryShape.BULLETS`` rewrites non-empty lines as at most
    ``max_bullets`` ``- `` bullets.
    """
    cleaned = "\n".join(line.rstrip() for line in text.split("\n")).strip()
    if shape == SummaryShape.BULLETS:
        bullets = []
        for line in cleaned.split("\n"):
            body = _BULLET_PREFIX_RE.sub("", line).strip()
            if body:
                bullets.append(f"- {body}")
        cleaned = "\n".join(bullets[:max_bullets])
    return cleaned or EMPTY_SUMMARY_TEXT


def looks_like_challenge(text: str) -> bool:
    normalized = text.lower()
    return any(keyword in normalized for keyword in CHALLENGE_KEYWORDS)


def build_fallback_session_summary(session: Session, project: ProjectSummary) -> str:
    """Deterministic prose summary used when no model output is available."""
    first_user = extract_first_user_message(session.conversation_digest)
    last_assistant = extract_last_assistant_message(session.conversation_digest)
    files = format_files(session.files_touched, project.project_path)[:5]
    tools = extract_tool_names(session)[:4]

    topic = session.title or f"a {session.tool.value} task"
    sentences = [f"In this session we worked on {topic} in {project.project_name}."]

    if first_user:
        sentences.append(f"We started by focusing on {truncate_sentence(first_user, 180)}.")
        if looks_like_challenge(first_user):
            sentences.append("A key part of the session was working through that challenge to keep momentum.")

    if tools:
        sentences.append(f"As the work progressed, we relied on {', '.join(tools)} to move the task forward.")

    if last_assistant:
        sentences.append(f"By the end, we had reached a stable outcome: {truncate_sentence(last_assistant, 180)}.")

    if files:
        sentences.append(f"The most relevant files we touched were {', '.join(files)}.")

    return " ".join(sentences)


async def first_success(attempts: Iterable[Attempt]) -> SummaryResult:
    """Run attempts in order and return the first successful result.

    Returns a failure carrying every attempt's reason if none succeed.
    """
    reasons = []
    for attempt in attempts:
        result = await attempt()
        if result.ok:
            return result
        reasons.append(result.error or "unknown")
    return SummaryResult.failure("; ".join(reasons) or "no attempts")


async def summarize_chunked(
    client: SummarizerClient,
    project: ProjectSummary,
    session: Session,
    instructions: str,
    digest: str,
    options: SummaryOptions,
) -> SummaryResult:
    """Summarize each chunk, then synthesize.

    If synthesis fails, the chunk summaries joined by blank lines are the
    result. Fails only when no chunk could be summarized.
    """
    chunks = split_digest_into_chunks(digest, options.chunk_chars, options.max_chunks)
    logger.debug(f"Summarizing session {session.id} in {len(chunks)} chunk(s)")

    chunk_summaries = []
    for index, chunk in enumerate(chunks, start=1):
        prompt = build_chunk_summary_prompt(project, session, instructions, chunk, index, len(chunks))
        result = await client.complete(prompt)
        if result.ok:
            chunk_summaries.append(normalize_summary(result.text))
        else:
            logger.debug(f"Chunk {index}/{len(chunks)} of {session.id} failed: {result.error}")

    if not chunk_summaries:
        return SummaryResult.failure("no chunk summaries")

    synthesis_prompt = build_chunk_synthesis_prompt(
        project, session, instructions, chunk_summaries, len(chunks)
    )
    synthesized = await client.complete(synthesis_prompt)
    if synthesized.ok:
        return synthesized
    logger.debug(f"Synthesis for {session.id} failed ({synthesized.error}); joining chunk summaries")
    return SummaryResult.success("\n\n".join(chunk_summaries))


async def summarize_session(
    project: ProjectSummary,
    session: Session,
    client: SummarizerClient | None,
    instructions: str = DEFAULT_SESSION_SUMMARY_INSTRUCTIONS,
    options: SummaryOptions | None = None,
) -> str:
    """Summarize one session, falling back to the deterministic summary."""
    options = options or SummaryOptions()
    if client is None:
        return build_fallback_session_summary(session, project)

    digest = session.conversation_digest or NO_TRANSCRIPT
    whole_prompt = build_session_prompt(project, session, instructions, digest)

    attempts: list[Attempt] = []
    if options.chunking_enabled and len(digest) > options.chunk_chars:
        attempts.append(lambda: summarize_chunked(client, project, session, instructions, digest, options))
    attempts.append(lambda: client.complete(whole_prompt))

    result = await first_success(attempts)
    if result.ok:
        return normalize_summary(result.text)
    logger.debug(f"Using fallback summary for session {session.id}: {result.error}")
    return build_fallback_session_summary(session, project)


async def build_session_summaries(
    recap: DayRecap,
    client: SummarizerClient | None,
    instructions: str = DEFAULT_SESSION_SUMMARY_INSTRUCTIONS,
    options: SummaryOptions | None = None,
) -> dict[SessionKey, str]:
    """Summaries keyed by (tool, session id), in project order then start time."""
    summaries: dict[SessionKey, str] = {}
    for project in recap.projects:
        for session in project.sorted_sessions():
            summaries[session.key] = await summarize_session(project, session, client, instructions, options)
    return summaries


async def summarize_recap(
    recap: DayRecap,
    client: SummarizerClient | None,
    max_bullets: int = DEFAULT_STANDUP_BULLETS,
) -> DayRecap:
    """Add a prose summary per project and a bullet standup message.

    Failed calls leave the corresponding field empty.
    """
    if client is None:
        return recap

    projects = []
    for project in recap.projects:
        result = await client.complete(build_project_summary_prompt(project))
        ai_summary = normalize_summary(result.text) if result.ok else None
        if not result.ok:
            logger.debug(f"Project summary for {project.project_name} failed: {result.error}")
        projects.append(replace(project, ai_summary=ai_summary))

    project_lines = []
    for project in projects:
        detail = project.ai_summary or "; ".join(
            s.title for s in project.sorted_sessions() if s.title
        ) or f"{project.total_sessions} session(s)"
        project_lines.append(f"{project.project_name}: {detail}")

    standup = await client.complete(build_standup_prompt(project_lines, max_bullets))
    standup_message = None
    if standup.ok:
        standup_message = normalize_summary(standup.text, SummaryShape.BULLETS, max_bullets)
    else:
        logger.debug(f"Standup summary failed: {standup.error}")

    return replace(recap, projects=projects, standup_message=standup_message)
