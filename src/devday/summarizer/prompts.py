"""Prompt building and transcript heuristics for session summaries."""

from __future__ import annotations

import os
import re
from typing import TYPE_CHECKING

from ..backends.shared import shorten_home_path
from ..digest import is_digest_truncated
from ..protocol import Session

if TYPE_CHECKING:
    from ..recap import ProjectSummary

NO_TRANSCRIPT = "No transcript text available."

MAX_TIMELINE_ENTRIES = 36
MAX_TIMELINE_ENTRY_CHARS = 200
MAX_LISTED_FILES = 8
MAX_TOOL_NAMES = 12
MAX_SKILL_NAMES = 8
MAX_EVIDENCE_SIGNALS = 12

_COMMIT_RE = re.compile(r"\b(?:commit\s+)?([0-9a-f]{7,12})\b", re.IGNORECASE)
_PR_RE = re.compile(r"\bPR\s*#\s*(\d+)\b", re.IGNORECASE)
_BUILD_RE = re.compile(r"\bbuild\s*#?\s*(\d+)\b", re.IGNORECASE)
_UUID_RE = re.compile(
    r"\b[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}\b", re.IGNORECASE
)

_DOLLAR_SKILL_RE = re.compile(r"\$([a-z][a-z0-9-]+)")
_SLASH_SKILL_RE = re.compile(r"(?:^|\n)\s*/([a-z][a-z0-9-]+)", re.MULTILINE)
IGNORED_SKILL_NAMES = frozenset(
    {
        "users",
        "tmp",
        "var",
        "src",
        "github",
        "com",
        "home",
        "local",
        "workspace",
        "environment",
        "codex-thread-id",
    }
)

_TOOL_NAME_CHARS_RE = re.compile(r"[^a-zA-Z0-9_.-]")
_WHITESPACE_RE = re.compile(r"\s+")

# Injected instruction blocks and noise removed before a message is quoted
_SANITIZE_PATTERNS = [
    re.compile(
        r"#\s*AGENTS\.md instructions.*?(?=<environment_context>|</environment_context>|\Z)",
        re.IGNORECASE | re.DOTALL,
    ),
    re.compile(r"<INSTRUCTIONS>.*?</INSTRUCTIONS>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<INSTRUCTIONS>.*\Z", re.IGNORECASE | re.DOTALL),
    re.compile(r"</?INSTRUCTIONS>", re.IGNORECASE),
    re.compile(r"#\s*AGENTS\.md instructions.*?(?=\n\n|\Z)", re.IGNORECASE | re.DOTALL),
    re.compile(r"<environment_context>.*?</environment_context>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<instructions>.*?</instructions>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<skill>.*?</skill>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<agent_instructions>.*?</agent_instructions>", re.IGNORECASE | re.DOTALL),
    re.compile(r"##\s*Commit Trailer Policy.*?(?=\n##|\n#|\Z)", re.IGNORECASE | re.DOTALL),
    re.compile(r"Co-authored-by:[^\n]*", re.IGNORECASE),
    re.compile(r"Session-ID:[^\n]*", re.IGNORECASE),
    re.compile(r"```.*?```", re.DOTALL),
]


def truncate_sentence(value: str, max_len: int) -> str:
    clean = _WHITESPACE_RE.sub(" ", value).strip()
    if len(clean) <= max_len:
        return clean
    return clean[: max_len - 3] + "..."


def sanitize_transcript_message(text: str) -> str:
    """Strip injected instructions, code fences and trailers; collapse whitespace."""
    out = text
    for pattern in _SANITIZE_PATTERNS:
        out = pattern.sub(" ", out)
    return _WHITESPACE_RE.sub(" ", out).strip()


def _messages_by_role(digest: str, role: str) -> list[str]:
    pattern = re.compile(
        rf"\[{role}\]:\s*(.*?)(?=\n\n\[(?:User|Assistant)\]:|\Z)", re.DOTALL
    )
    matches = []
    for match in pattern.finditer(digest or ""):
        sanitized = sanitize_transcript_message(match.group(1))
        if sanitized:
            matches.append(sanitized)
    return matches


def extract_first_user_message(digest: str) -> str | None:
    messages = _messages_by_role(digest, "User")
    return messages[0] if messages else None


def extract_last_assistant_message(digest: str) -> str | None:
    messages = _messages_by_role(digest, "Assistant")
    return messages[-1] if messages else None


def extract_tool_names(session: Session) -> list[str]:
    """Distinct tool names from the session's tool-call summary lines."""
    names: dict[str, None] = {}
    for summary in session.tool_call_summaries:
        clean = summary.strip()
        if not clean:
            continue
        if clean.startswith("bash:"):
            tool = "bash"
        elif ":" in clean:
            tool = clean.split(":", 1)[0]
        else:
            tool = clean.split()[0]
        tool = _TOOL_NAME_CHARS_RE.sub("", tool)
        if not tool:
            continue
        names[tool] = None
        if len(names) >= MAX_TOOL_NAMES:
            break
    return list(names)


def extract_skill_names(session: Session) -> list[str]:
    """Skill invocations (``$skill`` or a leading ``/skill``) mentioned in the digest."""
    text = session.conversation_digest
    if not text:
        return []

    names: dict[str, None] = {}
    for match in _DOLLAR_SKILL_RE.finditer(text):
        candidate = match.group(1).lower()
        if candidate not in IGNORED_SKILL_NAMES:
            names[candidate] = None
    for match in _SLASH_SKILL_RE.finditer(text):
        candidate = match.group(1).lower()
        if len(candidate) >= 3 and candidate not in IGNORED_SKILL_NAMES:
            names[candidate] = None
    return list(names)[:MAX_SKILL_NAMES]


def extract_evidence_signals(session: Session) -> list[str]:
    """Concrete identifiers (commits, PRs, builds, UUIDs) mentioned in the session."""
    source = session.conversation_digest + "\n" + "\n".join(session.tool_call_summaries)
    values: dict[str, None] = {}

    for match in _COMMIT_RE.finditer(source):
        candidate = match.group(1)
        # Plain words like "defaced" are not commit ids
        if any(ch.isdigit() for ch in candidate):
            values[f"commit {candidate}"] = None
    for match in _PR_RE.finditer(source):
        values[f"PR #{match.group(1)}"] = None
    for match in _BUILD_RE.finditer(source):
        values[f"build {match.group(1)}"] = None
    for match in _UUID_RE.finditer(source):
        values[f"id {match.group(0)}"] = None

    return list(values)[:MAX_EVIDENCE_SIGNALS]


def format_files(files: tuple[str, ...] | list[str], project_path: str | None) -> list[str]:
    """First distinct files, relative to the project where possible."""
    unique = [f for f in dict.fromkeys(files) if f][:MAX_LISTED_FILES]
    root = project_path.rstrip(os.sep) if project_path else None
    formatted = []
    for file_path in unique:
        if root and file_path == root:
            formatted.append(".")
        elif root and file_path.startswith(root + os.sep):
            formatted.append(os.path.relpath(file_path, root))
        else:
            formatted.append(shorten_home_path(file_path))
    return formatted


def format_tool_timeline(tool_call_summaries: tuple[str, ...] | list[str]) -> str:
    """Numbered tool activity list; long timelines keep their head and tail."""
    entries = [
        truncate_sentence(value.strip(), MAX_TIMELINE_ENTRY_CHARS)
        for value in tool_call_summaries
        if value.strip()
    ]
    if not entries:
        return "None"

    half = MAX_TIMELINE_ENTRIES // 2
    sampled = entries[:half] + entries[-half:] if len(entries) > MAX_TIMELINE_ENTRIES else entries
    omitted = len(entries) - len(sampled)

    lines = [f"{index}. {entry}" for index, entry in enumerate(sampled, start=1)]
    if omitted > 0:
        lines.append(f"... ({omitted} additional tool events omitted from the middle)")
    return "\n".join(lines)


def build_session_context_block(project: ProjectSummary, session: Session, digest: str) -> str:
    files = ", ".join(format_files(session.files_touched, project.project_path)) or "None"
    tools = ", ".join(extract_tool_names(session)) or "None"
    skills = ", ".join(extract_skill_names(session)) or "None"
    native_summary = (session.summary or "").strip() or "None"
    evidence = ", ".join(extract_evidence_signals(session)) or "None"

    return "\n".join(
        [
            f"- Project: {project.project_name}",
            f"- Session title: {session.title or 'Untitled'}",
            f"- Agent: {session.tool.value}",
            f"- Start: {session.started_at.isoformat()}",
            f"- End: {session.ended_at.isoformat()}",
            f"- Message counts: {session.message_count} total "
            f"({session.user_message_count} user, {session.assistant_message_count} assistant)",
            f"- Native session summary: {native_summary}",
            f"- Transcript truncated: {'yes' if is_digest_truncated(digest) else 'no'}",
            f"- Files touched: {files}",
            f"- Tools used: {tools}",
            f"- Skills used: {skills}",
            f"- Evidence signals: {evidence}",
        ]
    )


def build_session_prompt(project: ProjectSummary, session: Session, instructions: str, digest: str) -> str:
    context = build_session_context_block(project, session, digest)
    timeline = format_tool_timeline(session.tool_call_summaries)
    return (
        f"{instructions}\n\n"
        f"## Session Context\n{context}\n\n"
        f"## Tool Activity Timeline\n{timeline}\n\n"
        f"## Conversation digest\n{digest}\n"
    )


def build_chunk_summary_prompt(
    project: ProjectSummary,
    session: Session,
    instructions: str,
    chunk: str,
    chunk_index: int,
    total_chunks: int,
) -> str:
    context = build_session_context_block(project, session, chunk)
    return (
        f"{instructions}\n\n"
        f"You are summarizing chunk {chunk_index} of {total_chunks} from one long session.\n"
        "Focus only on what happened in this chunk and keep it concise.\n\n"
        f"## Session Context\n{context}\n\n"
        f"## Digest chunk ({chunk_index}/{total_chunks})\n{chunk}\n"
    )


def build_chunk_synthesis_prompt(
    project: ProjectSummary,
    session: Session,
    instructions: str,
    chunk_summaries: list[str],
    total_chunks: int,
) -> str:
    digest = session.conversation_digest or NO_TRANSCRIPT
    context = build_session_context_block(project, session, digest)
    numbered = "\n\n".join(
        f"Chunk {index}:\n{summary}" for index, summary in enumerate(chunk_summaries, start=1)
    )
    return (
        f"{instructions}\n\n"
        f"Synthesize these {total_chunks} chunk summaries into one cohesive session summary.\n"
        "Ensure the final writeup covers the overall progression from early work to final outcomes.\n\n"
        f"## Session Context\n{context}\n\n"
        f"## Chunk Summaries\n{numbered}\n"
    )


def build_project_summary_prompt(project: ProjectSummary) -> str:
    """Prompt for a short prose summary of one project's day."""
    lines = [
        "Summarize what was accomplished in this project today in 2-3 sentences.",
        "Write in first-person plural. Skip token, cost and model details.",
        "",
        f"Project: {project.project_name}",
        "",
        "Sessions:",
    ]
    for session in project.sessions:
        title = session.title or "Untitled session"
        lines.append(f"- {title} ({session.tool.value}, {session.message_count} messages)")
        first_user = extract_first_user_message(session.conversation_digest)
        if first_user:
            lines.append(f"  Asked: {truncate_sentence(first_user, 200)}")
        last_assistant = extract_last_assistant_message(session.conversation_digest)
        if last_assistant:
            lines.append(f"  Outcome: {truncate_sentence(last_assistant, 200)}")
    if project.git and project.git.commits:
        lines.append("")
        lines.append("Commits:")
        for commit in project.git.commits[:10]:
            lines.append(f"- {commit.short_hash} {commit.message}")
    return "\n".join(lines) + "\n"


def build_standup_prompt(project_lines: list[str], max_bullets: int) -> str:
    """Prompt for a bullet-point standup message across all projects."""
    body = "\n".join(project_lines)
    return (
        f"Write a standup update with at most {max_bullets} bullet points, each starting with '- '.\n"
        "Cover what was done today across these projects. Be concrete and brief.\n"
        "Skip token, cost and model details.\n\n"
        f"{body}\n"
    )
