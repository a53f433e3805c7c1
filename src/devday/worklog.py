"""Markdown worklog and Obsidian inbox notes.

Both outputs are rendered from Jinja2 templates in ``devday/templates``.
Session summaries come from the summarizer; any session without one gets
the deterministic fallback summary.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jinja2 import Environment, PackageLoader

from .protocol import Session, SessionKey
from .recap import DayRecap, ProjectSummary
from .summarizer.pipeline import build_fallback_session_summary
from .summarizer.prompts import (
    extract_first_user_message,
    extract_last_assistant_message,
    extract_skill_names,
    extract_tool_names,
    format_files,
    sanitize_transcript_message,
    truncate_sentence,
)

logger = logging.getLogger(__name__)

DEFAULT_VAULT_DIRNAME = "obsidian-notebook"
DEFAULT_NOTE_SOURCE = "devday --worklog --write-obsidian-inbox"
DEFAULT_NOTE_AGENT = "devday"
MAX_NOTE_LINKS = 8
MAX_HEADING_CHARS = 90

_HEADING_PREFIX_PATTERNS = [
    re.compile(r"^(please|kindly)\s+", re.IGNORECASE),
    re.compile(r"^(can you|could you|would you|will you)\s+", re.IGNORECASE),
    re.compile(r"^(let's|lets)\s+", re.IGNORECASE),
    re.compile(r"^(i need to|we need to)\s+", re.IGNORECASE),
]
_QUOTES_RE = re.compile(r"^[\"'`]+|[\"'`]+$")
_TRAILING_PUNCT_RE = re.compile(r"[.?!:;]+$")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def escape_yaml_string(value: Any) -> str:
    """Escape a value for use inside a double-quoted YAML string."""
    return str(value if value is not None else "").replace("\\", "\\\\").replace('"', '\\"')


_jinja_env = Environment(
    loader=PackageLoader("devday", "templates"),
    autoescape=False,
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
)
_jinja_env.filters["yaml_escape"] = escape_yaml_string


@dataclass(frozen=True)
class ObsidianEntry:
    file_path: Path
    content: str


def resolve_timezone(name: str | None) -> tzinfo | None:
    """Look up an IANA zone name; None (or an unknown name) means local time."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(f"Unknown timezone {name!r}, using local time: {e}")
        return None


def format_local_clock(dt: datetime, tz: tzinfo | None = None) -> str:
    """12-hour clock time, e.g. ``9:05 am``."""
    local = dt.astimezone(tz)
    hour = local.hour % 12 or 12
    suffix = "am" if local.hour < 12 else "pm"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_duration(ms: int) -> str:
    if ms <= 0:
        return "0s"
    seconds = ms // 1000
    if seconds < 60:
        return f"{seconds}s"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m"
    return f"{minutes // 60}h {minutes % 60}m"


def format_note_timestamp(dt: datetime, tz: tzinfo | None = None) -> tuple[str, str]:
    """Return (ISO timestamp with offset, filename stamp) in ``tz``."""
    local = dt.astimezone(tz)
    iso = local.replace(microsecond=0).isoformat()
    return iso, local.strftime("%Y-%m-%d-%H%M%S")


def slugify(value: str) -> str:
    return _SLUG_RE.sub("-", value.lower()).strip("-")


def expand_home(path_value: str) -> str:
    if path_value == "~":
        return str(Path.home())
    if path_value.startswith("~/"):
        return str(Path.home() / path_value[2:])
    return path_value


def resolve_vault_path(value: str | None) -> Path:
    """Vault directory from user input, defaulting to ~/obsidian-notebook."""
    if not value or not value.strip():
        return Path.home() / DEFAULT_VAULT_DIRNAME
    return Path(expand_home(value.strip()))


def to_friendly_heading(value: str) -> str:
    """Turn a prompt-like string into a short capitalized heading."""
    clean = sanitize_transcript_message(value)
    clean = _QUOTES_RE.sub("", clean)
    clean = re.sub(r"\s+", " ", clean).strip()

    updated = True
    while updated:
        updated = False
        for pattern in _HEADING_PREFIX_PATTERNS:
            stripped = pattern.sub("", clean, count=1)
            if stripped != clean:
                clean = stripped.lstrip()
                updated = True

    clean = _TRAILING_PUNCT_RE.sub("", clean).strip()
    if not clean:
        return ""
    capped = truncate_sentence(clean, MAX_HEADING_CHARS)
    return capped[:1].upper() + capped[1:]


def build_session_heading_title(session: Session) -> str:
    candidates = [
        session.title,
        session.summary,
        extract_first_user_message(session.conversation_digest),
        extract_last_assistant_message(session.conversation_digest),
    ]
    for candidate in candidates:
        if not candidate:
            continue
        friendly = to_friendly_heading(candidate)
        if friendly:
            return friendly
    return f"Work session ({session.tool.value})"


def _session_view(
    project: ProjectSummary,
    session: Session,
    summaries: dict[SessionKey, str] | None,
    tz: tzinfo | None,
) -> dict[str, Any]:
    summary = (summaries or {}).get(session.key) or build_fallback_session_summary(session, project)
    return {
        "id": session.id,
        "tool": session.tool.value,
        "title": session.title or "Untitled session",
        "heading": build_session_heading_title(session),
        "start": format_local_clock(session.started_at, tz),
        "end": format_local_clock(session.ended_at, tz),
        "duration": format_duration(session.duration_ms),
        "summary": summary.strip(),
        "tools": extract_tool_names(session),
        "skills": extract_skill_names(session),
        "files": format_files(session.files_touched, project.project_path),
    }


def build_worklog_markdown(
    recap: DayRecap,
    session_summaries: dict[SessionKey, str] | None = None,
    tz: tzinfo | None = None,
) -> str:
    """Detailed per-project worklog. No token or cost figures."""
    projects = []
    for project in recap.projects:
        commits = list(project.git.commits[:8]) if project.git else []
        projects.append(
            {
                "name": project.project_name,
                "sessions": [
                    _session_view(project, s, session_summaries, tz) for s in project.sorted_sessions()
                ],
                "commits": commits,
            }
        )
    template = _jinja_env.get_template("worklog.md.j2")
    return template.render(date=recap.date, projects=projects).rstrip() + "\n"


def build_obsidian_inbox_entries(
    recap: DayRecap,
    vault_path: Path | str,
    cwd: str,
    title: str | None = None,
    source: str = DEFAULT_NOTE_SOURCE,
    agent: str = DEFAULT_NOTE_AGENT,
    now: datetime | None = None,
    session_summaries: dict[SessionKey, str] | None = None,
    tz: tzinfo | None = None,
) -> list[ObsidianEntry]:
    """One inbox note per session, in project order then start time.

    Args:
        recap: The day's recap.
        vault_path: Obsidian vault root; notes go to ``<vault>/inbox``.
        cwd: Fallback working directory for sessions without a project path.
        title: Note title override. Defaults to "<project>: <session title>".
        source: Command recorded in the note frontmatter.
        agent: Tool name recorded in the note frontmatter.
        now: Creation time (defaults to the current time).
        session_summaries: Summaries by (tool, session id).
        tz: Timezone for timestamps and file names (None for local time).

    Returns:
        Entries with their target paths and rendered content.
    """
    now = now or datetime.now(timezone.utc)
    created_at, _ = format_note_timestamp(now, tz)
    template = _jinja_env.get_template("obsidian_note.md.j2")

    entries = []
    index = 0
    for project in recap.projects:
        for session in project.sorted_sessions():
            index += 1
            note_title = title or f"{project.project_name}: {session.title or 'Session worklog'}"
            slug = slugify(note_title) or "update"
            _, started_stamp = format_note_timestamp(session.started_at, tz)
            file_path = Path(vault_path) / "inbox" / f"{started_stamp}-{slug}-{session.id[:8]}-{index}.md"

            links = []
            if session.project_path:
                links.append(session.project_path)
            links.extend(session.files_touched[:MAX_NOTE_LINKS])

            content = template.render(
                title=note_title,
                created_at=created_at,
                cwd=session.project_path or cwd,
                date=recap.date,
                project_name=project.project_name,
                tool_name=agent,
                source=source,
                links=links,
                session=_session_view(project, session, session_summaries, tz),
            )
            entries.append(ObsidianEntry(file_path=file_path, content=content.rstrip() + "\n"))
    return entries


def write_obsidian_inbox_entries(recap: DayRecap, vault_path: Path | str, **kwargs) -> list[Path]:
    """Write inbox notes to disk and return their paths.

    Raises:
        OSError: If the inbox directory or a note cannot be written.
    """
    written = []
    for entry in build_obsidian_inbox_entries(recap, vault_path, **kwargs):
        entry.file_path.parent.mkdir(parents=True, exist_ok=True)
        entry.file_path.write_text(entry.content, encoding="utf-8")
        logger.debug(f"Wrote {entry.file_path}")
        written.append(entry.file_path)
    return written
