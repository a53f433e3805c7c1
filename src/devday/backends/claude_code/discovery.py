"""Session file discovery for Claude Code.

Claude Code stores one JSONL file per session under
~/.claude/projects/<encoded-project-path>/<session-uuid>.jsonl, where the
folder name is the project path with separators replaced by dashes.
Subagent transcripts live in <session-uuid>/subagents/agent-<id>.jsonl and
belong to their parent session.
"""

from __future__ import annotations

import logging
import urllib.parse
from pathlib import Path

from ..base import find_files

logger = logging.getLogger(__name__)


def is_subagent_session(path: Path) -> bool:
    """Subagent sessions are identified by the 'agent-' filename prefix."""
    return path.name.startswith("agent-")


def find_session_files(projects_dir: Path, include_subagents: bool = False) -> list[Path]:
    """List non-empty session files below ``projects_dir``."""
    sessions = []
    for path in find_files(projects_dir, ".jsonl"):
        if not include_subagents and is_subagent_session(path):
            continue
        try:
            if path.stat().st_size == 0:
                continue
        except OSError:
            continue
        sessions.append(path)
    return sessions


def _decode_path_greedy(encoded: str) -> str | None:
    """Decode an encoded folder name by walking existing directories.

    Filesystem lookups decide which dashes are separators and which are
    part of a directory name (or were underscores).
    """
    current_path = Path("/")
    remaining = encoded

    while remaining:
        dash_positions = [i for i, c in enumerate(remaining) if c == "-"]

        if not dash_positions:
            for segment in (remaining, remaining.replace("-", "_")):
                candidate = current_path / segment
                if candidate.is_dir():
                    return str(candidate)
            return None

        found_segment = False
        for dash_pos in dash_positions:
            segment = remaining[:dash_pos]
            if not segment:
                continue
            for variant in (segment, segment.replace("-", "_")):
                candidate = current_path / variant
                if candidate.is_dir():
                    current_path = candidate
                    remaining = remaining[dash_pos + 1 :]
                    found_segment = True
                    break
            if found_segment:
                break

        if not found_segment:
            for variant in (remaining, remaining.replace("-", "_")):
                candidate = current_path / variant
                if candidate.is_dir():
                    return str(candidate)
            return None

    return str(current_path) if current_path != Path("/") else None


def decode_project_path(session_path: Path, projects_dir: Path) -> str | None:
    """Recover the project directory a session file belongs to.

    Returns None if no existing directory matches the encoded folder name.
    """
    parent = session_path.parent
    if parent.name == "subagents":
        parent = parent.parent.parent
    if parent == projects_dir:
        return None

    folder = urllib.parse.unquote(parent.name).lstrip("-")
    if not folder:
        return None

    # Dotfiles are encoded as a doubled dash: /.config -> --config
    variants = [folder]
    if "--" in folder:
        variants.append(folder.replace("--", "-."))

    for variant in variants:
        decoded = _decode_path_greedy(variant)
        if decoded:
            return decoded
    return None
