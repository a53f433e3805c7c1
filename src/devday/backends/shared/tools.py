"""Tool-call summaries and file-path harvesting."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .records import as_record, parse_maybe_json, string_from_record

MAX_PATH_LENGTH = 500
MAX_COMMAND_CHARS = 80

# Argument keys checked, in order, for the path shown in a summary line
FILE_PATH_KEYS = ("filePath", "file_path", "path", "file", "filepath", "notebook_path", "target_file")
COMMAND_KEYS = ("command", "cmd")
PATTERN_KEYS = ("pattern", "query", "glob_pattern")

_EXACT_PATH_KEYS = {"cwd", "gitroot", "git_root"}


def shorten_home_path(path_value: str, home: str | None = None) -> str:
    """Replace the home directory prefix with ``~``."""
    home = home if home is not None else str(Path.home())
    if home and path_value.startswith(home):
        return "~" + path_value[len(home):]
    return path_value


def is_path_like_key(key: str) -> bool:
    normalized = key.lower()
    return "path" in normalized or "file" in normalized or normalized in _EXACT_PATH_KEYS


def looks_like_path(value: str) -> bool:
    """Heuristic for filesystem paths: separators or relative/home prefixes, no URLs."""
    if not value or len(value) > MAX_PATH_LENGTH or "\n" in value:
        return False
    lower = value.lower()
    if lower.startswith("http://") or lower.startswith("https://") or "://" in lower:
        return False
    return (
        "/" in value
        or "\\" in value
        or value.startswith("~")
        or value.startswith("./")
        or value.startswith("../")
    )


def collect_file_paths(value: Any, out: dict[str, None]) -> None:
    """Recursively add path-like string values under path-like keys to ``out``.

    ``out`` is used as an insertion-ordered set. JSON encoded strings are
    decoded and searched too.
    """
    if isinstance(value, list):
        for item in value:
            collect_file_paths(item, out)
        return

    rec = as_record(value)
    if rec is None:
        return

    for key, raw in rec.items():
        if isinstance(raw, str):
            parsed = parse_maybe_json(raw)
            if parsed is not raw:
                collect_file_paths(parsed, out)
            elif is_path_like_key(str(key)) and looks_like_path(raw):
                out[raw] = None
        elif isinstance(raw, (dict, list)):
            collect_file_paths(raw, out)


def _command_text(record: dict | None) -> str | None:
    if not record:
        return None
    for key in COMMAND_KEYS:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, list):
            parts = [str(part) for part in value if isinstance(part, (str, int, float))]
            if parts:
                return " ".join(parts)
    return None


def summarize_tool_call(
    name: str | None,
    raw_input: Any,
    files_touched: dict[str, None],
    home: str | None = None,
) -> str:
    """Turn one tool invocation into a short human-readable line.

    Preference order: file path argument, command, search pattern, raw
    string input, bare tool name. Paths found anywhere in the arguments are
    added to ``files_touched``.
    """
    tool_name = name or "tool"
    parsed_input = parse_maybe_json(raw_input)
    collect_file_paths(parsed_input, files_touched)

    record = as_record(parsed_input)
    file_path = string_from_record(record, *FILE_PATH_KEYS)
    if file_path:
        return f"{tool_name} {shorten_home_path(file_path, home)}"

    command = _command_text(record)
    if command:
        return f"bash: {command[:MAX_COMMAND_CHARS]}"

    pattern = string_from_record(record, *PATTERN_KEYS)
    if pattern:
        return f"{tool_name}: {pattern}"

    if isinstance(parsed_input, str) and parsed_input.strip():
        return f"{tool_name}: {parsed_input.strip()[:MAX_COMMAND_CHARS]}"

    return tool_name
