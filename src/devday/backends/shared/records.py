"""Helpers for reading loosely-typed JSON records."""

from __future__ import annotations

import json
import logging
import math
from collections.abc import Iterator
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def as_record(value: Any) -> dict | None:
    """Return ``value`` if it is a JSON object, else None."""
    return value if isinstance(value, dict) else None


def string_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def string_from_record(record: dict | None, *keys: str) -> str | None:
    """First non-empty string value found under ``keys``."""
    if not record:
        return None
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def number_or_none(value: Any) -> float | None:
    """Coerce finite numbers and numeric strings. Booleans are not numbers."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            parsed = float(value)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def parse_maybe_json(value: Any) -> Any:
    """Decode strings that hold a JSON object or array; pass others through."""
    if not isinstance(value, str):
        return value
    trimmed = value.strip()
    if not trimmed or trimmed[0] not in "{[":
        return value
    try:
        return json.loads(trimmed)
    except (json.JSONDecodeError, RecursionError):
        return value


def iter_jsonl(path: Path) -> Iterator[dict]:
    """Yield each JSON object line of a file, skipping malformed lines.

    Raises OSError if the file cannot be opened; callers treat that as an
    unreadable unit.
    """
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except (json.JSONDecodeError, RecursionError):
                continue
            if isinstance(entry, dict):
                yield entry


def read_json_file(path: Path) -> dict | None:
    """Read a JSON object file, returning None if unreadable or malformed."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
        logger.debug(f"Failed to read {path}: {e}")
        return None
    return as_record(data)
