"""Shared extraction utilities for all source parsers."""

from .accumulator import (
    MAX_EVENT_GAP_MS,
    SessionAccumulator,
    compute_active_duration_ms,
    looks_like_system_envelope,
    truncate_prompt,
)
from .records import (
    as_record,
    iter_jsonl,
    number_or_none,
    parse_maybe_json,
    read_json_file,
    string_from_record,
    string_or_none,
)
from .timeutil import DayWindow, day_window, ms_to_datetime, parse_timestamp_ms
from .tools import (
    collect_file_paths,
    is_path_like_key,
    looks_like_path,
    shorten_home_path,
    summarize_tool_call,
)
from .usage import (
    DEFAULT_USAGE_SCHEMA,
    NESTED_USAGE_KEYS,
    USAGE_FIELD_ALIASES,
    UsageSchema,
    extract_usage,
)

__all__ = [
    "MAX_EVENT_GAP_MS",
    "SessionAccumulator",
    "compute_active_duration_ms",
    "looks_like_system_envelope",
    "truncate_prompt",
    "as_record",
    "iter_jsonl",
    "number_or_none",
    "parse_maybe_json",
    "read_json_file",
    "string_from_record",
    "string_or_none",
    "DayWindow",
    "day_window",
    "ms_to_datetime",
    "parse_timestamp_ms",
    "collect_file_paths",
    "is_path_like_key",
    "looks_like_path",
    "shorten_home_path",
    "summarize_tool_call",
    "DEFAULT_USAGE_SCHEMA",
    "NESTED_USAGE_KEYS",
    "USAGE_FIELD_ALIASES",
    "UsageSchema",
    "extract_usage",
]
