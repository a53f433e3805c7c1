"""Token usage extraction across differently-labelled sources.

Each semantic bucket has an ordered list of alias keys. A record is
searched at its top level first and then through a fixed list of nested
container keys, so supporting a new source usually means adding aliases to
a schema rather than new parsing code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .records import as_record, number_or_none

# Bucket -> alias keys, in priority order
USAGE_FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "input": (
        "input_tokens",
        "prompt_tokens",
        "inputTokens",
        "promptTokens",
        "inputTokenCount",
        "promptTokenCount",
    ),
    "output": (
        "output_tokens",
        "completion_tokens",
        "outputTokens",
        "completionTokens",
        "outputTokenCount",
        "completionTokenCount",
    ),
    "reasoning": (
        "reasoning_tokens",
        "reasoning_output_tokens",
        "reasoningTokens",
        "reasoningTokenCount",
    ),
    "cache_read": (
        "cached_input_tokens",
        "cached_tokens",
        "cache_read_tokens",
        "cache_read_input_tokens",
        "cacheReadTokens",
        "cachedInputTokens",
    ),
    "cache_write": (
        "cache_creation_input_tokens",
        "cache_creation_tokens",
        "cache_write_tokens",
        "cacheWriteTokens",
        "cacheCreationInputTokens",
    ),
}

# Containers searched, in order, when a bucket is missing at the current level
NESTED_USAGE_KEYS: tuple[str, ...] = (
    "usage",
    "tokenUsage",
    "tokens",
    "tokenCount",
    "metrics",
    "result",
    "info",
    "last_token_usage",
)

MAX_USAGE_DEPTH = 3


@dataclass(frozen=True)
class UsageSchema:
    """Alias table and nested container keys for one family of sources."""

    aliases: dict[str, tuple[str, ...]]
    nested_keys: tuple[str, ...] = NESTED_USAGE_KEYS
    max_depth: int = MAX_USAGE_DEPTH

    def extend(
        self,
        aliases: dict[str, tuple[str, ...]] | None = None,
        nested_keys: tuple[str, ...] = (),
    ) -> UsageSchema:
        """Copy with extra aliases appended at lowest priority."""
        extra = aliases or {}
        merged = {bucket: keys + extra.get(bucket, ()) for bucket, keys in self.aliases.items()}
        return UsageSchema(merged, self.nested_keys + nested_keys, self.max_depth)


DEFAULT_USAGE_SCHEMA = UsageSchema(USAGE_FIELD_ALIASES)


def find_usage_value(
    record: Any,
    aliases: tuple[str, ...],
    schema: UsageSchema = DEFAULT_USAGE_SCHEMA,
    depth: int = 0,
) -> float | None:
    """First numeric alias value at this level, else in nested containers."""
    if depth > schema.max_depth:
        return None
    rec = as_record(record)
    if rec is None:
        return None

    for key in aliases:
        value = number_or_none(rec.get(key))
        if value is not None:
            return value

    for key in schema.nested_keys:
        nested = find_usage_value(rec.get(key), aliases, schema, depth + 1)
        if nested is not None:
            return nested
    return None


def extract_usage(record: Any, schema: UsageSchema = DEFAULT_USAGE_SCHEMA) -> dict[str, int] | None:
    """Read all five buckets from a record.

    Returns None if no bucket matched, otherwise a dict with every bucket
    (unmatched ones set to 0).
    """
    found: dict[str, int] = {}
    matched = False
    for bucket, aliases in schema.aliases.items():
        value = find_usage_value(record, aliases, schema)
        if value is not None:
            matched = True
            found[bucket] = max(0, int(value))
        else:
            found[bucket] = 0
    return found if matched else None
