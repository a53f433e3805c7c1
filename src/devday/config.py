"""Configuration file support.

Settings come from TOML files merged over built-in defaults, then from
environment variables. CLI options are applied on top by the caller.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from .backends.claude_code import DEFAULT_CLAUDE_HOME
from .backends.codex import DEFAULT_SESSIONS_DIR
from .backends.copilot import DEFAULT_SESSION_STATE_DIR
from .backends.cursor import default_state_db
from .backends.opencode import DEFAULT_STORAGE_DIR
from .digest import (
    DIGEST_MAX_CHARS_ENV,
    MESSAGE_MAX_CHARS_ENV,
    DigestOptions,
    parse_char_limit,
)
from .protocol import ToolKind
from .summarizer.client import DEFAULT_MAX_TOKENS, LLM_TIMEOUT_SECONDS
from .summarizer.config import SUMMARY_CHUNK_CHARS_ENV, SummaryOptions

# Python 3.11+ has tomllib in stdlib, earlier versions need tomli
try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)

SUMMARIZER_ENV = "DEVDAY_SUMMARIZER"
OPENAI_API_KEY_ENV = "OPENAI_API_KEY"
ANTHROPIC_API_KEY_ENV = "ANTHROPIC_API_KEY"

SUMMARIZER_CHOICES = ("auto", "openai", "anthropic", "none")


@dataclass
class ToolPaths:
    """Where each source keeps its history."""

    opencode_storage: Path = DEFAULT_STORAGE_DIR
    claude_code_home: Path = DEFAULT_CLAUDE_HOME
    cursor_state_db: Path = field(default_factory=default_state_db)
    codex_sessions: Path = DEFAULT_SESSIONS_DIR
    copilot_session_state: Path = DEFAULT_SESSION_STATE_DIR

    def for_tool(self, tool: ToolKind) -> Path:
        return {
            ToolKind.OPENCODE: self.opencode_storage,
            ToolKind.CLAUDE_CODE: self.claude_code_home,
            ToolKind.CURSOR: self.cursor_state_db,
            ToolKind.CODEX: self.codex_sessions,
            ToolKind.COPILOT: self.copilot_session_state,
        }[tool]


@dataclass
class DevDayConfig:
    """Resolved settings for one devday run."""

    enabled_tools: list[ToolKind] = field(default_factory=lambda: list(ToolKind))
    paths: ToolPaths = field(default_factory=ToolPaths)
    preferred_summarizer: str = "none"  # "openai", "anthropic" or "none"
    openai_api_key: str | None = None
    anthropic_api_key: str | None = None
    summarizer_model: str | None = None
    summary_max_tokens: int = DEFAULT_MAX_TOKENS
    summary_timeout: float = LLM_TIMEOUT_SECONDS
    git_author_filter: str | None = None
    digest: DigestOptions = field(default_factory=DigestOptions)
    summary: SummaryOptions = field(default_factory=SummaryOptions)
    summary_instructions: str | None = None
    obsidian_vault: str | None = None
    note_timezone: str | None = None  # IANA name; None means local time

    @property
    def summarization_enabled(self) -> bool:
        return self.preferred_summarizer != "none"


_PATH_KEYS = {f.name for f in fields(ToolPaths)}

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "enabled_tools": [tool.value for tool in ToolKind],
    "paths": {},
    "summarizer": {
        "provider": "auto",
        "openai_api_key": None,
        "anthropic_api_key": None,
        "model": None,
        "max_tokens": DEFAULT_MAX_TOKENS,
        "timeout": LLM_TIMEOUT_SECONDS,
    },
    "git": {
        "author": None,
    },
    "digest": {
        "max_chars": DigestOptions().max_chars,
        "message_max_chars": DigestOptions().message_max_chars,
    },
    "summary": {
        "chunk_chars": SummaryOptions().chunk_chars,
        "max_chunks": SummaryOptions().max_chunks,
        "instructions": None,
    },
    "worklog": {
        "obsidian_vault": None,
        "timezone": None,
    },
}


def get_config_paths() -> list[Path]:
    """Get list of config file paths to check, in priority order.

    Lower priority files are listed first so they get overridden by later ones.

    Checks:
    1. ~/.config/devday/config.toml (global user config)
    2. .devday.toml (project-local config)

    Returns:
        List of paths to check (may not all exist).
    """
    return [
        Path.home() / ".config" / "devday" / "config.toml",
        Path(".devday.toml"),
    ]


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries.

    Args:
        base: Base dictionary (lower priority).
        override: Override dictionary (higher priority).

    Returns:
        Merged dictionary with override values taking precedence.
    """
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _parse_tools(values: Any) -> list[ToolKind]:
    tools = []
    for value in values if isinstance(values, list) else []:
        try:
            tools.append(ToolKind(value))
        except ValueError:
            logger.warning(f"Ignoring unknown tool in config: {value!r}")
    return tools


def _number(section: dict[str, Any], key: str, default: Any, convert: Callable[[Any], Any] = int) -> Any:
    """Convert ``section[key]``, warning and keeping ``default`` if it is not a number."""
    value = section.get(key, default)
    if not isinstance(value, bool):
        try:
            return convert(value)
        except (TypeError, ValueError):
            pass
    logger.warning(f"Ignoring non-numeric config value {key} = {value!r}")
    return default


def _resolve_summarizer(provider: str, openai_key: str | None, anthropic_key: str | None) -> str:
    """Pick the provider actually usable with the available keys."""
    provider = (provider or "auto").lower()
    if provider not in SUMMARIZER_CHOICES:
        logger.warning(f"Unknown summarizer {provider!r}, falling back to auto")
        provider = "auto"
    if provider == "openai":
        return "openai" if openai_key else "none"
    if provider == "anthropic":
        return "anthropic" if anthropic_key else "none"
    if provider == "none":
        return "none"
    if openai_key:
        return "openai"
    if anthropic_key:
        return "anthropic"
    return "none"


def config_from_dict(data: dict[str, Any], environ: Mapping[str, str] | None = None) -> DevDayConfig:
    """Build a DevDayConfig from merged TOML data, applying environment overrides.

    Args:
        data: Merged dictionary (see DEFAULT_CONFIG for the layout).
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        Resolved configuration.
    """
    env = os.environ if environ is None else environ

    paths_data = data.get("paths", {})
    path_overrides = {
        key: Path(str(value)).expanduser()
        for key, value in paths_data.items()
        if key in _PATH_KEYS and value
    }
    paths = replace(ToolPaths(), **path_overrides)

    summarizer = data.get("summarizer", {})
    openai_key = env.get(OPENAI_API_KEY_ENV) or summarizer.get("openai_api_key")
    anthropic_key = env.get(ANTHROPIC_API_KEY_ENV) or summarizer.get("anthropic_api_key")
    provider = env.get(SUMMARIZER_ENV) or summarizer.get("provider") or "auto"

    digest_data = data.get("digest", {})
    file_digest_max = _number(digest_data, "max_chars", DigestOptions().max_chars)
    file_message_max = _number(digest_data, "message_max_chars", DigestOptions().message_max_chars)
    digest = DigestOptions(
        max_chars=parse_char_limit(env.get(DIGEST_MAX_CHARS_ENV), file_digest_max),
        message_max_chars=parse_char_limit(env.get(MESSAGE_MAX_CHARS_ENV), file_message_max),
    )

    summary_data = data.get("summary", {})
    file_chunk_chars = _number(summary_data, "chunk_chars", SummaryOptions().chunk_chars)
    summary = SummaryOptions(
        chunk_chars=parse_char_limit(env.get(SUMMARY_CHUNK_CHARS_ENV), file_chunk_chars),
        max_chunks=_number(summary_data, "max_chunks", SummaryOptions().max_chunks),
    )

    worklog = data.get("worklog", {})
    return DevDayConfig(
        enabled_tools=_parse_tools(data.get("enabled_tools", [])),
        paths=paths,
        preferred_summarizer=_resolve_summarizer(provider, openai_key, anthropic_key),
        openai_api_key=openai_key,
        anthropic_api_key=anthropic_key,
        summarizer_model=summarizer.get("model"),
        summary_max_tokens=_number(summarizer, "max_tokens", DEFAULT_MAX_TOKENS),
        summary_timeout=_number(summarizer, "timeout", LLM_TIMEOUT_SECONDS, float),
        git_author_filter=data.get("git", {}).get("author"),
        digest=digest,
        summary=summary,
        summary_instructions=summary_data.get("instructions"),
        obsidian_vault=worklog.get("obsidian_vault"),
        note_timezone=worklog.get("timezone"),
    )


def load_config(
    config_paths: list[Path] | None = None,
    environ: Mapping[str, str] | None = None,
) -> DevDayConfig:
    """Load configuration from TOML files.

    Loads and merges config files in order of priority (later files override
    earlier ones). Starts with DEFAULT_CONFIG as the base. Environment
    variables override file values.

    Args:
        config_paths: List of paths to check. If None, uses get_config_paths().
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        DevDayConfig with merged values.
    """
    if config_paths is None:
        config_paths = get_config_paths()

    # Start with defaults
    merged: dict[str, Any] = _deep_merge({}, DEFAULT_CONFIG)

    for path in config_paths:
        if not path.exists():
            continue

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
            merged = _deep_merge(merged, data)
            logger.debug(f"Loaded config from {path}")
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Failed to parse config file {path}: {e}")

    return config_from_dict(merged, environ)
