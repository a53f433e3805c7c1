"""Source parsers and the parser registry.

Parsers run in registration order: opencode, claude-code, cursor, codex,
copilot.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..digest import DigestOptions
from ..protocol import Parser, ToolKind
from .base import BaseParser
from .claude_code import ClaudeCodeParser
from .codex import CodexParser
from .copilot import CopilotParser
from .cursor import CursorParser
from .opencode import OpenCodeParser

if TYPE_CHECKING:
    from ..config import DevDayConfig

logger = logging.getLogger(__name__)

PARSER_REGISTRY: dict[ToolKind, type[BaseParser]] = {
    ToolKind.OPENCODE: OpenCodeParser,
    ToolKind.CLAUDE_CODE: ClaudeCodeParser,
    ToolKind.CURSOR: CursorParser,
    ToolKind.CODEX: CodexParser,
    ToolKind.COPILOT: CopilotParser,
}


def build_parsers(config: DevDayConfig, digest_options: DigestOptions | None = None) -> list[Parser]:
    """Instantiate a parser for every enabled tool, in registration order."""
    options = digest_options or config.digest
    parsers: list[Parser] = []
    for tool, parser_cls in PARSER_REGISTRY.items():
        if tool not in config.enabled_tools:
            continue
        root = config.paths.for_tool(tool)
        logger.debug(f"{tool.value} root: {root}")
        parsers.append(parser_cls(root, digest_options=options))
    return parsers


__all__ = [
    "PARSER_REGISTRY",
    "BaseParser",
    "ClaudeCodeParser",
    "CodexParser",
    "CopilotParser",
    "CursorParser",
    "OpenCodeParser",
    "build_parsers",
]
