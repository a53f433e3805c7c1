"""Conversation digest building and truncation.

A digest is the ``[User]: ...`` / ``[Assistant]: ...`` transcript kept on
each session. Long digests keep their beginning and end so summaries still
see both the setup and the outcome of a session.
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

TRUNCATION_MARKER = "\n\n[...truncated middle section...]\n\n"

# Marker text as it may appear inside a single message
_MARKER_BODY = TRUNCATION_MARKER.strip()
_NEUTRALIZED_MARKER_BODY = "[... truncated middle section ...]"

FRAGMENT_SEPARATOR = "\n\n"
ELLIPSIS = "..."

DEFAULT_DIGEST_MAX_CHARS = 8_000
DEFAULT_MESSAGE_MAX_CHARS = 500

DIGEST_MAX_CHARS_ENV = "DEVDAY_DIGEST_MAX_CHARS"
MESSAGE_MAX_CHARS_ENV = "DEVDAY_DIGEST_MESSAGE_MAX_CHARS"


def parse_char_limit(value: str | None, default: int) -> int:
    """Parse a non-negative integer limit from a string.

    Absent, blank or invalid values (including negatives) return ``default``.
    """
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value.strip())
    except ValueError:
        return default
    if parsed < 0:
        return default
    return parsed


@dataclass(frozen=True)
class DigestOptions:
    """Size limits for conversation digests.

    Attributes:
        max_chars: Cap on the assembled digest. 0 or below disables it.
        message_max_chars: Cap on each message fragment. 0 or below disables it.
    """

    max_chars: int = DEFAULT_DIGEST_MAX_CHARS
    message_max_chars: int = DEFAULT_MESSAGE_MAX_CHARS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DigestOptions:
        """Read overrides from the environment, keeping defaults otherwise."""
        env = os.environ if environ is None else environ
        return cls(
            max_chars=parse_char_limit(env.get(DIGEST_MAX_CHARS_ENV), DEFAULT_DIGEST_MAX_CHARS),
            message_max_chars=parse_char_limit(
                env.get(MESSAGE_MAX_CHARS_ENV), DEFAULT_MESSAGE_MAX_CHARS
            ),
        )

    @classmethod
    def unlimited(cls) -> DigestOptions:
        return cls(max_chars=0, message_max_chars=0)


def truncate_digest_message_text(text: str, max_chars: int = DEFAULT_MESSAGE_MAX_CHARS) -> str:
    """Cap one message's text, appending an ellipsis when cut."""
    if max_chars <= 0 or len(text) <= max_chars:
        return text
    return text[:max_chars] + ELLIPSIS


def format_digest_fragment(role: str, text: str, options: DigestOptions | None = None) -> str:
    """Format one ``[Role]: text`` fragment with the per-message cap applied."""
    options = options or DigestOptions()
    clean = text.replace(_MARKER_BODY, _NEUTRALIZED_MARKER_BODY)
    return f"[{role}]: {truncate_digest_message_text(clean, options.message_max_chars)}"


def truncate_conversation_digest(digest: str, max_chars: int = DEFAULT_DIGEST_MAX_CHARS) -> str:
    """Keep the head and tail of a long digest, joined by the marker.

    Digests that already fit are returned unchanged. The result is never
    longer than ``max_chars``.
    """
    if max_chars <= 0 or len(digest) <= max_chars:
        return digest

    marker_length = len(TRUNCATION_MARKER)
    if max_chars <= marker_length:
        # No room for the marker
        return digest[:max_chars]

    budget = max_chars - marker_length
    head_chars = int(budget * 0.55)
    tail_chars = budget - head_chars

    head = digest[:head_chars].rstrip()
    tail = digest[-tail_chars:].lstrip() if tail_chars > 0 else ""

    return f"{head}{TRUNCATION_MARKER}{tail}"


def is_digest_truncated(digest: str) -> bool:
    """True if ``digest`` was cut by ``truncate_conversation_digest``.

    Detection relies on the marker, so it does not hold for caps of
    ``len(TRUNCATION_MARKER)`` or less: those yield a plain prefix and
    report False.
    """
    return bool(digest) and TRUNCATION_MARKER in digest


def build_conversation_digest(
    fragments: Iterable[str],
    options: DigestOptions | None = None,
) -> str:
    """Join formatted fragments and apply the digest cap."""
    options = options or DigestOptions()
    digest = FRAGMENT_SEPARATOR.join(f for f in fragments if f)
    return truncate_conversation_digest(digest, options.max_chars)
