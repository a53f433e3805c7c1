"""Split long digests into chunks on message boundaries."""

from __future__ import annotations

import math
import re

# Split before each "[User]:" / "[Assistant]:" fragment
_FRAGMENT_BOUNDARY_RE = re.compile(r"\n\n(?=\[(?:User|Assistant)\]:)")

CHUNK_SEPARATOR = "\n\n"


def split_digest_into_chunks(digest: str, target_chars: int, max_chunks: int) -> list[str]:
    """Group digest fragments into chunks of roughly ``target_chars``.

    A fragment is never split, so a single oversized fragment becomes its
    own chunk. When more than ``max_chunks`` chunks result, neighbours are
    merged by ``rebalance_chunks``.

    Args:
        digest: Conversation digest.
        target_chars: Chunk size to aim for. 0 or below means one chunk.
        max_chunks: Upper bound on the number of chunks returned.

    Returns:
        Chunks in digest order; ``[digest]`` when it already fits.
    """
    if target_chars <= 0 or len(digest) <= target_chars:
        return [digest]

    entries = [entry.strip() for entry in _FRAGMENT_BOUNDARY_RE.split(digest)]
    entries = [entry for entry in entries if entry]
    if not entries:
        return [digest]

    chunks: list[str] = []
    current = ""
    for entry in entries:
        candidate = f"{current}{CHUNK_SEPARATOR}{entry}" if current else entry
        if len(candidate) > target_chars and current:
            chunks.append(current)
            current = entry
            continue
        current = candidate

    if current:
        chunks.append(current)

    return rebalance_chunks(chunks, max_chunks)


def rebalance_chunks(chunks: list[str], max_chunks: int) -> list[str]:
    """Merge consecutive chunks in equal-sized groups until at most ``max_chunks`` remain."""
    if max_chunks <= 0 or len(chunks) <= max_chunks:
        return chunks

    group_size = math.ceil(len(chunks) / max_chunks)
    return [
        CHUNK_SEPARATOR.join(chunks[index : index + group_size])
        for index in range(0, len(chunks), group_size)
    ]
