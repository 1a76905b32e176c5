"""Size-bounded chunking of violation reports."""

from __future__ import annotations

from typing import Optional, Sequence

SEPARATOR = "\n\n"
NO_VIOLATIONS = "No violations found."


def byte_size(text: str) -> int:
    return len(text.encode("utf-8"))


def chunk_report(
    entries: Sequence[str],
    max_bytes: int,
    separator: str = SEPARATOR,
    empty_message: str = NO_VIOLATIONS,
) -> list[str]:
    """Greedily pack entries into as few chunks as possible.

    Entries are joined with ``separator`` and never split; a chunk is flushed
    when the next entry would push it past ``max_bytes``. Every entry must fit
    on its own. An empty input yields a single ``empty_message`` chunk.
    """

    if max_bytes <= 0:
        raise ValueError("max_bytes must be positive")
    if not entries:
        return [empty_message]

    chunks: list[str] = []
    current: Optional[str] = None
    for entry in entries:
        if byte_size(entry) > max_bytes:
            raise ValueError(f"Report entry of {byte_size(entry)} bytes exceeds {max_bytes}")
        if current is None:
            current = entry
            continue
        candidate = f"{current}{separator}{entry}"
        if byte_size(candidate) > max_bytes:
            chunks.append(current)
            current = entry
        else:
            current = candidate
    if current is not None:
        chunks.append(current)
    return chunks
