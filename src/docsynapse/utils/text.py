"""Text helpers including simple character-window chunking."""

from __future__ import annotations

from typing import Iterable, Iterator


def chunk_text(text: str, *, max_chars: int = 1000, overlap: int = 200) -> Iterator[str]:
    """Split text into overlapping character chunks.

    Windows of ``max_chars`` start every ``max_chars - overlap`` characters and
    stop once a window reaches the end of the text, so text that fits in one
    window yields exactly one chunk. The last chunk may be shorter.
    """
    if max_chars <= 0:
        raise ValueError("max_chars must be positive")
    if overlap < 0 or overlap >= max_chars:
        raise ValueError("overlap must be in [0, max_chars)")

    step = max_chars - overlap
    start = 0
    while start < len(text):
        end = start + max_chars
        yield text[start:end]
        if end >= len(text):
            break
        start += step


def truncate(text: str, limit: int, *, marker: str = "...") -> str:
    """Cut ``text`` to ``limit`` characters, appending ``marker`` when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def normalize_whitespace(lines: Iterable[str]) -> str:
    """Collapse whitespace and join lines."""
    return "\n".join(line.strip() for line in lines if line.strip())
