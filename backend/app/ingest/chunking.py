"""Chunking utilities."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List

from ..core.config import settings

DEFAULT_CHUNK_SIZE = settings.INGEST_CHUNK_SIZE
DEFAULT_CHUNK_OVERLAP = settings.INGEST_CHUNK_OVERLAP


@dataclass(slots=True)
class Chunk:
    """A slice of the source text and its position in the sequence."""

    index: int
    text: str
    start: int
    end: int


def chunk_text(
    text: str,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> List[Chunk]:
    """Split a block of text using a sliding window strategy.

    Windows of ``chunk_size`` characters start every ``chunk_size - overlap``
    characters until a window reaches the end of the text. The last window
    may be shorter; nothing is padded, stripped or normalised, so every chunk
    is an exact slice of ``text``.
    """

    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if overlap < 0 or overlap >= chunk_size:
        raise ValueError("overlap must be non-negative and smaller than chunk_size")

    results: list[Chunk] = []
    start = 0
    length = len(text)
    while start < length:
        end = min(start + chunk_size, length)
        results.append(Chunk(index=len(results), text=text[start:end], start=start, end=end))
        if end >= length:
            break
        start += chunk_size - overlap

    return results
