"""
Text chunking utilities for the ingestion pipeline.
"""
import re
from dataclasses import dataclass

from sitekb.config import settings

# Preferred break points, strongest first
_SEPARATORS = ("\n\n", ". ", "! ", "? ", "\n", " ")

_WHITESPACE_RUN = re.compile(r"\s{2,}")
_INDENTED_HEADING = re.compile(r"^[ \t]+(?=#)", re.MULTILINE)


@dataclass
class Chunk:
    source_url: str
    text: str
    sequence: int


def effective_overlap(chunk_size: int, chunk_overlap: int) -> int:
    """Overlap actually used: never more than half a chunk."""
    return max(0, min(chunk_overlap, chunk_size // 2))


def _find_break(text: str, lo: int, hi: int) -> int:
    """Position right after the strongest separator in text[lo:hi], or hi."""
    for separator in _SEPARATORS:
        pos = text.rfind(separator, lo, hi)
        if pos != -1:
            return pos + len(separator)
    return hi


def split_text(text: str, chunk_size: int, chunk_overlap: int) -> list[str]:
    """
    Split text into overlapping windows of at most chunk_size characters.

    Consecutive windows share exactly effective_overlap(...) characters, so
    windows[0] + "".join(w[overlap:] for w in windows[1:]) == text.
    Breaks land after a paragraph, sentence, line or word boundary found in
    the second half of the window; otherwise the window is cut hard.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not text:
        return []

    overlap = effective_overlap(chunk_size, chunk_overlap)
    windows: list[str] = []
    start = 0

    while True:
        end = min(start + chunk_size, len(text))
        if end < len(text):
            end = _find_break(text, start + max(chunk_size // 2, overlap), end)

        windows.append(text[start:end])
        if end >= len(text):
            break
        start = end - overlap

    return windows


def tidy_chunk(text: str) -> str:
    """Collapse whitespace runs and left-trim indented heading lines."""
    text = _WHITESPACE_RUN.sub(" ", text)
    text = _INDENTED_HEADING.sub("", text)
    return text.strip()


def chunk_text(
    text: str,
    source_url: str,
    chunk_size: int | None = None,
    chunk_overlap: int | None = None,
) -> list[Chunk]:
    """
    Split normalized page text into ordered chunks.

    Args:
        text: Normalized page text.
        source_url: Page URL carried on every chunk.
        chunk_size: Maximum characters per chunk.
        chunk_overlap: Characters shared by consecutive chunks.

    Returns:
        Chunks in sequence order; empty for empty text.
    """
    chunk_size = chunk_size or settings.chunk_size
    if chunk_overlap is None:
        chunk_overlap = settings.chunk_overlap

    chunks: list[Chunk] = []
    for window in split_text(text, chunk_size, chunk_overlap):
        cleaned = tidy_chunk(window)
        if cleaned:
            chunks.append(Chunk(source_url=source_url, text=cleaned, sequence=len(chunks)))
    return chunks
