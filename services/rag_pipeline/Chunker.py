"""Sliding-window text chunker.

Text is whitespace-normalised first (every run of whitespace becomes a single
space, ends are trimmed), so chunk boundaries refer to the normalised text.
"""

import re

MIN_CHUNK_SIZE = 200    # characters; smaller requests are raised to this floor
CHUNK_SIZE = 350        # characters per chunk used by the ingest pipeline
CHUNK_OVERLAP = 60      # characters shared by consecutive chunks

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Collapse whitespace runs to one space and trim both ends."""
    return _WHITESPACE.sub(" ", text).strip()


def clamp_window(size: int, overlap: int) -> tuple[int, int]:
    """Return the effective (size, overlap) pair.

    size is at least MIN_CHUNK_SIZE and overlap lies in [0, size - 1], so the
    window always advances by at least one character.
    """
    size = max(MIN_CHUNK_SIZE, size)
    overlap = min(max(0, overlap), size - 1)
    return size, overlap


def chunk_text(text: str, size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> list[str]:
    """Split text into overlapping fixed-size chunks.

    Each chunk spans [pos, min(pos + size, len)); after a chunk that does not
    reach the end, pos moves to end - overlap. The last chunk always ends at
    the end of the normalised text and may be shorter than size.

    Args:
        text (str): Raw document text.
        size (int): Requested chunk length in characters.
        overlap (int): Requested overlap between consecutive chunks.

    Returns:
        list[str]: Ordered chunks; empty for empty or whitespace-only input.
    """
    size, overlap = clamp_window(size, overlap)
    clean = normalize_text(text)

    chunks: list[str] = []
    pos = 0
    while pos < len(clean):
        end = min(pos + size, len(clean))
        chunks.append(clean[pos:end])
        if end == len(clean):
            break
        pos = end - overlap
    return chunks
