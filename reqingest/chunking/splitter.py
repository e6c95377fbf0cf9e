"""
Size-bounded text splitting at natural boundaries.

Break preference, searched backward inside the tail of each window:
paragraph (\\n\\n) > sentence end (". X") > whitespace > hard cut.

Consecutive chunks share up to `overlap` characters of context. Only one
window of text is materialised at a time when iterating with iter_chunks().
"""

import re
from dataclasses import dataclass
from typing import Iterator

DEFAULT_CHUNK_SIZE = 8000
DEFAULT_OVERLAP = 800
DEFAULT_SEARCH_WINDOW = 1000

_SENTENCE_END = re.compile(r"[.!?]\s+[A-Z]")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class Chunk:
    """A contiguous slice of the source text."""

    index: int
    text: str
    is_first: bool
    is_last: bool
    start: int
    end: int

    def __len__(self) -> int:
        return len(self.text)


def _find_break(text: str, start: int, end: int, search_window: int) -> int:
    """Best cut point in (start, end], searching the last `search_window` chars."""
    window_start = max(end - search_window, start)
    region = text[window_start:end]

    para = region.rfind("\n\n")
    if para >= 0:
        return window_start + para + 2

    last_sentence = None
    for match in _SENTENCE_END.finditer(region):
        last_sentence = match
    if last_sentence is not None:
        # Cut before the capital letter; the whitespace stays with this chunk
        return window_start + last_sentence.end() - 1

    last_space = None
    for match in _WHITESPACE.finditer(region):
        last_space = match
    if last_space is not None and window_start + last_space.end() > start:
        return window_start + last_space.end()

    return end


def _word_start(text: str, pos: int, limit: int) -> int:
    """Move pos forward until it no longer sits inside an alphanumeric run."""
    while pos < limit and text[pos - 1].isalnum() and text[pos].isalnum():
        pos += 1
    return pos


def iter_chunks(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    search_window: int = DEFAULT_SEARCH_WINDOW,
) -> Iterator[Chunk]:
    """
    Lazily split text into chunks.

    Args:
        text: Document text
        chunk_size: Maximum characters per chunk
        overlap: Characters shared between consecutive chunks
        search_window: How far back from a window end to look for a boundary

    Yields:
        Chunks in document order
    """
    doc_len = len(text)
    if doc_len == 0:
        return

    if doc_len <= chunk_size:
        yield Chunk(index=0, text=text, is_first=True, is_last=True, start=0, end=doc_len)
        return

    cursor = 0
    index = 0
    while cursor < doc_len:
        end = min(cursor + chunk_size, doc_len)
        cut = end if end == doc_len else _find_break(text, cursor, end, search_window)
        is_last = cut == doc_len

        yield Chunk(
            index=index,
            text=text[cursor:cut],
            is_first=index == 0,
            is_last=is_last,
            start=cursor,
            end=cut,
        )
        if is_last:
            return

        index += 1
        next_cursor = max(cursor, cut - overlap)
        if next_cursor <= cursor:
            next_cursor = cut
        cursor = _word_start(text, next_cursor, cut)


def split_text(
    text: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    overlap: int = DEFAULT_OVERLAP,
    search_window: int = DEFAULT_SEARCH_WINDOW,
) -> list[Chunk]:
    """Split text into a list of chunks. See iter_chunks()."""
    return list(iter_chunks(text, chunk_size, overlap, search_window))


class ChunkSplitter:
    """
    Split documents into size-bounded chunks with natural boundaries.

    Never raises on input text; degrades to hard cuts when a window has no
    paragraph, sentence or word boundary.
    """

    def __init__(
        self,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        overlap: int = DEFAULT_OVERLAP,
        search_window: int = DEFAULT_SEARCH_WINDOW,
    ) -> None:
        """
        Initialize splitter.

        Args:
            chunk_size: Maximum characters per chunk
            overlap: Overlap between chunks, must be smaller than chunk_size
            search_window: Boundary search distance, capped at chunk_size
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= overlap < chunk_size:
            raise ValueError("overlap must be in [0, chunk_size)")

        self.chunk_size = chunk_size
        self.overlap = overlap
        self.search_window = min(max(1, search_window), chunk_size)

    def split(self, text: str) -> list[Chunk]:
        return split_text(text, self.chunk_size, self.overlap, self.search_window)

    def iter(self, text: str) -> Iterator[Chunk]:
        return iter_chunks(text, self.chunk_size, self.overlap, self.search_window)
