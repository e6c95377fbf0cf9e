"""
Document chunking module.

Splits documents into chunks respecting natural boundaries and samples a
representative subset when a document is too large to process whole.
"""

from .sampler import max_chunks_for_size, sample_chunks
from .splitter import Chunk, ChunkSplitter, iter_chunks, split_text

__all__ = [
    "Chunk",
    "ChunkSplitter",
    "iter_chunks",
    "split_text",
    "sample_chunks",
    "max_chunks_for_size",
]
