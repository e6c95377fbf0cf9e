"""
Representative chunk sampling under a processing budget.

Very large documents produce far more chunks than are worth sending to the
extraction service. Sampling keeps the first and last chunk (document
framing) plus evenly spaced interior chunks, in document order.
"""

from typing import Optional, Sequence, TypeVar

MB = 1024 * 1024

# (upper size bound in bytes, max chunks); last tier has no bound
SIZE_TIERS: list[tuple[Optional[int], int]] = [
    (3 * MB, 3),
    (10 * MB, 4),
    (None, 5),
]

T = TypeVar("T")


def max_chunks_for_size(size_bytes: int) -> int:
    """Default chunk budget for a document of the given encoded size."""
    for bound, budget in SIZE_TIERS:
        if bound is None or size_bytes < bound:
            return budget
    return SIZE_TIERS[-1][1]


def sample_chunks(chunks: Sequence[T], max_chunks: int) -> list[T]:
    """
    Reduce chunks to at most `max_chunks`, preserving order.

    Args:
        chunks: All chunks of a document, in order
        max_chunks: Budget M (>= 1)

    Returns:
        The chunks unchanged when len <= M, otherwise exactly M chunks:
        first, last, and chunks[i * step] for i in 1..M-2 where
        step = (len - 2) // (M - 1).
    """
    if max_chunks < 1:
        raise ValueError("max_chunks must be at least 1")

    total = len(chunks)
    if total <= max_chunks:
        return list(chunks)

    selected = {0}
    if max_chunks >= 2:
        selected.add(total - 1)

    if max_chunks > 2:
        step = max(1, (total - 2) // (max_chunks - 1))
        for i in range(1, max_chunks - 1):
            selected.add(min(max(i * step, 1), total - 2))

    return [chunks[i] for i in sorted(selected)]
