"""Merge per-chunk extraction results into one deduplicated list.

Dedup is exact match on the normalised title (lower-cased, trimmed); the
first occurrence in chunk order wins.
"""

from typing import Iterable, Mapping, Union

from ..errors import AggregationError
from ..schema.items import AggregatedResult, ExtractedItem

ChunkResults = Union[Mapping[int, list[ExtractedItem]], Iterable[tuple[int, list[ExtractedItem]]]]


def deduplicate_items(items: Iterable[ExtractedItem]) -> list[ExtractedItem]:
    """Drop empty items and repeated dedup keys, keeping order."""
    seen: set[str] = set()
    unique: list[ExtractedItem] = []
    for item in items:
        if item.is_empty:
            continue
        key = item.dedup_key
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)
    return unique


def aggregate_results(
    chunk_results: ChunkResults,
    chunks_total: int = 0,
    chunks_failed: int = 0,
) -> AggregatedResult:
    """
    Concatenate chunk results in chunk-index order and deduplicate.

    Args:
        chunk_results: chunk index → items, as a mapping or (index, items) pairs.
                       Completion order does not matter.
        chunks_total: Number of chunks the document was split into
        chunks_failed: Chunks whose extraction call raised

    Returns:
        AggregatedResult with unique items and counters

    Raises:
        AggregationError: the same chunk index appears twice
    """
    pairs = chunk_results.items() if isinstance(chunk_results, Mapping) else chunk_results
    ordered = sorted(pairs, key=lambda pair: pair[0])

    indices = [index for index, _ in ordered]
    if len(set(indices)) != len(indices):
        raise AggregationError("Chunk reported more than once", {"chunk_indices": indices})

    all_items = [item for _, items in ordered for item in items]

    return AggregatedResult(
        items=deduplicate_items(all_items),
        chunks_total=chunks_total or len(ordered),
        chunks_processed=len(ordered),
        chunks_failed=chunks_failed,
        items_before_dedup=len(all_items),
    )
