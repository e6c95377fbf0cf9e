"""
Requirement extraction: LLM client and result aggregation.
"""

from .aggregator import aggregate_results, deduplicate_items
from .client import ExtractionClient, ExtractionContext, items_per_chunk, parse_items

__all__ = [
    "ExtractionClient",
    "ExtractionContext",
    "items_per_chunk",
    "parse_items",
    "aggregate_results",
    "deduplicate_items",
]
