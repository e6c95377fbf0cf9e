"""
Tests for result aggregation.
"""

import pytest

from reqingest.errors import AggregationError
from reqingest.extraction.aggregator import aggregate_results, deduplicate_items
from reqingest.schema.items import ExtractedItem


def _item(title, description="", chunk=0):
    return ExtractedItem(title=title, description=description, source_chunk_index=chunk)


class TestDeduplicateItems:
    """Tests for deduplicate_items."""

    def test_case_and_whitespace_insensitive(self):
        """Test titles differing only in case/outer whitespace collapse."""
        items = deduplicate_items([_item("Login Flow", "first"), _item("  login flow ", "second")])

        assert len(items) == 1
        assert items[0].description == "first"

    def test_distinct_titles_kept(self):
        """Test near-duplicates with different wording are both kept."""
        items = deduplicate_items([_item("Login flow"), _item("Login flows")])
        assert len(items) == 2

    def test_empty_items_dropped(self):
        """Test items with neither title nor description are removed."""
        items = deduplicate_items([_item(""), _item("Audit log")])
        assert [i.title for i in items] == ["Audit log"]

    def test_untitled_items_keyed_by_description(self):
        """Test untitled items are not all collapsed into one."""
        items = deduplicate_items([_item("", "Export to CSV"), _item("", "Export to PDF")])
        assert len(items) == 2


class TestAggregateResults:
    """Tests for aggregate_results."""

    def test_chunk_order_not_completion_order(self):
        """Test output follows chunk index whatever order results arrive in."""
        results = {
            27: [_item("Reporting", chunk=27)],
            0: [_item("Login", chunk=0)],
            9: [_item("Billing", chunk=9)],
        }
        aggregated = aggregate_results(results, chunks_total=40)

        assert [i.title for i in aggregated.items] == ["Login", "Billing", "Reporting"]
        assert aggregated.chunks_total == 40
        assert aggregated.chunks_processed == 3

    def test_first_occurrence_wins(self):
        """Test the earliest chunk's copy of a duplicate is kept."""
        results = [
            (5, [_item("login flow", "late", chunk=5)]),
            (1, [_item("Login Flow", "early", chunk=1)]),
        ]
        aggregated = aggregate_results(results)

        assert len(aggregated.items) == 1
        assert aggregated.items[0].description == "early"
        assert aggregated.items_before_dedup == 2

    def test_counters(self):
        """Test processed/failed/total counters."""
        aggregated = aggregate_results({0: [], 1: [_item("A")]}, chunks_total=3, chunks_failed=1)
        summary = aggregated.summary()

        assert summary == {
            "items": 1,
            "items_before_dedup": 1,
            "chunks_total": 3,
            "chunks_processed": 2,
            "chunks_failed": 1,
        }

    def test_empty(self):
        """Test no results."""
        aggregated = aggregate_results({})
        assert aggregated.items == []
        assert aggregated.chunks_processed == 0

    def test_repeated_chunk_index(self):
        """Test a chunk reported twice is treated as a defect."""
        with pytest.raises(AggregationError):
            aggregate_results([(1, [_item("A")]), (1, [_item("B")])])
