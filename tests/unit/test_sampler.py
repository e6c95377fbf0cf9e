"""
Tests for chunk sampling.
"""

import pytest

from reqingest.chunking.sampler import MB, max_chunks_for_size, sample_chunks


class TestSampleChunks:
    """Tests for sample_chunks."""

    def test_under_budget_unchanged(self):
        """Test inputs within budget come back as-is."""
        assert sample_chunks([0, 1, 2], 5) == [0, 1, 2]
        assert sample_chunks([0, 1, 2], 3) == [0, 1, 2]

    def test_empty(self):
        """Test empty input."""
        assert sample_chunks([], 3) == []

    def test_forty_chunks_budget_five(self):
        """Test even spacing: step = (40 - 2) // 4 = 9."""
        assert sample_chunks(list(range(40)), 5) == [0, 9, 18, 27, 39]

    def test_keeps_first_and_last(self):
        """Test the document framing chunks are always kept."""
        chunks = list(range(100))
        for budget in range(2, 10):
            sampled = sample_chunks(chunks, budget)
            assert sampled[0] == 0
            assert sampled[-1] == 99

    def test_exact_budget_distinct_and_ordered(self):
        """Test exactly M distinct chunks in document order whenever len > M."""
        for total in range(3, 60):
            for budget in range(2, total):
                sampled = sample_chunks(list(range(total)), budget)
                assert len(sampled) == budget
                assert sampled == sorted(set(sampled))

    def test_budget_two(self):
        """Test budget of two keeps only the ends."""
        assert sample_chunks(list(range(10)), 2) == [0, 9]

    def test_budget_one(self):
        """Test budget of one keeps the first chunk."""
        assert sample_chunks(list(range(10)), 1) == [0]

    def test_invalid_budget(self):
        """Test a budget below one is rejected."""
        with pytest.raises(ValueError):
            sample_chunks([0, 1, 2], 0)

    def test_works_on_any_sequence(self):
        """Test sampling generic items, not just chunk objects."""
        assert sample_chunks("abcdefghij", 3) == ["a", "e", "j"]


class TestMaxChunksForSize:
    """Tests for size tiers."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, 3),
            (1 * MB, 3),
            (3 * MB - 1, 3),
            (3 * MB, 4),
            (9 * MB, 4),
            (10 * MB, 5),
            (500 * MB, 5),
        ],
    )
    def test_tiers(self, size, expected):
        """Test budget by document size."""
        assert max_chunks_for_size(size) == expected
