# tests/test_deduplicator.py
"""Unit tests for per-device deduplication."""

import itertools

from connector_sync.services.deduplicator import deduplicate_pairs, to_device_pairs


class TestDeduplicatePairs:
    def test_highest_count_wins_in_any_order(self):
        pairs = [("X1", 1), ("X1", 3), ("X1", 2)]
        for ordering in itertools.permutations(pairs):
            assert deduplicate_pairs(ordering) == [("X1", 3)]

    def test_one_entry_per_device(self):
        result = deduplicate_pairs([("X1", 1), ("X1", 2), ("X2", 3)])
        assert sorted(result) == [("X1", 2), ("X2", 3)]

    def test_zero_count_device_kept(self):
        assert deduplicate_pairs([("X1", 0)]) == [("X1", 0)]

    def test_empty(self):
        assert deduplicate_pairs([]) == []


class TestToDevicePairs:
    def test_topics_mapped_to_device_ids(self):
        counts = {
            "eu/sweet-home/X1/status-control/connectors-count": 1,
            "us/sweet-home/X1/status-control/connectors-count": 2,
            "eu/sweet-home/X2/status-control/connectors-count": 3,
        }
        assert sorted(to_device_pairs(counts)) == [("X1", 1), ("X1", 2), ("X2", 3)]

    def test_malformed_topic_skipped(self):
        counts = {"broken": 5, "eu/sweet-home/X2/status-control/connectors-count": 3}
        assert to_device_pairs(counts) == [("X2", 3)]
