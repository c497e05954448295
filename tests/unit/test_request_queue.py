"""
Unit tests for the pending-request queue.
"""

import pytest

from lendshelf.lending.request_queue import RequestQueue, AlreadyPresent, NotPresent


class TestRequestQueue:
    """Tests for RequestQueue."""

    def test_add_preserves_insertion_order(self):
        queue = RequestQueue()
        queue.add("r2")
        queue.add("r1")
        queue.add("r3")

        assert queue.to_list() == ["r2", "r1", "r3"]
        assert len(queue) == 3

    def test_add_twice_raises(self):
        queue = RequestQueue(["r1"])

        with pytest.raises(AlreadyPresent):
            queue.add("r1")
        assert queue.to_list() == ["r1"]

    def test_remove(self):
        queue = RequestQueue(["r1", "r2", "r3"])
        queue.remove("r2")

        assert queue.to_list() == ["r1", "r3"]
        assert not queue.contains("r2")

    def test_remove_missing_raises(self):
        queue = RequestQueue(["r1"])

        with pytest.raises(NotPresent):
            queue.remove("r2")

    def test_clear(self):
        queue = RequestQueue(["r1", "r2"])
        queue.clear()

        assert queue.to_list() == []
        assert len(queue) == 0

    def test_membership(self):
        queue = RequestQueue(["r1"])

        assert queue.contains("r1")
        assert "r1" in queue
        assert "r9" not in queue

    def test_loading_drops_duplicates(self):
        """Duplicate ids in stored data collapse to the first occurrence."""
        queue = RequestQueue(["r1", "r2", "r1"])

        assert queue.to_list() == ["r1", "r2"]

    def test_snapshot_is_independent(self):
        queue = RequestQueue(["r1"])
        snapshot = queue.to_list()
        snapshot.append("r2")

        assert queue.to_list() == ["r1"]
