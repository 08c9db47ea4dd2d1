"""Unit tests for the shared LRU cache."""

from __future__ import annotations

import pytest

from cardcast.common.lru import LRUCache


class TestLRUCache:
    """Tests for ``LRUCache`` capacity and recency handling."""

    def test_rejects_non_positive_capacity(self) -> None:
        """A cache must hold at least one entry."""
        with pytest.raises(ValueError, match="positive"):
            LRUCache[str, int](0)

    def test_evicts_least_recently_used(self) -> None:
        """Inserting past capacity drops the oldest untouched entry."""
        cache: LRUCache[str, int] = LRUCache(2)
        cache.put("a", 1)
        cache.put("b", 2)
        assert cache.get("a") == 1, "Expected a hit for 'a'"
        cache.put("c", 3)

        assert "b" not in cache, "Expected 'b' to be evicted after 'a' was read"
        assert "a" in cache, "Expected recently read 'a' to survive"
        assert len(cache) == 2, "Cache should stay at capacity"

    def test_get_or_put_keeps_existing_value(self) -> None:
        """get_or_put returns the first value stored for a key."""
        cache: LRUCache[str, int] = LRUCache(3)

        first = cache.get_or_put("k", 1)
        second = cache.get_or_put("k", 2)

        assert (first, second) == (1, 1), "Expected the first value to win"

    def test_clear_empties_cache(self) -> None:
        """clear drops every entry."""
        cache: LRUCache[str, int] = LRUCache(3)
        cache.put("a", 1)
        cache.clear()
        assert len(cache) == 0, "Expected an empty cache after clear"
        assert cache.get("a") is None, "Expected a miss after clear"
