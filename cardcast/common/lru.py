"""Bounded least-recently-used mapping shared by the pipeline caches."""

from __future__ import annotations

import threading
from collections import OrderedDict


class LRUCache[K, V]:
    """Thread-safe LRU mapping with a fixed capacity.

    Lookups move the entry to the most-recently-used end; inserting beyond
    ``capacity`` evicts the least-recently-used entry.

    Parameters
    ----------
    capacity
        Maximum number of entries held at once. Must be positive.

    """

    def __init__(self, capacity: int) -> None:
        """Create an empty cache bounded at ``capacity`` entries."""
        if capacity < 1:
            msg = f"LRU capacity must be positive, got: {capacity}"
            raise ValueError(msg)
        self._capacity = capacity
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        """Return the maximum number of cached entries."""
        return self._capacity

    def __len__(self) -> int:
        """Return the number of cached entries."""
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        """Return whether ``key`` is cached without touching recency."""
        with self._lock:
            return key in self._entries

    def get(self, key: K) -> V | None:
        """Return the cached value for ``key`` or ``None`` on a miss."""
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
            return value

    def put(self, key: K, value: V) -> None:
        """Insert or refresh ``key``, evicting the oldest entry when full."""
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            if len(self._entries) > self._capacity:
                self._entries.popitem(last=False)

    def get_or_put(self, key: K, value: V) -> V:
        """Return the existing value for ``key``, inserting ``value`` if absent."""
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                self._entries.move_to_end(key)
                return existing
            self._entries[key] = value
            if len(self._entries) > self._capacity:
                self._entries.popitem(last=False)
            return value

    def clear(self) -> None:
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()
