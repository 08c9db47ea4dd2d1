"""Concurrent card collection.

Public API
----------
Collector
    Fans out card fetches under a shared semaphore.
CollectError
    Aggregate of per-card failures carrying the partial results.
EmptyRequestError
    Raised when no cards are requested.

"""

from cardcast.collector.errors import CollectError, CollectorError, EmptyRequestError
from cardcast.collector.service import DEFAULT_PARALLEL, Collector

__all__ = [
    "DEFAULT_PARALLEL",
    "CollectError",
    "Collector",
    "CollectorError",
    "EmptyRequestError",
]
