# TrainScope — Read-through Query Cache

"""
Read-through layer in front of remote data queries.

fetch() answers from the CacheStore when it can. On a miss it calls the
remote fetch, hands the result straight back, and schedules the cache
write for later so the caller never waits on persistence. A failed write
is logged and otherwise ignored.
"""

import json
from typing import Any, Callable, Optional, Sequence

from PySide6.QtCore import QTimer

from trainscope.core.cache_store import CacheStore
from trainscope.utils.logging import get_logger

logger = get_logger(__name__)

Scheduler = Callable[[Callable[[], None]], None]

# TTL for results of finished runs, which never change again
NEVER_EXPIRES = float("inf")


def defer_to_event_loop(task: Callable[[], None]) -> None:
    """Run task on the next turn of the Qt event loop."""
    QTimer.singleShot(0, task)


def make_cache_key(*parts: Any) -> str:
    """Stable string key for a query (e.g. tenant, project, run, log name)."""
    return json.dumps(list(parts), sort_keys=True, separators=(",", ":"), default=str)


class QueryCache:
    """
    Read-through cache for JSON-serializable query results.

    Usage:
        queries = QueryCache(store)
        rows = queries.fetch(("histogram", org, project, run, log),
                             lambda: source.fetch_histogram_rows(...))
    """

    def __init__(self, store: CacheStore, scheduler: Optional[Scheduler] = None,
                 ttl: Optional[float] = None):
        """
        Args:
            store: Backing bounded store.
            scheduler: Runs a write task later; defaults to the Qt event loop.
            ttl: Freshness window for unfinished runs; defaults to the store's.
        """
        self._store = store
        self._schedule = scheduler or defer_to_event_loop
        self._ttl = ttl
        self._pending = 0
        self.hits = 0
        self.misses = 0

    @property
    def store(self) -> CacheStore:
        return self._store

    @property
    def pending_writes(self) -> int:
        """Scheduled writes that have not run yet."""
        return self._pending

    def fetch(self, key_parts: Sequence[Any], fetch_fn: Callable[[], Any],
              finished: bool = False) -> Any:
        """
        Cached value for key_parts, or the result of fetch_fn().

        Args:
            key_parts: Values identifying the query.
            fetch_fn: Performs the remote query.
            finished: The run has ended, so its data never goes stale and
                is stored without a TTL.

        Returns:
            The (decoded) query result.
        """
        key = make_cache_key(*key_parts)
        raw = self._store.get(key)
        if raw is not None:
            try:
                value = json.loads(raw.decode("utf-8"))
                self.hits += 1
                return value
            except ValueError:
                logger.warning("Dropping undecodable cache entry %s", key)
                self._store.delete(key)

        self.misses += 1
        data = fetch_fn()
        if data:
            ttl = NEVER_EXPIRES if finished else self._ttl
            self._pending += 1
            self._schedule(lambda: self._write(key, data, ttl))
        return data

    def invalidate(self, key_parts: Sequence[Any]) -> bool:
        """Forget one query's cached result."""
        return self._store.delete(make_cache_key(*key_parts))

    def _write(self, key: str, data: Any, ttl: Optional[float]) -> None:
        self._pending -= 1
        try:
            payload = json.dumps(data, separators=(",", ":")).encode("utf-8")
            self._store.set(key, payload, ttl=ttl)
        except Exception as e:
            logger.warning("Cache write failed for %s: %s", key, e)
