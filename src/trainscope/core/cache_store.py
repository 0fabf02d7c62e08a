# TrainScope — Bounded Local Cache

"""
Size- and TTL-bounded key/value store for query results.

Entries are kept in insertion order. When a write would push the stored
bytes over budget, expired entries go first, then the oldest ones, until
the new value fits. Reading an expired entry deletes it and reports a miss.

A store can be snapshotted to a JSON file and reloaded on the next start.
"""

import base64
import json
import time
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional

from trainscope.core.errors import CacheWriteError
from trainscope.utils import config
from trainscope.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """A single cached value."""
    key: str
    value: bytes
    inserted_at: float
    ttl: Optional[float] = None  # Seconds; None never expires

    @property
    def size(self) -> int:
        return len(self.value)

    def is_expired(self, now: float) -> bool:
        return self.ttl is not None and now - self.inserted_at >= self.ttl

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": base64.b64encode(self.value).decode("ascii"),
            "inserted_at": self.inserted_at,
            "ttl": self.ttl,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        return cls(
            key=data["key"],
            value=base64.b64decode(data["value"]),
            inserted_at=float(data["inserted_at"]),
            ttl=data.get("ttl"),
        )


class CacheStore:
    """
    Bounded cache. Aggregate value size never exceeds max_bytes after set().

    Usage:
        store = CacheStore(max_bytes=10_000_000, default_ttl=5.0)
        store.set("key", b"payload")
        value = store.get("key")   # bytes or None
        store.close()
    """

    def __init__(self, max_bytes: int, default_ttl: Optional[float] = None,
                 clock: Callable[[], float] = time.time, name: str = "cache"):
        """
        Args:
            max_bytes: Budget for the sum of stored value sizes.
            default_ttl: TTL in seconds applied when set() gets none.
            clock: Returns the current time in seconds.
            name: Label used in log messages.
        """
        if max_bytes <= 0:
            raise ValueError("max_bytes must be > 0")

        self._max_bytes = int(max_bytes)
        self._default_ttl = default_ttl
        self._clock = clock
        self._name = name
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._total = 0
        self._closed = False

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def max_bytes(self) -> int:
        return self._max_bytes

    @property
    def total_size(self) -> int:
        """Bytes currently stored."""
        return self._total

    @property
    def is_closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def keys(self) -> Iterator[str]:
        """Keys from oldest to newest insertion."""
        return iter(list(self._entries.keys()))

    # =========================================================================
    # Reading / writing
    # =========================================================================

    def get(self, key: str) -> Optional[bytes]:
        """Value for key, or None on a miss (expired entries are removed)."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._remove(key)
            return None
        return entry.value

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        if self.get(key) is None:
            return None
        return self._entries[key]

    def set(self, key: str, value: bytes, ttl: Optional[float] = None) -> None:
        """
        Store value under key, evicting as needed.

        Args:
            key: Cache key.
            value: Raw bytes.
            ttl: Seconds until expiry; defaults to the store's default_ttl.

        Raises:
            CacheWriteError: If the store is closed or the value alone
                exceeds the budget.
        """
        if self._closed:
            raise CacheWriteError(f"{self._name}: store is closed")
        if not isinstance(value, (bytes, bytearray)):
            raise CacheWriteError(f"{self._name}: values must be bytes")

        value = bytes(value)
        if len(value) > self._max_bytes:
            raise CacheWriteError(
                f"{self._name}: value of {len(value)} bytes exceeds budget {self._max_bytes}"
            )

        # A rewrite replaces the old entry and counts as the newest one
        if key in self._entries:
            self._remove(key)

        self._evict_for(len(value))

        entry = CacheEntry(
            key=key,
            value=value,
            inserted_at=self._clock(),
            ttl=self._default_ttl if ttl is None else ttl,
        )
        self._entries[key] = entry
        self._total += entry.size

    def delete(self, key: str) -> bool:
        if key not in self._entries:
            return False
        self._remove(key)
        return True

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns how many were dropped."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            self._remove(key)
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
        self._total = 0

    def close(self) -> None:
        """Release all entries; further writes fail."""
        self.clear()
        self._closed = True

    # =========================================================================
    # Persistence
    # =========================================================================

    def dump(self, path: str) -> None:
        """Write live entries to a JSON snapshot."""
        self.purge_expired()
        data = {
            "version": "1.0",
            "max_bytes": self._max_bytes,
            "entries": [e.to_dict() for e in self._entries.values()],
        }
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f)

    @classmethod
    def load(cls, path: str, max_bytes: int, default_ttl: Optional[float] = None,
             clock: Callable[[], float] = time.time, name: str = "cache") -> "CacheStore":
        """
        Rebuild a store from a snapshot.

        A missing or unreadable snapshot yields an empty store. Entries are
        replayed in their original order, so the budget still holds if it
        shrank since the snapshot was written.
        """
        store = cls(max_bytes, default_ttl=default_ttl, clock=clock, name=name)
        snapshot = Path(path)
        if not snapshot.exists():
            return store

        try:
            with open(snapshot, "r", encoding="utf-8") as f:
                data = json.load(f)
            entries = [CacheEntry.from_dict(d) for d in data.get("entries", [])]
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning("%s: ignoring unreadable snapshot %s: %s", name, snapshot.name, e)
            return store

        now = clock()
        for entry in entries:
            if entry.is_expired(now) or entry.size > store._max_bytes:
                continue
            if entry.key in store._entries:
                store._remove(entry.key)
            store._evict_for(entry.size)
            store._entries[entry.key] = entry
            store._total += entry.size

        logger.info("%s: restored %d entries from %s", name, len(store), snapshot.name)
        return store

    # =========================================================================
    # Internal
    # =========================================================================

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._total -= entry.size

    def _evict_for(self, incoming: int) -> None:
        """Free space for `incoming` bytes: expired entries first, then oldest."""
        if self._total + incoming <= self._max_bytes:
            return

        evicted = self.purge_expired()
        while self._entries and self._total + incoming > self._max_bytes:
            oldest = next(iter(self._entries))
            self._remove(oldest)
            evicted += 1

        logger.debug("%s: evicted %d entries (%d bytes stored)", self._name, evicted, self._total)

    def stats(self) -> Dict[str, int]:
        return {
            "entries": len(self._entries),
            "bytes": self._total,
            "max_bytes": self._max_bytes,
        }


def open_query_store(clock: Callable[[], float] = time.time) -> CacheStore:
    """
    Query-result store sized from config, restored from cache_file if set.
    """
    budget = config.get("cache_max_bytes", 1024 * 1024 * 1024)
    ttl = config.get("cache_default_ttl_s", 5.0)
    snapshot = config.get("cache_file")
    if snapshot:
        return CacheStore.load(snapshot, budget, default_ttl=ttl, clock=clock, name="queries")
    return CacheStore(budget, default_ttl=ttl, clock=clock, name="queries")


def open_settings_store(clock: Callable[[], float] = time.time) -> CacheStore:
    """Small store for chart settings; entries never expire."""
    return CacheStore(config.get("settings_cache_max_bytes", 1024 * 1024),
                      clock=clock, name="settings")
