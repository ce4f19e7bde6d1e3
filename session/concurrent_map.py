"""
Sharded, thread-safe map from session id to serialized record.

The key space is split across independent shards, each guarded by its own
lock, so requests touching different sessions rarely contend and no single
lock serializes the whole process. Every operation takes exactly one shard
lock and holds it only for dictionary work, never across I/O or an await,
which keeps the map safe to call from threads and from asyncio tasks alike.

Expiry is lazy: an expired entry is dropped when a lookup finds it. Entries
that are never looked up again stay resident until ``sweep`` runs.
"""

import threading
import time
import zlib
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple

DEFAULT_SHARD_COUNT = 16


class MapEntry(NamedTuple):
    record: str
    expires_at: float


class _Shard:
    __slots__ = ("lock", "entries")

    def __init__(self):
        self.lock = threading.Lock()
        self.entries: Dict[str, MapEntry] = {}


class ConcurrentSessionMap:
    """
    Associative map with per-key linearizable get/insert/remove.

    Overwrites are last-write-wins; there is no compare-and-set across two
    separate calls, only within ``update`` and ``insert_if_absent``.
    """

    def __init__(
        self,
        shard_count: int = DEFAULT_SHARD_COUNT,
        clock: Callable[[], float] = time.time,
    ):
        if shard_count < 1:
            raise ValueError("shard_count must be at least 1")
        self._shards: List[_Shard] = [_Shard() for _ in range(shard_count)]
        self._clock = clock

    @property
    def shard_count(self) -> int:
        return len(self._shards)

    def _shard_for(self, key: str) -> _Shard:
        # crc32 rather than hash(): stable across processes for debugging
        return self._shards[zlib.crc32(key.encode("utf-8")) % len(self._shards)]

    def _now(self, now: Optional[float]) -> float:
        return self._clock() if now is None else now

    def get(self, key: str, now: Optional[float] = None) -> Optional[str]:
        """Return the live record for ``key``, dropping it if expired."""
        current = self._now(now)
        shard = self._shard_for(key)
        with shard.lock:
            entry = shard.entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= current:
                del shard.entries[key]
                return None
            return entry.record

    def insert(self, key: str, record: str, expires_at: float) -> None:
        """Insert or overwrite ``key``."""
        shard = self._shard_for(key)
        with shard.lock:
            shard.entries[key] = MapEntry(record, expires_at)

    def insert_if_absent(
        self,
        key: str,
        record: str,
        expires_at: float,
        now: Optional[float] = None,
    ) -> bool:
        """Insert only when ``key`` is absent or expired; return whether it was inserted."""
        current = self._now(now)
        shard = self._shard_for(key)
        with shard.lock:
            entry = shard.entries.get(key)
            if entry is not None and entry.expires_at > current:
                return False
            shard.entries[key] = MapEntry(record, expires_at)
            return True

    def update(
        self,
        key: str,
        fn: Callable[[str], Tuple[str, float]],
        now: Optional[float] = None,
    ) -> Optional[MapEntry]:
        """
        Atomically replace the live record for ``key`` with ``fn(record)``.

        ``fn`` runs under the shard lock and must not block. If it raises,
        the entry is left untouched and the exception propagates.

        Returns:
            The new entry, or None when ``key`` is absent or expired.
        """
        current = self._now(now)
        shard = self._shard_for(key)
        with shard.lock:
            entry = shard.entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= current:
                del shard.entries[key]
                return None
            record, expires_at = fn(entry.record)
            new_entry = MapEntry(record, expires_at)
            shard.entries[key] = new_entry
            return new_entry

    def remove(self, key: str, now: Optional[float] = None) -> bool:
        """Remove ``key``; return False when it was absent or already expired."""
        current = self._now(now)
        shard = self._shard_for(key)
        with shard.lock:
            entry = shard.entries.pop(key, None)
        return entry is not None and entry.expires_at > current

    def contains(self, key: str, now: Optional[float] = None) -> bool:
        return self.get(key, now) is not None

    def sweep(self, now: Optional[float] = None) -> int:
        """Drop every expired entry, one shard at a time; return the count."""
        current = self._now(now)
        removed = 0
        for shard in self._shards:
            with shard.lock:
                expired = [k for k, e in shard.entries.items() if e.expires_at <= current]
                for key in expired:
                    del shard.entries[key]
            removed += len(expired)
        return removed

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()

    def keys(self) -> Iterator[str]:
        """Snapshot of keys, including expired entries not yet reclaimed."""
        for shard in self._shards:
            with shard.lock:
                snapshot = list(shard.entries)
            yield from snapshot

    def __len__(self) -> int:
        # Raw count: expired entries count until a lookup or sweep drops them
        total = 0
        for shard in self._shards:
            with shard.lock:
                total += len(shard.entries)
        return total
