from __future__ import annotations

import asyncio
import concurrent.futures
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Generic, Hashable, Optional, TypeVar

from flatflow.logging import get_logger

T = TypeVar("T")

Clock = Callable[[], float]

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 100

_MISS = object()


@dataclass(slots=True, frozen=True)
class Fingerprint:
    group_id: Hashable
    last_modified: datetime

    @property
    def etag(self) -> str:
        millis = int(self.last_modified.timestamp() * 1000)
        return f'"{self.group_id}-{millis}"'

    def is_newer_than(self, other: Fingerprint) -> bool:
        return self.last_modified > other.last_modified


def make_fingerprint(group_id: Hashable, *timestamps: Optional[datetime]) -> Fingerprint:
    """Fingerprint from the latest of the given modification times; ``None`` entries are skipped."""
    known = [ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc) for ts in timestamps if ts is not None]
    return Fingerprint(group_id=group_id, last_modified=max(known, default=EPOCH))


@dataclass(slots=True)
class _CacheEntry:
    fingerprint: Fingerprint
    value: Any
    stored_at: float


class ResultCache(Generic[T]):
    """Per-group memo of the last computed result.

    An entry is served only while it is younger than ``ttl_seconds`` and its
    fingerprint equals the one the caller derived from current data. Writes go
    through :meth:`publish`, which refuses to replace a live entry with a
    result computed from older data. :meth:`get_or_compute` lets concurrent
    callers asking for the same ``(group_id, fingerprint)`` share one
    computation.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Clock = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[Hashable, _CacheEntry] = {}
        self._lock = threading.Lock()
        self._inflight: dict[tuple[Hashable, Fingerprint], concurrent.futures.Future[T]] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._log = get_logger(__name__)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expired(self, entry: _CacheEntry, now: float) -> bool:
        return now - entry.stored_at > self._ttl

    def get(self, group_id: Hashable, fingerprint: Fingerprint) -> Optional[T]:
        now = self._clock()
        with self._lock:
            value = self._lookup_locked(group_id, fingerprint, now)
        return None if value is _MISS else value

    def _lookup_locked(self, group_id: Hashable, fingerprint: Fingerprint, now: float) -> Any:
        entry = self._entries.get(group_id)
        if entry is None:
            self._log.debug("cache.miss", group_id=group_id)
            return _MISS
        if self._expired(entry, now):
            del self._entries[group_id]
            self._log.debug("cache.expired", group_id=group_id)
            return _MISS
        if entry.fingerprint != fingerprint:
            # keep an entry that is newer than what the caller has seen
            if not entry.fingerprint.is_newer_than(fingerprint):
                del self._entries[group_id]
            self._log.debug("cache.stale", group_id=group_id)
            return _MISS
        self._log.debug("cache.hit", group_id=group_id)
        return entry.value

    def publish(self, group_id: Hashable, fingerprint: Fingerprint, value: T) -> bool:
        now = self._clock()
        with self._lock:
            current = self._entries.get(group_id)
            if (
                current is not None
                and not self._expired(current, now)
                and current.fingerprint.is_newer_than(fingerprint)
            ):
                self._log.info("cache.publish.rejected", group_id=group_id)
                return False
            self._entries[group_id] = _CacheEntry(fingerprint=fingerprint, value=value, stored_at=now)
            if len(self._entries) > self._max_entries:
                self._evict_locked(now)
            return True

    def invalidate(self, group_id: Hashable) -> None:
        with self._lock:
            self._entries.pop(group_id, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            removed = self._drop_expired_locked(now)
        if removed:
            self._log.info("cache.sweep", removed=removed)
        return removed

    def _drop_expired_locked(self, now: float) -> int:
        expired = [key for key, entry in self._entries.items() if self._expired(entry, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def _evict_locked(self, now: float) -> None:
        self._drop_expired_locked(now)
        overflow = len(self._entries) - self._max_entries
        if overflow <= 0:
            return
        oldest = sorted(self._entries.items(), key=lambda item: item[1].stored_at)[:overflow]
        for key, _ in oldest:
            del self._entries[key]
        self._log.info("cache.evict", evicted=overflow)

    async def get_or_compute(
        self,
        group_id: Hashable,
        fingerprint: Fingerprint,
        compute: Callable[[], Awaitable[T]],
    ) -> tuple[T, bool]:
        """Return ``(value, cache_hit)``, computing at most once per key at a time.

        The in-flight handle is a :class:`concurrent.futures.Future`, so callers
        on other threads and event loops join the same computation.
        """
        key = (group_id, fingerprint)
        now = self._clock()
        with self._lock:
            value = self._lookup_locked(group_id, fingerprint, now)
            if value is not _MISS:
                return value, True
            future = self._inflight.get(key)
            owner = future is None
            if future is None:
                future = concurrent.futures.Future()
                self._inflight[key] = future
            else:
                self._log.debug("cache.coalesced", group_id=group_id)

        if owner:
            # runs to completion even if this caller is cancelled
            task = asyncio.ensure_future(self._compute_and_publish(key, compute, future))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        return await asyncio.shield(asyncio.wrap_future(future)), False

    async def _compute_and_publish(
        self,
        key: tuple[Hashable, Fingerprint],
        compute: Callable[[], Awaitable[T]],
        future: concurrent.futures.Future[T],
    ) -> None:
        group_id, fingerprint = key
        try:
            value = await compute()
        except asyncio.CancelledError:
            self._finish(key)
            future.cancel()
            raise
        except Exception as exc:
            self._finish(key)
            future.set_exception(exc)
            return
        self.publish(group_id, fingerprint, value)
        self._finish(key)
        future.set_result(value)

    def _finish(self, key: tuple[Hashable, Fingerprint]) -> None:
        with self._lock:
            self._inflight.pop(key, None)
