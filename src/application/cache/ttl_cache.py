"""
In-process expiring key -> snapshot store.

Correctness rests on the age check in ``get``: an entry whose age has reached
the TTL is a miss even if it is still stored. Expired entries are swept on
write to bound memory.
"""
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import structlog

logger = structlog.get_logger(__name__)

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    key: str
    snapshot: V
    written_at: float

    def age(self, now: float) -> float:
        return now - self.written_at


class TTLCache(Generic[V]):
    """Thread-safe TTL cache. Entries are replaced, never patched in place."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[V]] = {}
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str) -> V | None:
        """Return the snapshot if younger than the TTL, else None."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.age(self._clock()) >= self._ttl:
            return None
        return entry.snapshot

    def put(self, key: str, snapshot: V) -> None:
        """Store ``snapshot`` under ``key``, overwriting any previous entry."""
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(key=key, snapshot=snapshot, written_at=now)
            swept = self._sweep_locked(now)
        if swept:
            logger.debug("ttl_cache_swept", removed=swept)

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def sweep(self) -> int:
        """Remove expired entries and return how many were dropped."""
        with self._lock:
            return self._sweep_locked(self._clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _sweep_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if e.age(now) >= self._ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)
