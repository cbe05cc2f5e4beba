"""
Advisory in-process cache for analysis results and rendered reports.

The cache is never authoritative: a miss only costs a recomputation, so
entries may be evicted or expire at any time.
"""

from __future__ import annotations

import hashlib
import logging
import time
from collections import OrderedDict
from typing import Callable, Generic, Optional, Protocol, Tuple, TypeVar

import anyio

from analyzer.app.orchestrator.polling import Sleep

logger = logging.getLogger(__name__)

V = TypeVar("V")

Clock = Callable[[], float]


def content_key(data: bytes | str) -> str:
    """SHA-256 hex digest used as the cache key for a document or request body."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


class CacheStore(Protocol[V]):
    def get(self, key: str) -> Optional[V]:
        ...

    def set(self, key: str, value: V) -> None:
        ...

    def delete(self, key: str) -> None:
        ...

    def purge_expired(self) -> int:
        ...

    def __len__(self) -> int:
        ...


class InMemoryTTLStore(Generic[V]):
    """
    Bounded mapping with per-entry expiry.

    Insertion order doubles as eviction order: when ``max_entries`` is
    exceeded the least recently set entry is dropped.
    """

    def __init__(
        self,
        *,
        max_entries: int = 1000,
        ttl_seconds: float = 24 * 60 * 60.0,
        clock: Clock = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self._entries: "OrderedDict[str, Tuple[float, V]]" = OrderedDict()
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: V) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (self._clock() + self._ttl, value)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("cache_evicted", extra={"key": evicted})

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)


class CacheSweeper:
    """Periodically purges expired entries. Runs until cancelled."""

    def __init__(
        self,
        store: CacheStore,
        interval_seconds: float,
        *,
        sleep: Sleep = anyio.sleep,
    ) -> None:
        self._store = store
        self._interval = interval_seconds
        self._sleep = sleep

    def run_once(self) -> int:
        purged = self._store.purge_expired()
        if purged:
            logger.info(
                "cache_swept",
                extra={"purged": purged, "remaining": len(self._store)},
            )
        return purged

    async def run(self) -> None:
        while True:
            await self._sleep(self._interval)
            self.run_once()
