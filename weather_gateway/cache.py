"""In-memory response cache with in-flight request coalescing.

The cache bounds upstream call volume in two ways: successful results are
kept for a TTL, and concurrent requests for the same key share a single
upstream call instead of each issuing their own.

Every mutation happens synchronously between awaits on the event loop, so
no lock is needed and nothing is ever held across upstream I/O.
"""

import asyncio
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from weather_gateway.logger import get_logger
from weather_gateway.models.response_models import CacheStats

T = TypeVar("T")

log = get_logger("cache")

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_MAX_ENTRIES = 1000


def _retrieve_exception(task: asyncio.Task[Any]) -> None:
    # Marks a failure as retrieved when every waiter was cancelled first.
    if not task.cancelled():
        task.exception()


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    stored_at: float
    ttl_seconds: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl_seconds


class RequestCache:
    """Bounded TTL cache plus an in-flight registry, both keyed by request key.

    Eviction is FIFO by insertion order: reading an entry does not refresh
    its position, only storing it again does.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._in_flight: dict[str, asyncio.Task[Any]] = {}
        self._hits = 0
        self._misses = 0
        self._coalesced = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self._lookup(key) is not None

    def get(self, key: str) -> Any | None:
        """Return the live cached value for ``key`` or None."""
        entry = self._lookup(key)
        return entry.value if entry is not None else None

    def in_flight(self, key: str) -> bool:
        return key in self._in_flight

    def clear(self) -> None:
        """Drop every cached entry. Running fetches are left alone."""
        self._entries.clear()

    def stats(self) -> CacheStats:
        return CacheStats(
            entries=len(self._entries),
            in_flight=len(self._in_flight),
            hits=self._hits,
            misses=self._misses,
            coalesced=self._coalesced,
        )

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        ttl_seconds: float | None = None,
    ) -> T:
        """Return the cached value for ``key`` or compute it with ``fetch``.

        Concurrent callers for the same key while a fetch is running all
        receive that fetch's outcome, success or exception. Failures are never
        stored, so the next call after a failure goes upstream again.
        """
        entry = self._lookup(key)
        if entry is not None:
            self._hits += 1
            log.debug(f"Cache hit key={key}")
            return entry.value

        task = self._in_flight.get(key)
        if task is not None:
            self._coalesced += 1
            log.debug(f"Joining in-flight request key={key}")
        else:
            self._misses += 1
            log.debug(f"Cache miss key={key}")
            task = asyncio.ensure_future(self._fetch_and_store(key, fetch, ttl_seconds))
            task.add_done_callback(_retrieve_exception)
            self._in_flight[key] = task

        # A cancelled waiter must not cancel the call other waiters share.
        return await asyncio.shield(task)

    async def _fetch_and_store(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
        ttl_seconds: float | None,
    ) -> T:
        try:
            value = await fetch()
        except Exception as exc:
            log.info(f"Upstream fetch failed, not caching key={key} error={exc!r}")
            raise
        else:
            self._store(key, value, ttl_seconds)
            return value
        finally:
            self._in_flight.pop(key, None)

    def _lookup(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        return entry

    def _store(self, key: str, value: Any, ttl_seconds: float | None) -> None:
        # Overwriting counts as a fresh insertion for eviction order.
        self._entries.pop(key, None)
        while len(self._entries) >= self._max_entries:
            evicted_key, _ = self._entries.popitem(last=False)
            log.debug(f"Evicted oldest cache entry key={evicted_key}")
        self._entries[key] = CacheEntry(
            value=value,
            stored_at=self._clock(),
            ttl_seconds=ttl_seconds if ttl_seconds is not None else self._ttl_seconds,
        )
