"""In-memory TTL cache with coalesced refresh."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Hashable, Protocol, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


class Cache(Protocol):
    """The cache abstraction consumers depend on."""

    def get(self, key: Hashable) -> Any | None: ...

    def set(self, key: Hashable, value: Any, ttl_seconds: float | None = None) -> None: ...

    def invalidate(self, key: Hashable | None = None) -> None: ...


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A cached value with metadata."""
    value: T
    created_at: float
    ttl_seconds: float
    key: Hashable

    def is_expired(self, now: float) -> bool:
        return now > self.created_at + self.ttl_seconds

    def age_seconds(self, now: float) -> float:
        return now - self.created_at


@dataclass
class TTLCache:
    """
    In-memory cache with:
    - TTL-based expiration against an injectable clock
    - get / set / invalidate
    - Coalesced loading: concurrent ``get_or_load`` calls for the same key
      share one in-flight load

    Read-mostly; ``get`` never blocks.
    """
    # Default TTL
    default_ttl_seconds: float = 86400.0

    # Time source (seconds); tests inject a manual clock
    clock: Clock = time.monotonic

    # Internal storage
    _store: dict[Hashable, CacheEntry] = field(default_factory=dict, init=False)
    _inflight: dict[Hashable, asyncio.Future] = field(default_factory=dict, init=False)

    # Stats
    _hits: int = field(default=0, init=False)
    _misses: int = field(default=0, init=False)
    _loads: int = field(default=0, init=False)

    def get(self, key: Hashable) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        entry = self._store.get(key)
        if entry is None or entry.is_expired(self.clock()):
            self._misses += 1
            return None

        self._hits += 1
        return entry.value

    def get_entry(self, key: Hashable) -> CacheEntry | None:
        """Get the full cache entry (including metadata), even if expired."""
        return self._store.get(key)

    def set(self, key: Hashable, value: Any, ttl_seconds: float | None = None) -> None:
        """Set a value in cache."""
        ttl = ttl_seconds if ttl_seconds is not None else self.default_ttl_seconds
        self._store[key] = CacheEntry(
            value=value,
            created_at=self.clock(),
            ttl_seconds=ttl,
            key=key,
        )

    def invalidate(self, key: Hashable | None = None) -> None:
        """Drop one key, or everything when ``key`` is None."""
        if key is None:
            self._store.clear()
        else:
            self._store.pop(key, None)

    async def get_or_load(
        self,
        key: Hashable,
        loader: Callable[[], Awaitable[Any]],
        ttl_seconds: float | None = None,
    ) -> Any:
        """
        Get from cache or load if missing/expired.

        Callers arriving while a load for ``key`` is in flight await that
        same load instead of starting another. A failed load is not cached
        and the exception reaches every waiting caller.
        """
        value = self.get(key)
        if value is not None:
            return value

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        self._loads += 1
        try:
            value = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Nobody else may be waiting; mark the exception retrieved
            future.exception()
            raise
        else:
            self.set(key, value, ttl_seconds)
            future.set_result(value)
            return value
        finally:
            self._inflight.pop(key, None)

    def keys(self) -> list[Hashable]:
        now = self.clock()
        return [key for key, entry in self._store.items() if not entry.is_expired(now)]

    @property
    def size(self) -> int:
        """Current number of entries."""
        return len(self._store)

    @property
    def stats(self) -> dict:
        """Cache statistics."""
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0

        return {
            "size": self.size,
            "hits": self._hits,
            "misses": self._misses,
            "loads": self._loads,
            "hit_rate_percent": round(hit_rate, 2),
        }
