"""Time-boxed in-memory cache for loader results.

Entries are valid for ``ttl`` seconds from the moment they were stored. An
optional background task sweeps expired entries so memory stays bounded
for long-lived services; the sweep is approximate eviction, not LRU.
"""

import asyncio
import contextlib
import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from app.core.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    """Cached value and the clock reading at which it was stored."""

    value: Any
    stored_at: float


class TTLCache:
    """Mapping of key to value with a fixed time-to-live.

    Args:
        ttl: Seconds an entry stays valid after it is stored.
        clock: Monotonic clock; injectable for tests.
    """

    def __init__(self, ttl: float, clock: Clock = time.monotonic) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._sweeper: asyncio.Task[None] | None = None
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self._is_fresh(key)

    def _is_fresh(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() - entry.stored_at < self.ttl

    def keys(self) -> list[str]:
        return list(self._entries)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None when absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self.misses += 1
            return None
        if self._clock() - entry.stored_at >= self.ttl:
            del self._entries[key]
            self.misses += 1
            return None
        self.hits += 1
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, stored_at=self._clock())

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self, prefix: str | None = None) -> int:
        """Remove every entry, or those equal to or prefixed by ``prefix``.

        Returns:
            Number of entries removed.
        """
        if prefix is None:
            removed = len(self._entries)
            self._entries.clear()
            return removed
        doomed = [k for k in self._entries if k == prefix or k.startswith(prefix)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def sweep(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        expired = [k for k, e in self._entries.items() if now - e.stored_at >= self.ttl]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def memory_usage(self) -> int:
        """Rough size in bytes of the cached payloads (JSON length)."""
        total = 0
        for key, entry in self._entries.items():
            total += len(key)
            total += len(json.dumps(entry.value, default=_json_default))
        return total

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[Any]]) -> Any:
        """Return the cached value or await ``fetch`` and store its result."""
        cached = self.get(key)
        if cached is not None:
            logger.debug("sales.cache_hit", key=key)
            return cached
        logger.debug("sales.cache_miss", key=key)
        value = await fetch()
        self.set(key, value)
        return value

    # -------------------------------------------------------------------------
    # Background sweep
    # -------------------------------------------------------------------------

    def start_sweeper(self, interval: float) -> None:
        """Start the periodic sweep on the running event loop (idempotent)."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_forever(interval))

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweeper
        self._sweeper = None

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def _sweep_forever(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                removed = self.sweep()
            except Exception as exc:
                logger.warning("sales.cache_sweep_failed", error=str(exc))
                continue
            if removed:
                logger.debug("sales.cache_swept", removed=removed, remaining=len(self))


def _json_default(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json")
    return str(value)
