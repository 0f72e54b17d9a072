"""Keyed debouncing of async operations.

Within the delay window only the most recent request for a key runs; every
superseded caller receives the winner's result (or exception). A request
arriving after the operation has started opens a new window and never
aborts the running one.
"""

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from app.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class _Burst:
    """Pending requests for one key that will share a single execution."""

    future: asyncio.Future[Any]
    timer: asyncio.Task[None] | None = None
    started: bool = False
    superseded: int = field(default=0)


class Debouncer:
    """Collapse bursts of same-key calls into one execution."""

    def __init__(self) -> None:
        self._bursts: dict[str, _Burst] = {}
        self._running: set[asyncio.Task[None]] = set()

    def pending(self, key: str) -> bool:
        """Whether a burst for ``key`` is waiting for its timer."""
        burst = self._bursts.get(key)
        return burst is not None and not burst.started

    async def submit(
        self,
        key: str,
        func: Callable[[], Awaitable[Any]],
        delay: float,
    ) -> Any:
        """Schedule ``func`` after ``delay`` seconds, replacing any pending call.

        Args:
            key: Operation key; calls with the same key are collapsed.
            func: Zero-argument coroutine function to run.
            delay: Seconds to wait for further calls before running.

        Returns:
            Result of the call that eventually ran for this burst.
        """
        loop = asyncio.get_running_loop()
        burst = self._bursts.get(key)
        if burst is None or burst.started:
            burst = _Burst(future=loop.create_future())
            self._bursts[key] = burst
        elif burst.timer is not None:
            burst.timer.cancel()
            burst.superseded += 1
            logger.debug("sales.debounce_superseded", key=key, superseded=burst.superseded)

        burst.timer = asyncio.create_task(self._fire(key, burst, func, delay))
        return await asyncio.shield(burst.future)

    async def _fire(
        self,
        key: str,
        burst: _Burst,
        func: Callable[[], Awaitable[Any]],
        delay: float,
    ) -> None:
        await asyncio.sleep(delay)
        burst.started = True
        if self._bursts.get(key) is burst:
            del self._bursts[key]
        current = asyncio.current_task()
        if current is not None:
            self._running.add(current)
        try:
            result = await func()
        except Exception as exc:
            if not burst.future.done():
                burst.future.set_exception(exc)
        else:
            if not burst.future.done():
                burst.future.set_result(result)
        finally:
            if current is not None:
                self._running.discard(current)

    async def close(self) -> None:
        """Cancel pending timers and wait for running operations to finish."""
        for burst in list(self._bursts.values()):
            if burst.timer is not None and not burst.started:
                burst.timer.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await burst.timer
            if not burst.future.done():
                burst.future.cancel()
        self._bursts.clear()
        if self._running:
            await asyncio.gather(*self._running, return_exceptions=True)
