"""
Cancellable timers for the display event loop.

Every timer carries a generation token. Cancelling bumps the generation, so a
callback that wakes up after teardown sees a stale token and does nothing.
"""

import asyncio
import inspect
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, Union

from loguru import logger

Interval = Union[float, Callable[[], float]]
Callback = Callable[[], Union[None, Awaitable[None]]]


class PeriodicTask:
    """Fire-and-forget repeating callback on the running event loop.

    The interval may be a callable, re-evaluated before every sleep, which
    lets the rotation timer follow each item's dwell time.
    """

    def __init__(self, name: str, interval: Interval, callback: Callback):
        self.name = name
        self._interval = interval
        self._callback = callback
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self.fired = 0

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _next_delay(self) -> float:
        delay = self._interval() if callable(self._interval) else self._interval
        return max(0.0, float(delay))

    def start(self) -> None:
        """Start the loop; restarting invalidates the previous one."""
        self.cancel()
        self._generation += 1
        self._task = asyncio.create_task(
            self._run(self._generation), name=f"timer:{self.name}"
        )

    def cancel(self) -> None:
        """Stop the loop. Safe to call repeatedly."""
        self._generation += 1
        if self._task is not None:
            self._task.cancel()
            self._task = None

    async def _run(self, generation: int) -> None:
        while generation == self._generation:
            await asyncio.sleep(self._next_delay())
            if generation != self._generation:
                logger.debug(f"Discarding stale tick for {self.name}")
                return
            self.fired += 1
            try:
                result = self._callback()
                if inspect.isawaitable(result):
                    await result
            except asyncio.CancelledError:
                raise
            except Exception:
                # A failing tick must not kill the timer
                logger.exception(f"Timer callback {self.name} failed")


class TimerGroup:
    """Owns a set of PeriodicTasks and releases them together."""

    def __init__(self) -> None:
        self._tasks: dict[str, PeriodicTask] = {}

    def start(self, name: str, interval: Interval, callback: Callback) -> PeriodicTask:
        """Start (or restart) the named timer."""
        existing = self._tasks.get(name)
        if existing is not None:
            existing.cancel()
        task = PeriodicTask(name, interval, callback)
        self._tasks[name] = task
        task.start()
        return task

    def get(self, name: str) -> Optional[PeriodicTask]:
        return self._tasks.get(name)

    def cancel(self, name: str) -> None:
        task = self._tasks.pop(name, None)
        if task is not None:
            task.cancel()

    def cancel_all(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()

    @property
    def active(self) -> list[str]:
        return [name for name, task in self._tasks.items() if task.running]

    async def aclose(self) -> None:
        """Cancel every timer and let the loop process the cancellations."""
        self.cancel_all()
        await asyncio.sleep(0)

    async def __aenter__(self) -> "TimerGroup":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


class FetchGate:
    """Allows at most one in-flight fetch; extra requests are dropped."""

    def __init__(self, name: str):
        self.name = name
        self._claim: Optional[object] = None
        self.dropped = 0

    @property
    def busy(self) -> bool:
        return self._claim is not None

    def reset(self) -> None:
        """Forget the in-flight claim so a new owner can start right away.

        The abandoned owner still finishes, but releasing no longer affects
        claims taken after the reset.
        """
        self._claim = None

    @asynccontextmanager
    async def claim(self) -> AsyncIterator[bool]:
        """Yield True if this caller owns the fetch, False if it was dropped.

        Example:
            async with gate.claim() as owned:
                if owned:
                    await fetch()
        """
        if self._claim is not None:
            self.dropped += 1
            logger.debug(f"{self.name} fetch already in flight, dropping request")
            yield False
            return

        token = object()
        self._claim = token
        try:
            yield True
        finally:
            if self._claim is token:
                self._claim = None
