"""
Timers for console workflows.

Workflows never sleep; they ask a :class:`Scheduler` for one-shot timers,
repeating intervals and per-frame callbacks, and keep the returned handle
so the timer can be cancelled on teardown.
"""
from __future__ import annotations

import abc
import asyncio
from typing import Callable, Optional

FRAME_INTERVAL = 1 / 60


class TimerHandle(abc.ABC):
    @abc.abstractmethod
    def cancel(self) -> None:
        ...

    @property
    @abc.abstractmethod
    def cancelled(self) -> bool:
        ...


class Scheduler(abc.ABC):
    @abc.abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` once after ``delay`` seconds."""

    @abc.abstractmethod
    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` every ``interval`` seconds until cancelled."""

    def request_frame(self, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` on the next display frame."""
        return self.call_later(FRAME_INTERVAL, callback)


class _AsyncioHandle(TimerHandle):
    def __init__(self):
        self._inner: Optional[asyncio.TimerHandle] = None
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        if self._inner is not None:
            self._inner.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class AsyncioScheduler(Scheduler):
    """Timers on a running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def call_later(self, delay, callback):
        handle = _AsyncioHandle()

        def fire():
            if not handle.cancelled:
                callback()

        handle._inner = self.loop.call_later(delay, fire)
        return handle

    def call_every(self, interval, callback):
        handle = _AsyncioHandle()
        loop = self.loop

        def tick():
            if handle.cancelled:
                return
            handle._inner = loop.call_later(interval, tick)
            callback()

        handle._inner = loop.call_later(interval, tick)
        return handle
