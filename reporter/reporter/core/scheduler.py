"""Scheduler interface (port) plus the asyncio implementation.

All timers run on the single event loop that owns the report collection, so
callbacks never race with each other or with request handlers.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Port: one-shot and periodic callbacks that can be cancelled."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle: ...


class _PeriodicHandle:
    """Re-arms itself after each run until cancelled."""

    def __init__(self, loop: asyncio.AbstractEventLoop, interval: float,
                 callback: Callable[[], None]) -> None:
        self._loop = loop
        self._interval = interval
        self._callback = callback
        self._cancelled = False
        self._timer = loop.call_later(interval, self._run)

    def _run(self) -> None:
        if self._cancelled:
            return
        try:
            self._callback()
        finally:
            if not self._cancelled:
                self._timer = self._loop.call_later(self._interval, self._run)

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()


class AsyncioScheduler:
    """Scheduler backed by the running event loop's call_later."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        return self._loop.call_later(delay, callback)

    def call_every(self, interval: float, callback: Callable[[], None]) -> TimerHandle:
        return _PeriodicHandle(self._loop, interval, callback)
