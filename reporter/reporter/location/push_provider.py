"""Location provider fed by pushes from the device layer.

The UI owns the platform geolocation API and forwards every fix (or failure)
to the local API, which pushes it here. One-shot requests wait for the next
push, up to a timeout.
"""

from __future__ import annotations

import asyncio
from typing import Callable, TYPE_CHECKING

import structlog

from reporter.core.geo import validate_location

if TYPE_CHECKING:
    from reporter.core.models import LocationData

log = structlog.get_logger()


class PushWatchSubscription:
    def __init__(self, provider: PushLocationProvider,
                 callback: Callable[[LocationData | None], None]) -> None:
        self._provider = provider
        self._callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, fix: LocationData | None) -> None:
        if self._active:
            self._callback(fix)

    def close(self) -> None:
        if self._active:
            self._active = False
            self._provider._unsubscribe(self)


class PushLocationProvider:
    """LocationProvider whose fixes arrive through ``push`` / ``push_failure``."""

    def __init__(self) -> None:
        self._subscriptions: list[PushWatchSubscription] = []
        self._waiters: list[asyncio.Future] = []

    async def get_fix(self, timeout: float) -> LocationData | None:
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future = loop.create_future()
        self._waiters.append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout)
        except asyncio.TimeoutError:
            log.info("location_fix_timeout", timeout_s=timeout)
            return None
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    def watch(self, callback: Callable[[LocationData | None], None]) -> PushWatchSubscription:
        sub = PushWatchSubscription(self, callback)
        self._subscriptions.append(sub)
        return sub

    def _unsubscribe(self, sub: PushWatchSubscription) -> None:
        if sub in self._subscriptions:
            self._subscriptions.remove(sub)

    def _publish(self, fix: LocationData | None) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(fix)
        # Snapshot: a callback may close its own or another subscription.
        for sub in list(self._subscriptions):
            sub.deliver(fix)

    def push(self, fix: LocationData) -> None:
        """Publish a new fix. Raises InvalidLocation for bad coordinates."""
        validate_location(fix)
        self._publish(fix)

    def push_failure(self) -> None:
        """Publish a failed fix: every listener sees "no location"."""
        self._publish(None)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)
